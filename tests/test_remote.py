from __future__ import annotations

import asyncio
import base64
import json
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from markup_converter.errors import (
    RemoteInvalidResponse,
    RemoteNetworkError,
    RemoteServerError,
    RemoteTemplateUnreadable,
)
from markup_converter.formats import Format
from markup_converter.models import ConversionDocument, ConversionOptions
from markup_converter.remote import RemoteClient
from markup_converter.templates import ReferenceTemplate, TemplateKind


def client_for(handler, **kwargs) -> RemoteClient:
    return RemoteClient("http://pandoc.test/", transport=httpx.MockTransport(handler), **kwargs)


def test_payload_always_carries_core_fields() -> None:
    client = RemoteClient()
    payload = client.build_payload(
        ConversionDocument.from_text("# Hi"),
        Format.MARKDOWN,
        Format.DOCX,
        ConversionOptions(highlight_style=None),
    )
    assert payload == {
        "text": "# Hi",
        "from": "markdown",
        "to": "docx",
        "standalone": True,
        "toc": False,
        "number-sections": False,
        "wrap": "auto",
    }


def test_payload_optional_fields_and_template(tmp_path: Path) -> None:
    template = ReferenceTemplate(
        id="abcdef0123456789",
        name="Brand",
        file_name="brand.docx",
        date_added=datetime.now(timezone.utc),
        file_size=3,
        kind=TemplateKind.DOCX,
        directory=tmp_path,
    )
    template.file_path.write_bytes(b"doc")
    options = ConversionOptions(
        table_of_contents=True,
        template="custom.html",
        variables={"title": "T"},
        metadata={"author": "A"},
    )
    payload = RemoteClient().build_payload(
        ConversionDocument.from_bytes(b"\xff\x00", "in.docx"), Format.DOCX, Format.DOCX, options, template
    )
    assert payload["text"] == base64.b64encode(b"\xff\x00").decode("ascii")
    assert payload["toc"] is True
    assert payload["highlight-style"] == "pygments"
    assert payload["template"] == "custom.html"
    assert payload["variables"] == {"title": "T"}
    assert payload["metadata"] == {"author": "A"}
    assert payload["reference-doc"] == "reference-abcdef01.docx"
    assert payload["files"] == {"reference-abcdef01.docx": base64.b64encode(b"doc").decode("ascii")}


@pytest.mark.asyncio
async def test_convert_posts_once_and_returns_text() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"output": "<p>ok</p>"})

    output = await client_for(handler).convert(
        ConversionDocument.from_text("ok"), Format.MARKDOWN, Format.HTML
    )
    assert output.content == "<p>ok</p>"
    assert not output.is_binary
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.host == "pandoc.test"
    assert request.headers["accept"] == "application/json"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content)["to"] == "html"


@pytest.mark.asyncio
async def test_convert_decodes_base64_output() -> None:
    encoded = base64.b64encode(b"PK\x03\x04").decode("ascii")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"output": encoded, "base64": True})

    output = await client_for(handler).convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    assert output.is_binary
    assert output.content == b"PK\x03\x04"


@pytest.mark.asyncio
async def test_server_error_carries_status_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "bad format"})

    with pytest.raises(RemoteServerError) as excinfo:
        await client_for(handler).convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    assert excinfo.value.status_code == 422
    assert str(excinfo.value) == "Server error (422): bad format"


@pytest.mark.asyncio
async def test_server_error_without_message_uses_placeholder() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="<html>oops</html>")

    with pytest.raises(RemoteServerError, match=r"Server error \(500\): Unknown error"):
        await client_for(handler).convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"not json", b'{"result": "x"}', b'["output"]', b'{"output": 3}'])
async def test_unexpected_success_body_is_invalid(body: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    with pytest.raises(RemoteInvalidResponse):
        await client_for(handler).convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)


@pytest.mark.asyncio
async def test_transport_failure_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteNetworkError, match="Network error: connection refused"):
        await client_for(handler).convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)


@pytest.mark.asyncio
async def test_resource_timeout_is_network_error() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={"output": "late"})

    client = client_for(handler, resource_timeout_s=0.05)
    with pytest.raises(RemoteNetworkError):
        await client.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)


@pytest.mark.asyncio
async def test_health_check() -> None:
    def healthy(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/version"
        return httpx.Response(200, text="3.1.11\n")

    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    assert await client_for(healthy).get_version() == "3.1.11"
    assert await client_for(healthy).check_health() is True
    assert await client_for(broken).check_health() is False
    assert await client_for(offline).check_health() is False


@pytest.mark.asyncio
async def test_undecodable_body_is_invalid_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")

    with pytest.raises(RemoteInvalidResponse):
        await client_for(handler).convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    with pytest.raises(RemoteInvalidResponse):
        await client_for(handler).get_version()
    assert await client_for(handler).check_health() is False


@pytest.mark.asyncio
async def test_redirect_loop_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)

    with pytest.raises(RemoteNetworkError, match="redirects"):
        await client_for(handler).convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    with pytest.raises(RemoteNetworkError):
        await client_for(handler).get_version()


def test_unreadable_template_is_typed_error(tmp_path: Path) -> None:
    template = ReferenceTemplate(
        id="abcdef0123",
        name="Gone",
        file_name="gone.docx",
        date_added=datetime.now(timezone.utc),
        file_size=4,
        kind=TemplateKind.DOCX,
        directory=tmp_path,
    )
    client = RemoteClient()
    with pytest.raises(RemoteTemplateUnreadable) as excinfo:
        client.build_payload(
            ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX, ConversionOptions(), template
        )
    assert excinfo.value.code == "TEMPLATE_READ_FAILED"
    assert "abcdef0123" in str(excinfo.value)

def test_base_url_updates_strip_trailing_slash() -> None:
    client = RemoteClient("http://a:3030/")
    assert client.base_url == "http://a:3030"
    client.update_base_url("http://b:3030/")
    assert client.base_url == "http://b:3030"
