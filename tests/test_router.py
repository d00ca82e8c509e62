from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from markup_converter.errors import RemoteNetworkError, UnsupportedLocalConversion
from markup_converter.formats import Format
from markup_converter.logging import RunLogger
from markup_converter.models import ConversionDocument, ConversionMode, ConversionOptions
from markup_converter.remote import RemoteClient, RemoteOutput
from markup_converter.router import ConversionRouter
from markup_converter.templates import ReferenceTemplate, TemplateKind
from markup_converter.transcoder import Transcoder


class StubRemote:
    def __init__(self, output: str | bytes = "remote output", error: Exception | None = None) -> None:
        self.base_url = "http://stub:3030"
        self.output = output
        self.error = error
        self.calls: list[dict[str, object]] = []

    def update_base_url(self, base_url: str) -> None:
        self.base_url = base_url

    async def convert(self, document, source, target, options=None, template=None) -> RemoteOutput:
        self.calls.append({"source": source, "target": target, "template": template})
        if self.error is not None:
            raise self.error
        return RemoteOutput(self.output)

    async def check_health(self) -> bool:
        return True


class RefusingTranscoder(Transcoder):
    def transcode(self, text, source, target, options=None):
        raise UnsupportedLocalConversion(source, target)


def build_router(tmp_path: Path, remote, mode=ConversionMode.AUTO, **kwargs) -> ConversionRouter:
    return ConversionRouter(
        remote,
        mode=mode,
        output_dir=tmp_path / "out",
        preview_length=kwargs.pop("preview_length", 2000),
        **kwargs,
    )


def make_template(tmp_path: Path, kind: TemplateKind) -> ReferenceTemplate:
    template = ReferenceTemplate(
        id="0123456789abcdef",
        name="Brand",
        file_name=f"brand.{kind.extension}",
        date_added=datetime.now(timezone.utc),
        file_size=4,
        kind=kind,
        directory=tmp_path,
    )
    template.file_path.write_bytes(b"data")
    return template


@pytest.mark.asyncio
async def test_auto_local_pair_stays_local(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote)
    result = await router.convert(
        ConversionDocument.from_text("# Hi"), Format.MARKDOWN, Format.HTML, ConversionOptions(standalone=False)
    )
    assert result.success
    assert result.route == "local"
    assert remote.calls == []
    assert result.output_path == tmp_path / "out" / f"{result.run_id}.html"
    assert result.output_path.read_text(encoding="utf-8") == "<h1>Hi</h1>"
    assert result.preview == "<h1>Hi</h1>"


@pytest.mark.asyncio
async def test_auto_falls_back_to_remote_on_local_error(tmp_path: Path) -> None:
    remote = StubRemote(output="<p>from server</p>")
    router = build_router(tmp_path, remote, transcoder=RefusingTranscoder())
    result = await router.convert(ConversionDocument.from_text("# Hi"), Format.MARKDOWN, Format.HTML)
    assert len(remote.calls) == 1
    assert result.success
    assert result.route == "remote"
    assert result.preview == "<p>from server</p>"


@pytest.mark.asyncio
async def test_auto_binary_document_goes_remote(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote)
    document = ConversionDocument.from_bytes(b"\xff\xfe\x00", "odd.html")
    result = await router.convert(document, Format.HTML, Format.MARKDOWN)
    assert len(remote.calls) == 1
    assert result.route == "remote"


@pytest.mark.asyncio
async def test_auto_remote_failure_reflects_remote_attempt(tmp_path: Path) -> None:
    remote = StubRemote(error=RemoteNetworkError(OSError("connection refused")))
    router = build_router(tmp_path, remote, transcoder=RefusingTranscoder())
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.HTML)
    assert len(remote.calls) == 1
    assert not result.success
    assert result.route == "remote"
    assert result.error_message == "Network error: connection refused"


@pytest.mark.asyncio
async def test_local_only_unsupported_makes_no_remote_call(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote, mode=ConversionMode.LOCAL_ONLY)
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    assert remote.calls == []
    assert not result.success
    assert result.error_message == "Local conversion not supported for Markdown to Microsoft Word"
    assert not (tmp_path / "out").exists()


@pytest.mark.asyncio
async def test_local_only_local_error_is_not_retried(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote, mode=ConversionMode.LOCAL_ONLY, transcoder=RefusingTranscoder())
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.HTML)
    assert remote.calls == []
    assert not result.success


@pytest.mark.asyncio
async def test_remote_only_always_calls_server(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote, mode=ConversionMode.REMOTE_ONLY)
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.HTML)
    assert len(remote.calls) == 1
    assert result.route == "remote"


@pytest.mark.asyncio
async def test_per_call_mode_overrides_router_mode(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote, mode=ConversionMode.REMOTE_ONLY)
    result = await router.convert(
        ConversionDocument.from_text("x"), Format.MARKDOWN, Format.HTML, mode=ConversionMode.LOCAL_ONLY
    )
    assert remote.calls == []
    assert result.route == "local"
    assert router.mode is ConversionMode.REMOTE_ONLY


@pytest.mark.asyncio
async def test_server_422_is_reported(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "bad format"})

    client = RemoteClient("http://pandoc.test", transport=httpx.MockTransport(handler))
    router = build_router(tmp_path, client)
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    assert not result.success
    assert "422" in result.error_message
    assert "bad format" in result.error_message


@pytest.mark.asyncio
async def test_binary_remote_output_is_written_without_preview(tmp_path: Path) -> None:
    remote = StubRemote(output=b"PK\x03\x04")
    router = build_router(tmp_path, remote)
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    assert result.success
    assert result.preview is None
    assert result.output_path.suffix == ".docx"
    assert result.output_path.read_bytes() == b"PK\x03\x04"


@pytest.mark.asyncio
async def test_preview_is_bounded(tmp_path: Path) -> None:
    remote = StubRemote(output="x" * 50)
    router = build_router(tmp_path, remote, preview_length=10)
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.LATEX)
    assert result.preview == "x" * 10
    assert result.output_path.read_text(encoding="utf-8") == "x" * 50


@pytest.mark.asyncio
async def test_write_failure_becomes_failed_result(tmp_path: Path) -> None:
    blocker = tmp_path / "out"
    blocker.write_text("not a directory", encoding="utf-8")
    router = build_router(tmp_path, StubRemote())
    result = await router.convert(ConversionDocument.from_text("# x"), Format.MARKDOWN, Format.HTML)
    assert not result.success
    assert result.error_message.startswith("Failed to write conversion output")


@pytest.mark.asyncio
async def test_every_conversion_is_logged(tmp_path: Path) -> None:
    run_logger = RunLogger(tmp_path / "log.jsonl")
    router = build_router(tmp_path, StubRemote(), mode=ConversionMode.LOCAL_ONLY, run_logger=run_logger)
    await router.convert(ConversionDocument.from_text("# x", "a.md"), Format.MARKDOWN, Format.HTML)
    await router.convert(ConversionDocument.from_text("# x", "b.md"), Format.MARKDOWN, Format.DOCX)
    lines = (tmp_path / "log.jsonl").read_text(encoding="utf-8").splitlines()
    entries = [json.loads(line) for line in lines]
    assert [entry["status"] for entry in entries] == ["success", "failure"]
    assert entries[0]["filename"] == "a.md"
    assert entries[1]["error_code"] == "UNSUPPORTED_LOCAL"
    assert [entry.run_id for entry in run_logger.read_entries()] == [entry["run_id"] for entry in entries]


@pytest.mark.asyncio
async def test_template_forwarded_only_for_matching_target(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote)
    template = make_template(tmp_path, TemplateKind.DOCX)
    await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX, template=template)
    await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.ODT, template=template)
    assert remote.calls[0]["template"] is template
    assert remote.calls[1]["template"] is None


def test_mode_and_base_url_accessors(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote)
    assert router.set_mode("local") is ConversionMode.LOCAL_ONLY
    assert router.mode is ConversionMode.LOCAL_ONLY
    router.update_base_url("http://other:3030")
    assert router.base_url == "http://other:3030"
    assert router.can_handle_locally(Format.PLAIN, Format.HTML5)


class BrokenTranscoder(Transcoder):
    def transcode(self, text, source, target, options=None):
        raise IndexError("list index out of range")


@pytest.mark.asyncio
async def test_unexpected_transcoder_error_falls_back_in_auto(tmp_path: Path) -> None:
    remote = StubRemote(output="from server")
    router = build_router(tmp_path, remote, transcoder=BrokenTranscoder())
    result = await router.convert(ConversionDocument.from_text("<p>x</p>"), Format.HTML, Format.MARKDOWN)
    assert len(remote.calls) == 1
    assert result.success
    assert result.route == "remote"


@pytest.mark.asyncio
async def test_unexpected_transcoder_error_fails_in_local_only(tmp_path: Path) -> None:
    run_logger = RunLogger(tmp_path / "log.jsonl")
    remote = StubRemote()
    router = build_router(
        tmp_path, remote, mode=ConversionMode.LOCAL_ONLY, transcoder=BrokenTranscoder(), run_logger=run_logger
    )
    result = await router.convert(ConversionDocument.from_text("<p>x</p>"), Format.HTML, Format.MARKDOWN)
    assert remote.calls == []
    assert not result.success
    assert result.route == "local"
    assert result.error_message == "Local conversion failed: list index out of range"
    assert run_logger.read_entries()[0].error_code == "LOCAL_CONVERSION_FAILED"


@pytest.mark.asyncio
async def test_html_with_placeholder_lookalike_converts_locally(tmp_path: Path) -> None:
    remote = StubRemote()
    router = build_router(tmp_path, remote)
    result = await router.convert(
        ConversionDocument.from_text("<p>a\x00code5\x00b</p>"), Format.HTML, Format.MARKDOWN
    )
    assert remote.calls == []
    assert result.success
    assert result.route == "local"
    assert result.preview == "a\x00code5\x00b"


@pytest.mark.asyncio
async def test_missing_template_file_is_failed_result(tmp_path: Path) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"output": "x"})

    template = make_template(tmp_path, TemplateKind.DOCX)
    template.file_path.unlink()
    client = RemoteClient("http://pandoc.test", transport=httpx.MockTransport(handler))
    router = build_router(tmp_path, client)
    result = await router.convert(
        ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX, template=template
    )
    assert calls == []
    assert not result.success
    assert result.route == "remote"
    assert result.error_message.startswith(f"Cannot read reference template {template.id}")


@pytest.mark.asyncio
async def test_undecodable_server_body_is_failed_result(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")

    client = RemoteClient("http://pandoc.test", transport=httpx.MockTransport(handler))
    router = build_router(tmp_path, client)
    result = await router.convert(ConversionDocument.from_text("x"), Format.MARKDOWN, Format.DOCX)
    assert not result.success
    assert result.error_message.startswith("Invalid response from conversion server")
