"""Client for a pandoc-server compatible conversion endpoint."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Any

import httpx

from .errors import RemoteInvalidResponse, RemoteNetworkError, RemoteServerError, RemoteTemplateUnreadable
from .formats import Format
from .models import ConversionDocument, ConversionOptions

if TYPE_CHECKING:  # pragma: no cover
    from .templates import ReferenceTemplate

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3030"
UNKNOWN_ERROR = "Unknown error"


@dataclass(frozen=True, slots=True)
class RemoteOutput:
    content: str | bytes

    @property
    def is_binary(self) -> bool:
        return isinstance(self.content, bytes)


class RemoteClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        request_timeout_s: float = 60.0,
        resource_timeout_s: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._lock = Lock()
        self.request_timeout_s = request_timeout_s
        self.resource_timeout_s = resource_timeout_s
        self._transport = transport

    @property
    def base_url(self) -> str:
        with self._lock:
            return self._base_url

    def update_base_url(self, base_url: str) -> None:
        with self._lock:
            self._base_url = base_url.rstrip("/")

    def build_payload(
        self,
        document: ConversionDocument,
        source: Format,
        target: Format,
        options: ConversionOptions,
        template: "ReferenceTemplate | None" = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "text": document.payload_for_remote(),
            "from": source.value,
            "to": target.value,
            "standalone": options.standalone,
            "toc": options.table_of_contents,
            "number-sections": options.number_sections,
            "wrap": options.wrap.value,
        }
        if options.highlight_style:
            payload["highlight-style"] = options.highlight_style
        if options.template:
            payload["template"] = options.template
        if options.variables:
            payload["variables"] = dict(options.variables)
        if options.metadata:
            payload["metadata"] = dict(options.metadata)
        if template is not None:
            name = f"reference-{template.id[:8]}.{template.kind.extension}"
            payload["reference-doc"] = name
            try:
                payload["files"] = {name: template.base64_content()}
            except OSError as exc:
                raise RemoteTemplateUnreadable(template.id, exc) from exc
        return payload

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.request_timeout_s),
            transport=self._transport,
        )

    async def convert(
        self,
        document: ConversionDocument,
        source: Format,
        target: Format,
        options: ConversionOptions | None = None,
        template: "ReferenceTemplate | None" = None,
    ) -> RemoteOutput:
        payload = self.build_payload(document, source, target, options or ConversionOptions(), template)
        url = self.base_url
        logger.debug("POST %s (%s -> %s)", url, source.value, target.value)
        try:
            async with self._client() as client:
                response = await asyncio.wait_for(
                    client.post(
                        url,
                        json=payload,
                        headers={"Accept": "application/json", "Content-Type": "application/json"},
                    ),
                    timeout=self.resource_timeout_s,
                )
        except httpx.DecodingError as exc:
            raise RemoteInvalidResponse(f"undecodable body ({exc})") from exc
        except (httpx.RequestError, httpx.InvalidURL, asyncio.TimeoutError) as exc:
            raise RemoteNetworkError(exc) from exc
        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> RemoteOutput:
        if response.status_code != 200:
            raise RemoteServerError(response.status_code, self._error_message(response))
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteInvalidResponse("body is not JSON") from exc
        if not isinstance(data, dict) or not isinstance(data.get("output"), str):
            raise RemoteInvalidResponse()
        output: str = data["output"]
        if data.get("base64") is True:
            try:
                return RemoteOutput(base64.b64decode(output, validate=True))
            except ValueError as exc:
                raise RemoteInvalidResponse("output is not valid base64") from exc
        return RemoteOutput(output)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return UNKNOWN_ERROR
        if isinstance(data, dict) and isinstance(data.get("message"), str):
            return data["message"]
        return UNKNOWN_ERROR

    async def get_version(self) -> str:
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/version")
        except httpx.DecodingError as exc:
            raise RemoteInvalidResponse(f"undecodable body ({exc})") from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise RemoteNetworkError(exc) from exc
        if response.status_code != 200:
            raise RemoteServerError(response.status_code, self._error_message(response))
        return response.text.strip()

    async def check_health(self) -> bool:
        try:
            await self.get_version()
        except RemoteNetworkError as exc:
            logger.info("Conversion server unreachable at %s: %s", self.base_url, exc)
            return False
        except (RemoteServerError, RemoteInvalidResponse) as exc:
            logger.info("Conversion server at %s unhealthy: %s", self.base_url, exc)
            return False
        return True


__all__ = ["DEFAULT_BASE_URL", "RemoteClient", "RemoteOutput"]
