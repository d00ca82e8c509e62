"""Routing between the in-process transcoder and the conversion server."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Protocol

from .errors import (
    ArtifactWriteError,
    ConversionError,
    LocalConversionError,
    LocalTranscodeFailed,
    MissingTextContent,
)
from .formats import Format
from .logging import RunLogEntry, RunLogger
from .models import ConversionDocument, ConversionMode, ConversionOptions, ConversionResult
from .remote import RemoteOutput
from .transcoder import Transcoder, can_handle_locally
from .utils import artifact_path, atomic_write, atomic_write_bytes, generate_run_id, truncate_preview

if TYPE_CHECKING:  # pragma: no cover
    from .templates import ReferenceTemplate

logger = logging.getLogger(__name__)

ROUTE_LOCAL = "local"
ROUTE_REMOTE = "remote"


class RemoteConverter(Protocol):
    base_url: str

    def update_base_url(self, base_url: str) -> None:  # pragma: no cover - interface
        ...

    async def convert(
        self,
        document: ConversionDocument,
        source: Format,
        target: Format,
        options: ConversionOptions | None = None,
        template: "ReferenceTemplate | None" = None,
    ) -> RemoteOutput:  # pragma: no cover - interface
        ...

    async def check_health(self) -> bool:  # pragma: no cover - interface
        ...


@dataclass(slots=True)
class _Request:
    run_id: str
    document: ConversionDocument
    source: Format
    target: Format
    options: ConversionOptions
    template: "ReferenceTemplate | None"
    started: float


class ConversionRouter:
    def __init__(
        self,
        remote_client: RemoteConverter,
        transcoder: Transcoder | None = None,
        *,
        mode: ConversionMode = ConversionMode.AUTO,
        output_dir: Path,
        preview_length: int = 2000,
        run_logger: RunLogger | None = None,
    ) -> None:
        self._remote = remote_client
        self._transcoder = transcoder or Transcoder()
        self._mode = ConversionMode.parse(mode)
        self._lock = Lock()
        self._output_dir = output_dir
        self._preview_length = preview_length
        self._run_logger = run_logger

    @property
    def mode(self) -> ConversionMode:
        with self._lock:
            return self._mode

    def set_mode(self, mode: ConversionMode | str) -> ConversionMode:
        parsed = ConversionMode.parse(mode)
        with self._lock:
            self._mode = parsed
        logger.info("Conversion mode set to %s", parsed.value)
        return parsed

    @property
    def base_url(self) -> str:
        return self._remote.base_url

    def update_base_url(self, base_url: str) -> None:
        self._remote.update_base_url(base_url)

    async def check_server_health(self) -> bool:
        return await self._remote.check_health()

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def can_handle_locally(self, source: Format, target: Format) -> bool:
        return can_handle_locally(source, target)

    async def convert(
        self,
        document: ConversionDocument,
        source: Format,
        target: Format,
        options: ConversionOptions | None = None,
        *,
        template: "ReferenceTemplate | None" = None,
        mode: ConversionMode | None = None,
    ) -> ConversionResult:
        request = _Request(
            run_id=generate_run_id("conv"),
            document=document,
            source=source,
            target=target,
            options=options or ConversionOptions(),
            template=self._usable_template(template, target),
            started=time.perf_counter(),
        )
        effective = ConversionMode.parse(mode) if mode is not None else self.mode
        local = self.can_handle_locally(source, target)

        if effective is ConversionMode.LOCAL_ONLY and not local:
            message = (
                f"Local conversion not supported for {source.display_name} to {target.display_name}"
            )
            return self._fail(request, ROUTE_LOCAL, "UNSUPPORTED_LOCAL", message)
        if effective is ConversionMode.REMOTE_ONLY or not local:
            return await self._convert_remote(request)

        try:
            output = self._run_local(request)
        except LocalConversionError as exc:
            if effective is ConversionMode.LOCAL_ONLY:
                return self._fail(request, ROUTE_LOCAL, exc.code, str(exc))
            logger.warning("Local conversion failed (%s); retrying on server", exc)
            return await self._convert_remote(request)
        return self._finish(request, ROUTE_LOCAL, output)

    def _usable_template(
        self, template: "ReferenceTemplate | None", target: Format
    ) -> "ReferenceTemplate | None":
        if template is None or template.supports(target):
            return template
        logger.warning(
            "Template %s (%s) does not apply to %s output; ignoring it",
            template.name,
            template.kind.value,
            target.value,
        )
        return None

    def _run_local(self, request: _Request) -> str:
        text = request.document.text
        if text is None:
            raise MissingTextContent(request.document.filename)
        try:
            return self._transcoder.transcode(text, request.source, request.target, request.options)
        except LocalConversionError:
            raise
        except Exception as exc:
            logger.exception("Transcoder raised on %s", request.document.filename)
            raise LocalTranscodeFailed(exc) from exc

    async def _convert_remote(self, request: _Request) -> ConversionResult:
        try:
            output = await self._remote.convert(
                request.document,
                request.source,
                request.target,
                request.options,
                request.template,
            )
        except ConversionError as exc:
            return self._fail(request, ROUTE_REMOTE, exc.code, str(exc))
        return self._finish(request, ROUTE_REMOTE, output.content)

    def _finish(self, request: _Request, route: str, content: str | bytes) -> ConversionResult:
        path = artifact_path(self._output_dir, request.run_id, request.target.extension)
        try:
            self._write_artifact(path, content)
        except ArtifactWriteError as exc:
            return self._fail(request, route, exc.code, str(exc))
        preview = truncate_preview(content, self._preview_length) if isinstance(content, str) else None
        size = len(content.encode("utf-8")) if isinstance(content, str) else len(content)
        self._log(request, route, "success", None, path, size)
        return ConversionResult.succeeded(path, preview, route=route, run_id=request.run_id)

    def _write_artifact(self, path: Path, content: str | bytes) -> None:
        try:
            if isinstance(content, bytes):
                atomic_write_bytes(path, content)
            else:
                atomic_write(path, content)
        except OSError as exc:
            raise ArtifactWriteError(exc) from exc

    def _fail(self, request: _Request, route: str, code: str, message: str) -> ConversionResult:
        self._log(request, route, "failure", code, None, 0)
        return ConversionResult.failed(message, route=route, run_id=request.run_id)

    def _log(
        self,
        request: _Request,
        route: str,
        status: str,
        error_code: str | None,
        output_path: Path | None,
        size_bytes: int,
    ) -> None:
        if self._run_logger is None:
            return
        elapsed_ms = (time.perf_counter() - request.started) * 1000
        entry = RunLogEntry(
            run_id=request.run_id,
            filename=request.document.filename,
            source_format=request.source.value,
            target_format=request.target.value,
            route=route,
            status=status,
            error_code=error_code,
            elapsed_ms=elapsed_ms,
            output_path=str(output_path) if output_path else None,
            size_bytes=size_bytes,
        )
        try:
            self._run_logger.append(entry)
        except OSError as exc:
            logger.error("Could not append to run log %s: %s", self._run_logger.log_file, exc)


__all__ = ["ROUTE_LOCAL", "ROUTE_REMOTE", "ConversionRouter", "RemoteConverter"]
