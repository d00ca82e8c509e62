from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, Query, UploadFile

from . import __version__
from .context import ConverterContext, build_context
from .errors import TemplateAccessDenied, TemplateError, TemplateUnsupportedFormat
from .formats import Format
from .models import ConversionDocument
from .schemas import (
    Capability,
    ConvertRequest,
    ConvertResponse,
    FormatInfo,
    HealthStatus,
    ModeState,
    ModeUpdate,
    ServerHealth,
    TemplateInfo,
    TemplateRename,
)
from .settings import load_effective_config
from .templates import ReferenceTemplate


def _template_status(exc: TemplateError) -> int:
    if isinstance(exc, TemplateUnsupportedFormat):
        return 400
    if isinstance(exc, TemplateAccessDenied):
        return 403
    return 500


def create_app(
    config_path: Path | None = None,
    *,
    require_enabled: bool = True,
    context: ConverterContext | None = None,
) -> FastAPI:
    if context is None:
        context = build_context(load_effective_config(config_path))
    if require_enabled and not context.config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via config.runtime.enable_local_api")
    router = context.router
    storage = context.templates
    app = FastAPI(title="Markup Converter", version=__version__)
    app.state.context = context

    def _require_template(template_id: str) -> ReferenceTemplate:
        template = storage.get(template_id)
        if template is None:
            raise HTTPException(status_code=404, detail="TEMPLATE_NOT_FOUND")
        return template

    @app.get("/health", response_model=HealthStatus)
    async def health() -> HealthStatus:
        return HealthStatus(status="ok", version=__version__)

    @app.get("/formats", response_model=list[FormatInfo])
    async def formats() -> list[FormatInfo]:
        return [FormatInfo.from_format(fmt) for fmt in Format]

    @app.get("/capabilities", response_model=Capability)
    async def capabilities(source: Format, target: Format) -> Capability:
        return Capability(
            source=source,
            target=target,
            local=router.can_handle_locally(source, target),
            mode=router.mode,
        )

    @app.post("/convert", response_model=ConvertResponse)
    async def convert(request: ConvertRequest) -> ConvertResponse:
        template = _require_template(request.template_id) if request.template_id else None
        document = ConversionDocument.from_text(request.text, request.filename)
        result = await router.convert(
            document,
            request.source,
            request.target,
            request.options.to_options(),
            template=template,
            mode=request.mode,
        )
        return ConvertResponse.from_result(result)

    @app.get("/server/health", response_model=ServerHealth)
    async def server_health() -> ServerHealth:
        available = await router.check_server_health()
        return ServerHealth(base_url=router.base_url, available=available)

    @app.get("/mode", response_model=ModeState)
    async def get_mode() -> ModeState:
        mode = router.mode
        return ModeState(mode=mode, description=mode.description)

    @app.put("/mode", response_model=ModeState)
    async def put_mode(update: ModeUpdate) -> ModeState:
        mode = router.set_mode(update.mode)
        return ModeState(mode=mode, description=mode.description)

    @app.get("/templates", response_model=list[TemplateInfo])
    async def list_templates(
        fmt: Format | None = Query(None, alias="format"),
    ) -> list[TemplateInfo]:
        templates = storage.templates_for(fmt) if fmt else storage.list()
        return [TemplateInfo.from_template(template) for template in templates]

    @app.post("/templates", response_model=TemplateInfo, status_code=201)
    async def upload_template(
        file: UploadFile = File(...),
        name: str | None = Form(None),
    ) -> TemplateInfo:
        filename = file.filename or "template"
        content = await file.read()
        try:
            template = storage.save(
                content,
                name or Path(filename).stem,
                Path(filename).suffix,
                file_name=filename,
            )
        except TemplateError as exc:
            raise HTTPException(status_code=_template_status(exc), detail=exc.code) from exc
        return TemplateInfo.from_template(template)

    @app.patch("/templates/{template_id}", response_model=TemplateInfo)
    async def rename_template(template_id: str, payload: TemplateRename) -> TemplateInfo:
        renamed = storage.rename(_require_template(template_id), payload.name)
        if renamed is None:
            raise HTTPException(status_code=404, detail="TEMPLATE_NOT_FOUND")
        return TemplateInfo.from_template(renamed)

    @app.delete("/templates/{template_id}", status_code=204)
    async def delete_template(template_id: str) -> None:
        template = _require_template(template_id)
        try:
            storage.delete(template)
        except OSError as exc:
            raise HTTPException(status_code=500, detail="TEMPLATE_DELETE_FAILED") from exc

    return app


__all__ = ["create_app"]
