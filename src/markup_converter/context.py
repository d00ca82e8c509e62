from __future__ import annotations

from dataclasses import dataclass

from .config import AppConfig
from .logging import RunLogger
from .remote import RemoteClient
from .router import ConversionRouter
from .templates import TemplateStorage


@dataclass(slots=True)
class ConverterContext:
    config: AppConfig
    templates: TemplateStorage
    router: ConversionRouter


def build_context(config: AppConfig, remote_client: RemoteClient | None = None) -> ConverterContext:
    remote = remote_client or RemoteClient(
        config.remote.base_url,
        request_timeout_s=config.remote.request_timeout_s,
        resource_timeout_s=config.remote.resource_timeout_s,
    )
    router = ConversionRouter(
        remote,
        mode=config.runtime.mode,
        output_dir=config.runtime.output_dir,
        preview_length=config.runtime.preview_length,
        run_logger=RunLogger(config.log_path),
    )
    return ConverterContext(
        config=config,
        templates=TemplateStorage(config.templates.directory),
        router=router,
    )


__all__ = ["ConverterContext", "build_context"]
