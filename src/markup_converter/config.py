from __future__ import annotations

import json
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .models import ConversionMode


CONFIG_FILE = Path("config.toml")
DEFAULT_OUTPUT_DIR = Path(tempfile.gettempdir()) / "markup-converter"
DEFAULT_SERVER_URL = "http://localhost:3030"


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    log_file: str = "log.jsonl"
    preview_length: int = 2000
    mode: ConversionMode = ConversionMode.AUTO
    enable_local_api: bool = False


@dataclass(slots=True)
class RemoteConfig:
    base_url: str = DEFAULT_SERVER_URL
    request_timeout_s: float = 60.0
    resource_timeout_s: float = 120.0


@dataclass(slots=True)
class TemplateConfig:
    directory: Path = Path("templates")


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    templates: TemplateConfig = field(default_factory=TemplateConfig)
    api: APIConfig = field(default_factory=APIConfig)

    @property
    def log_path(self) -> Path:
        return self.runtime.output_dir / self.runtime.log_file


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    data = raw.get(name)
    return data if isinstance(data, Mapping) else None


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", DEFAULT_OUTPUT_DIR))),
        log_file=str(data.get("log_file", "log.jsonl")),
        preview_length=int(data.get("preview_length", 2000)),
        mode=ConversionMode.parse(str(data.get("mode", ConversionMode.AUTO.value))),
        enable_local_api=bool(data.get("enable_local_api", False)),
    )


def _build_remote(data: Mapping[str, object] | None) -> RemoteConfig:
    if not data:
        return RemoteConfig()
    return RemoteConfig(
        base_url=str(data.get("base_url", DEFAULT_SERVER_URL)),
        request_timeout_s=float(data.get("request_timeout_s", 60.0)),
        resource_timeout_s=float(data.get("resource_timeout_s", 120.0)),
    )


def _build_templates(data: Mapping[str, object] | None) -> TemplateConfig:
    if not data:
        return TemplateConfig()
    return TemplateConfig(directory=Path(str(data.get("directory", "templates"))))


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        remote=_build_remote(_section(raw, "remote")),
        templates=_build_templates(_section(raw, "templates")),
        api=_build_api(_section(raw, "api")),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "log_file": config.runtime.log_file,
            "preview_length": config.runtime.preview_length,
            "mode": config.runtime.mode.value,
            "enable_local_api": config.runtime.enable_local_api,
        },
        "remote": {
            "base_url": config.remote.base_url,
            "request_timeout_s": config.remote.request_timeout_s,
            "resource_timeout_s": config.remote.resource_timeout_s,
        },
        "templates": {
            "directory": str(config.templates.directory),
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)
