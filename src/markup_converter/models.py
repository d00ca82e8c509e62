"""Domain models for conversion requests and outcomes."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .formats import Format, detect_format


class WrapMode(str, Enum):
    AUTO = "auto"
    NONE = "none"
    PRESERVE = "preserve"


class ConversionMode(str, Enum):
    """Policy deciding between the in-process transcoder and the server."""

    AUTO = "auto"
    LOCAL_ONLY = "local-only"
    REMOTE_ONLY = "remote-only"

    @property
    def description(self) -> str:
        return _MODE_DESCRIPTIONS[self]

    @classmethod
    def parse(cls, value: "str | ConversionMode") -> "ConversionMode":
        if isinstance(value, ConversionMode):
            return value
        normalized = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        normalized = _MODE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown conversion mode: {value!r}") from None


_MODE_DESCRIPTIONS = {
    ConversionMode.AUTO: "Use local conversion when possible, fall back to server",
    ConversionMode.LOCAL_ONLY: "Only use local conversion (limited formats)",
    ConversionMode.REMOTE_ONLY: "Always use server (requires pandoc-server)",
}

_MODE_ALIASES = {
    "local": "local-only",
    "remote": "remote-only",
    "server": "remote-only",
    "server-only": "remote-only",
}


def _frozen_mapping(value: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType({str(key): str(item) for key, item in (value or {}).items()})


@dataclass(frozen=True, slots=True)
class ConversionOptions:
    """Options forwarded to the transcoder or the conversion server."""

    standalone: bool = True
    table_of_contents: bool = False
    number_sections: bool = False
    wrap: WrapMode = WrapMode.AUTO
    highlight_style: str | None = "pygments"
    template: str | None = None
    variables: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "wrap", WrapMode(self.wrap))
        object.__setattr__(self, "variables", _frozen_mapping(self.variables))
        object.__setattr__(self, "metadata", _frozen_mapping(self.metadata))

    def with_changes(self, **changes: Any) -> "ConversionOptions":
        return replace(self, **changes)

    def as_dict(self) -> dict[str, object]:
        return {
            "standalone": self.standalone,
            "table_of_contents": self.table_of_contents,
            "number_sections": self.number_sections,
            "wrap": self.wrap.value,
            "highlight_style": self.highlight_style,
            "template": self.template,
            "variables": dict(self.variables),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True, slots=True)
class ConversionDocument:
    """Input unit: raw bytes plus a best-effort decoded text view."""

    filename: str
    content: bytes
    text: str | None
    source_path: Path | None = None

    @classmethod
    def from_text(cls, text: str, filename: str = "untitled.md") -> "ConversionDocument":
        return cls(filename=filename, content=text.encode("utf-8"), text=text)

    @classmethod
    def from_bytes(cls, content: bytes, filename: str) -> "ConversionDocument":
        try:
            text: str | None = content.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        return cls(filename=filename, content=content, text=text)

    @classmethod
    def from_path(cls, path: Path) -> "ConversionDocument":
        document = cls.from_bytes(path.read_bytes(), path.name)
        return replace(document, source_path=path)

    @property
    def detected_format(self) -> Format | None:
        return detect_format(self.filename)

    def payload_for_remote(self) -> str:
        if self.text is not None:
            return self.text
        return base64.b64encode(self.content).decode("ascii")


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """Unified outcome of a local or remote conversion."""

    success: bool
    output_path: Path | None = None
    preview: str | None = None
    error_message: str | None = None
    route: str | None = None
    run_id: str | None = None

    def __post_init__(self) -> None:
        if self.success and (self.output_path is None or self.error_message is not None):
            raise ValueError("A successful result needs an output path and no error message")
        if not self.success and (self.error_message is None or self.output_path is not None):
            raise ValueError("A failed result needs an error message and no output path")

    @classmethod
    def succeeded(
        cls,
        output_path: Path,
        preview: str | None,
        *,
        route: str | None = None,
        run_id: str | None = None,
    ) -> "ConversionResult":
        return cls(success=True, output_path=output_path, preview=preview, route=route, run_id=run_id)

    @classmethod
    def failed(
        cls,
        message: str,
        *,
        route: str | None = None,
        run_id: str | None = None,
    ) -> "ConversionResult":
        return cls(success=False, error_message=message, route=route, run_id=run_id)

    def to_payload(self) -> dict[str, object | None]:
        return {
            "success": self.success,
            "output_path": str(self.output_path) if self.output_path else None,
            "preview": self.preview,
            "error_message": self.error_message,
            "route": self.route,
            "run_id": self.run_id,
        }


__all__ = [
    "ConversionDocument",
    "ConversionMode",
    "ConversionOptions",
    "ConversionResult",
    "WrapMode",
]
