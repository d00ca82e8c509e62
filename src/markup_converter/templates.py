"""Reference documents that carry styling for DOCX, ODT and PPTX output."""

from __future__ import annotations

import base64
import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import TemplateAccessDenied, TemplateSaveFailed, TemplateUnsupportedFormat
from .formats import Format
from .utils import atomic_copy, atomic_write, atomic_write_bytes

logger = logging.getLogger(__name__)

INDEX_FILE = "templates.json"


class TemplateKind(str, Enum):
    DOCX = "docx"
    ODT = "odt"
    PPTX = "pptx"

    @property
    def display_name(self) -> str:
        return _KIND_NAMES[self]

    @property
    def extension(self) -> str:
        return self.value

    @property
    def supported_output_formats(self) -> tuple[Format, ...]:
        return (Format(self.value),)

    @classmethod
    def from_extension(cls, extension: str) -> "TemplateKind | None":
        try:
            return cls(extension.strip().lstrip(".").lower())
        except ValueError:
            return None


_KIND_NAMES = {
    TemplateKind.DOCX: "Word Document",
    TemplateKind.ODT: "OpenDocument",
    TemplateKind.PPTX: "PowerPoint",
}


@dataclass(slots=True)
class ReferenceTemplate:
    id: str
    name: str
    file_name: str
    date_added: datetime
    file_size: int
    kind: TemplateKind
    directory: Path = field(default=Path("."), compare=False, repr=False)

    @property
    def file_path(self) -> Path:
        return self.directory / f"{self.id}.{self.kind.extension}"

    def supports(self, fmt: Format) -> bool:
        return fmt in self.kind.supported_output_formats

    def base64_content(self) -> str:
        return base64.b64encode(self.file_path.read_bytes()).decode("ascii")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "file_name": self.file_name,
            "date_added": self.date_added.isoformat(),
            "file_size": self.file_size,
            "kind": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], directory: Path) -> "ReferenceTemplate":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            file_name=str(data["file_name"]),
            date_added=datetime.fromisoformat(str(data["date_added"])),
            file_size=int(data["file_size"]),
            kind=TemplateKind(data["kind"]),
            directory=directory,
        )


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial template %s: %s", path, exc)


class TemplateStorage:
    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._index = directory / INDEX_FILE
        self._lock = threading.Lock()
        self._cache: list[ReferenceTemplate] | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    def _read_index(self) -> list[ReferenceTemplate]:
        if not self._index.exists():
            return []
        try:
            raw = json.loads(self._index.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable template index %s: %s", self._index, exc)
            return []
        templates: list[ReferenceTemplate] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                template = ReferenceTemplate.from_dict(item, self._directory)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed template entry: %s", exc)
                continue
            if template.file_path.exists():
                templates.append(template)
            else:
                logger.info("Dropping template %s whose file is missing", template.id)
        return templates

    def _write_index(self, templates: list[ReferenceTemplate]) -> None:
        payload = json.dumps([template.to_dict() for template in templates], indent=2)
        atomic_write(self._index, payload)

    def _load(self) -> list[ReferenceTemplate]:
        if self._cache is None:
            self._cache = self._read_index()
        return self._cache

    def refresh(self) -> list[ReferenceTemplate]:
        with self._lock:
            self._cache = None
            return list(self._load())

    def list(self) -> list[ReferenceTemplate]:
        with self._lock:
            return list(self._load())

    def get(self, template_id: str) -> ReferenceTemplate | None:
        with self._lock:
            for template in self._load():
                if template.id == template_id:
                    return template
        return None

    def templates_for(self, fmt: Format) -> list[ReferenceTemplate]:
        return [template for template in self.list() if template.supports(fmt)]

    def save(
        self,
        source: Path | bytes,
        display_name: str,
        declared_extension: str | None = None,
        *,
        file_name: str | None = None,
    ) -> ReferenceTemplate:
        if isinstance(source, bytes):
            extension = declared_extension or ""
        else:
            extension = declared_extension or source.suffix
            file_name = file_name or source.name
        file_name = file_name or f"{display_name}.{extension.lstrip('.')}"
        kind = TemplateKind.from_extension(extension)
        if kind is None:
            raise TemplateUnsupportedFormat(extension.lstrip(".").lower())

        if isinstance(source, bytes):
            size = len(source)
        else:
            if not source.is_file() or not os.access(source, os.R_OK):
                raise TemplateAccessDenied(str(source))
            size = source.stat().st_size

        template = ReferenceTemplate(
            id=uuid.uuid4().hex,
            name=display_name,
            file_name=file_name,
            date_added=datetime.now(timezone.utc),
            file_size=size,
            kind=kind,
            directory=self._directory,
        )
        with self._lock:
            try:
                if isinstance(source, bytes):
                    atomic_write_bytes(template.file_path, source)
                else:
                    atomic_copy(source, template.file_path)
                templates = self._load() + [template]
                self._write_index(templates)
            except OSError as exc:
                _discard(template.file_path)
                raise TemplateSaveFailed(exc) from exc
            self._cache = templates
        logger.info("Saved template %s (%s)", template.name, template.kind.value)
        return template

    def delete(self, template: ReferenceTemplate) -> None:
        with self._lock:
            # OSError other than a missing file leaves the index untouched.
            template.file_path.unlink(missing_ok=True)
            templates = [item for item in self._load() if item.id != template.id]
            self._write_index(templates)
            self._cache = templates
        logger.info("Deleted template %s", template.id)

    def rename(self, template: ReferenceTemplate, new_name: str) -> ReferenceTemplate | None:
        with self._lock:
            current = self._load()
            for position, item in enumerate(current):
                if item.id == template.id:
                    renamed = replace(item, name=new_name)
                    templates = current[:position] + [renamed] + current[position + 1 :]
                    self._write_index(templates)
                    self._cache = templates
                    return renamed
        return None


__all__ = ["INDEX_FILE", "ReferenceTemplate", "TemplateKind", "TemplateStorage"]
