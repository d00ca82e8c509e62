from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any

from rich.logging import RichHandler


@dataclass(slots=True)
class RunLogEntry:
    run_id: str
    filename: str
    source_format: str
    target_format: str
    route: str
    status: str
    error_code: str | None
    elapsed_ms: float
    output_path: str | None
    size_bytes: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RunLogger:
    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file
        self._lock = Lock()

    @property
    def log_file(self) -> Path:
        return self._log_file

    def append(self, entry: RunLogEntry) -> None:
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def read_entries(self) -> list[RunLogEntry]:
        if not self._log_file.exists():
            return []
        entries: list[RunLogEntry] = []
        for line in self._log_file.read_text(encoding="utf-8").splitlines():
            if line.strip():
                entries.append(RunLogEntry(**json.loads(line)))
        return entries


def configure_console_logging(verbose: bool = False) -> None:
    """Route package loggers through rich; INFO by default, DEBUG when verbose."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


__all__ = ["RunLogEntry", "RunLogger", "configure_console_logging"]
