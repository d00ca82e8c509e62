from __future__ import annotations

from pathlib import Path

import pytest

from markup_converter.utils import (
    artifact_path,
    atomic_copy,
    atomic_write,
    atomic_write_bytes,
    generate_run_id,
    truncate_preview,
)


def test_generate_run_id_is_unique() -> None:
    first = generate_run_id("conv")
    second = generate_run_id("conv")
    assert first.startswith("conv-")
    assert first != second


def test_artifact_path(tmp_path: Path) -> None:
    assert artifact_path(tmp_path, "conv-1", "html") == tmp_path / "conv-1.html"


def test_atomic_writes(tmp_path: Path) -> None:
    text_path = tmp_path / "nested" / "out.txt"
    atomic_write(text_path, "hello")
    assert text_path.read_text(encoding="utf-8") == "hello"
    data_path = tmp_path / "out.bin"
    atomic_write_bytes(data_path, b"\x00\x01")
    assert data_path.read_bytes() == b"\x00\x01"
    copy_path = tmp_path / "copy" / "out.bin"
    atomic_copy(data_path, copy_path)
    assert copy_path.read_bytes() == b"\x00\x01"


def test_atomic_copy_missing_source_leaves_nothing(tmp_path: Path) -> None:
    destination = tmp_path / "dest"
    with pytest.raises(OSError):
        atomic_copy(tmp_path / "missing", destination / "file")
    assert list(destination.iterdir()) == []


@pytest.mark.parametrize(("limit", "expected"), [(3, "abc"), (10, "abcdef"), (0, "")])
def test_truncate_preview(limit: int, expected: str) -> None:
    assert truncate_preview("abcdef", limit) == expected
