from __future__ import annotations

import os
import time
from pathlib import Path

import pytest
from typer.testing import CliRunner

from markup_converter.cli import app
from markup_converter.templates import TemplateStorage

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        "\n".join(
            [
                "[runtime]",
                f'output_dir = "{(tmp_path / "out").as_posix()}"',
                "[remote]",
                'base_url = "http://127.0.0.1:9"',
                "request_timeout_s = 1",
                "resource_timeout_s = 2",
                "[templates]",
                f'directory = "{(tmp_path / "templates").as_posix()}"',
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_convert_markdown_to_html(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "note.md"
    source.write_text("# Hello\n\nThis is **bold**.", encoding="utf-8")
    result = runner.invoke(app, ["convert", str(source), "--to", "html", "--fragment", "--config", str(config_file)])
    assert result.exit_code == 0, result.output
    assert "Success" in result.output
    outputs = list((tmp_path / "out").glob("*.html"))
    assert len(outputs) == 1
    assert "<h1>Hello</h1>" in outputs[0].read_text(encoding="utf-8")
    assert (tmp_path / "out" / "log.jsonl").exists()


def test_convert_local_only_unsupported_fails(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "note.md"
    source.write_text("text", encoding="utf-8")
    result = runner.invoke(
        app,
        ["convert", str(source), "--to", "docx", "--mode", "local-only", "--config", str(config_file)],
    )
    assert result.exit_code == 1
    assert "Local conversion not supported" in result.output


def test_convert_requires_known_source(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "mystery.xyz"
    source.write_text("text", encoding="utf-8")
    result = runner.invoke(app, ["convert", str(source), "--to", "html", "--config", str(config_file)])
    assert result.exit_code != 0


def test_formats_and_can_convert() -> None:
    listing = runner.invoke(app, ["formats", "--category", "markdown"])
    assert listing.exit_code == 0
    assert "gfm" in listing.output
    local = runner.invoke(app, ["can-convert", "markdown", "html"])
    assert "local" in local.output
    remote = runner.invoke(app, ["can-convert", "markdown", "docx"])
    assert "server required" in remote.output


def test_check_server_unreachable(config_file: Path) -> None:
    result = runner.invoke(app, ["check-server", "--config", str(config_file)])
    assert result.exit_code == 1
    assert "unavailable" in result.output


def test_template_commands(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "brand.docx"
    source.write_bytes(b"docx")
    added = runner.invoke(app, ["templates", "add", str(source), "--name", "Brand", "--config", str(config_file)])
    assert added.exit_code == 0, added.output
    template = TemplateStorage(tmp_path / "templates").list()[0]

    listing = runner.invoke(app, ["templates", "list", "--for", "docx", "--config", str(config_file)])
    assert "Brand" in listing.output

    renamed = runner.invoke(app, ["templates", "rename", template.id, "House", "--config", str(config_file)])
    assert renamed.exit_code == 0
    assert TemplateStorage(tmp_path / "templates").get(template.id).name == "House"

    removed = runner.invoke(app, ["templates", "remove", template.id, "--config", str(config_file)])
    assert removed.exit_code == 0
    assert TemplateStorage(tmp_path / "templates").list() == []


def test_template_add_rejects_unknown_extension(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "notes.txt"
    source.write_text("x", encoding="utf-8")
    result = runner.invoke(app, ["templates", "add", str(source), "--config", str(config_file)])
    assert result.exit_code == 1
    assert "TEMPLATE_UNSUPPORTED_FORMAT" in result.output


def test_clean_keeps_most_recent(tmp_path: Path, config_file: Path) -> None:
    out = tmp_path / "out"
    out.mkdir()
    old = out / "conv-old.html"
    new = out / "conv-new.html"
    log = out / "log.jsonl"
    for path in (old, new, log):
        path.write_text("x", encoding="utf-8")
    past = time.time() - 3600
    os.utime(old, (past, past))
    result = runner.invoke(app, ["clean", "--keep", "1", "--config", str(config_file)])
    assert result.exit_code == 0
    assert not old.exists()
    assert new.exists()
    assert log.exists()
