from __future__ import annotations

import asyncio
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ..config import AppConfig
from ..context import ConverterContext, build_context
from ..errors import TemplateError
from ..formats import Format, detect_format
from ..logging import configure_console_logging
from ..models import ConversionDocument, ConversionMode, ConversionOptions, WrapMode
from ..settings import load_effective_config
from ..transcoder import can_handle_locally

console = Console()

app = typer.Typer(help="Markdown, HTML and document conversion toolkit")
templates_app = typer.Typer(help="Manage reference templates for DOCX, ODT and PPTX output")
app.add_typer(templates_app, name="templates")

CONFIG_OPTION = typer.Option(None, "--config", help="Path to config.toml")


def _load_config(path: Path | None) -> AppConfig:
    return load_effective_config(path)


def _context(config: Path | None, server_url: str | None = None) -> ConverterContext:
    cfg = _load_config(config)
    if server_url:
        cfg.remote.base_url = server_url
    return build_context(cfg)


def _parse_pairs(values: list[str], option: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for value in values:
        key, sep, item = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got {value!r}", param_hint=option)
        pairs[key] = item
    return pairs


def _parse_format(value: str, option: str) -> Format:
    try:
        return Format.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=option) from exc


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    configure_console_logging(verbose)


@app.command()
def convert(
    file: Path,
    to: str = typer.Option(..., "--to", "-t", help="Target format identifier"),
    source: str | None = typer.Option(None, "--from", "-f", help="Source format; inferred from the extension"),
    mode: str | None = typer.Option(None, "--mode", help="auto, local-only or remote-only"),
    standalone: bool = typer.Option(True, "--standalone/--fragment", help="Emit a complete document"),
    toc: bool = typer.Option(False, "--toc", help="Include a table of contents"),
    number_sections: bool = typer.Option(False, "--number-sections", help="Number section headings"),
    wrap: WrapMode = typer.Option(WrapMode.AUTO, "--wrap", help="Text wrapping"),
    highlight_style: str | None = typer.Option("pygments", "--highlight-style", help="Code highlight style"),
    template_id: str | None = typer.Option(None, "--template", help="Reference template id"),
    variables: list[str] = typer.Option([], "--var", help="Template variable KEY=VALUE"),
    metadata: list[str] = typer.Option([], "--meta", help="Metadata KEY=VALUE"),
    server_url: str | None = typer.Option(None, "--server-url", help="Conversion server base URL"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    if not file.is_file():
        console.print(f"[red]Conversion failed[/red]: file not found: {file}")
        raise typer.Exit(1)
    target = _parse_format(to, "--to")
    if source is not None:
        source_format = _parse_format(source, "--from")
    else:
        detected = detect_format(file)
        if detected is None:
            raise typer.BadParameter(f"Cannot infer format of {file.name}", param_hint="--from")
        source_format = detected

    ctx = _context(config, server_url)
    template = None
    if template_id:
        template = ctx.templates.get(template_id)
        if template is None:
            console.print(f"[red]Unknown template[/red]: {template_id}")
            raise typer.Exit(1)
    options = ConversionOptions(
        standalone=standalone,
        table_of_contents=toc,
        number_sections=number_sections,
        wrap=wrap,
        highlight_style=highlight_style or None,
        variables=_parse_pairs(variables, "--var"),
        metadata=_parse_pairs(metadata, "--meta"),
    )
    document = ConversionDocument.from_path(file)
    try:
        run_mode = ConversionMode.parse(mode) if mode else None
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--mode") from exc
    result = asyncio.run(
        ctx.router.convert(document, source_format, target, options, template=template, mode=run_mode)
    )
    if not result.success:
        console.print(f"[red]Conversion failed[/red] ({result.route}): {result.error_message}")
        raise typer.Exit(1)
    console.print(f"[green]Success[/green] via {result.route}: {result.output_path}")
    if result.preview:
        console.print(result.preview, markup=False, highlight=False)


@app.command()
def formats(
    category: str | None = typer.Option(None, "--category", help="Only list one category"),
) -> None:
    table = Table(title="Formats")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Extension")
    table.add_column("Input")
    for fmt in Format:
        if category and fmt.category.value.lower() != category.lower():
            continue
        table.add_row(
            fmt.value,
            fmt.display_name,
            fmt.category.value,
            f".{fmt.extension}",
            "yes" if fmt.is_input else "output only",
        )
    console.print(table)


@app.command("can-convert")
def can_convert(source: str, target: str) -> None:
    source_format = _parse_format(source, "SOURCE")
    target_format = _parse_format(target, "TARGET")
    if can_handle_locally(source_format, target_format):
        console.print(f"{source_format.display_name} -> {target_format.display_name}: [green]local[/green]")
    else:
        console.print(
            f"{source_format.display_name} -> {target_format.display_name}: [yellow]server required[/yellow]"
        )


@app.command("check-server")
def check_server(
    server_url: str | None = typer.Option(None, "--server-url", help="Conversion server base URL"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    ctx = _context(config, server_url)
    if asyncio.run(ctx.router.check_server_health()):
        console.print(f"[green]Server available[/green] at {ctx.router.base_url}")
        return
    console.print(f"[red]Server unavailable[/red] at {ctx.router.base_url}")
    raise typer.Exit(1)


@templates_app.command("list")
def templates_list(
    target: str | None = typer.Option(None, "--for", help="Only templates usable for this output format"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    ctx = _context(config)
    storage = ctx.templates
    items = storage.templates_for(_parse_format(target, "--for")) if target else storage.list()
    if not items:
        console.print("No templates stored.")
        return
    table = Table(title="Reference templates")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Added")
    for item in items:
        table.add_row(
            item.id,
            item.name,
            item.kind.display_name,
            item.date_added.strftime("%Y-%m-%d"),
        )
    console.print(table)


@templates_app.command("add")
def templates_add(
    file: Path,
    name: str | None = typer.Option(None, "--name", help="Display name"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    ctx = _context(config)
    try:
        template = ctx.templates.save(file, name or file.stem)
    except TemplateError as exc:
        console.print(f"[red]Template error[/red]: {exc.code} - {exc}")
        raise typer.Exit(1) from exc
    console.print(f"[green]Saved[/green] {template.name} as {template.id}")


@templates_app.command("rename")
def templates_rename(template_id: str, new_name: str, config: Path | None = CONFIG_OPTION) -> None:
    ctx = _context(config)
    template = ctx.templates.get(template_id)
    if template is None or ctx.templates.rename(template, new_name) is None:
        console.print(f"[red]Unknown template[/red]: {template_id}")
        raise typer.Exit(1)
    console.print(f"Renamed {template_id} to {new_name}")


@templates_app.command("remove")
def templates_remove(template_id: str, config: Path | None = CONFIG_OPTION) -> None:
    ctx = _context(config)
    template = ctx.templates.get(template_id)
    if template is None:
        console.print(f"[red]Unknown template[/red]: {template_id}")
        raise typer.Exit(1)
    try:
        ctx.templates.delete(template)
    except OSError as exc:
        console.print(f"[red]Could not delete template file[/red]: {exc}")
        raise typer.Exit(1) from exc
    console.print(f"Removed {template.name}")


@app.command()
def clean(
    older_than: int = typer.Option(
        0,
        "--older-than",
        min=0,
        help="Delete artifacts older than the given days",
    ),
    keep: int = typer.Option(
        0,
        "--keep",
        min=0,
        help="Keep the most recent N artifacts and delete the rest",
    ),
    config: Path | None = CONFIG_OPTION,
) -> None:
    cfg = _load_config(config)
    output_dir = cfg.runtime.output_dir
    if not output_dir.exists():
        console.print("No output directory found.")
        raise typer.Exit()
    candidates = sorted(
        [p for p in output_dir.iterdir() if p.is_file() and p.name != cfg.runtime.log_file],
        key=lambda p: p.stat().st_mtime,
    )
    to_remove: set[Path] = set()
    if keep:
        to_remove.update(candidates[:-keep])
    if older_than:
        threshold = time.time() - older_than * 86400
        to_remove.update(p for p in candidates if p.stat().st_mtime < threshold)
    for path in to_remove:
        path.unlink(missing_ok=True)
    console.print(f"Removed {len(to_remove)} artifacts.")


if __name__ == "__main__":
    app()
