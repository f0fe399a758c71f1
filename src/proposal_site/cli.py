"""
CLI: ``proposal-site`` — build and inspect a proposal site.

Commands:
    build    Full build and atomic publish
    check    Parse and resolve without writing anything
    index    Print the index grouped by status or type
    show     Print the metadata of one document
    format   Print the canonical serialization of one document
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from proposal_site import __version__
from proposal_site.builder import BuildReport, SiteBuilder
from proposal_site.config import SiteSettings
from proposal_site.errors import ConfigError, CorpusError, HeaderError, SiteError
from proposal_site.index import Index
from proposal_site.logging import configure_logging
from proposal_site.parser.header import format_document, parse_file

app = typer.Typer(
    name="proposal-site",
    help="proposal-site — render a directory of proposal documents into a static site.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"proposal-site {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """proposal-site CLI — build, check and inspect proposal sites."""


# ── Helpers ──────────────────────────────────────────────────────────────


def _load_settings(config: Path | None, **overrides: Any) -> SiteSettings:
    """Settings from YAML (when given) and environment, CLI options winning."""
    try:
        if config is not None:
            settings = SiteSettings.from_yaml(config, **overrides)
        else:
            settings = SiteSettings.from_dict({k: v for k, v in overrides.items() if v is not None})
    except ConfigError as e:
        err_console.print(f"[bold red]Configuration error[/bold red]: {escape(e.message)}")
        raise typer.Exit(code=2) from e

    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


def _print_header_errors(error: CorpusError) -> None:
    err_console.print(f"[bold red]Build failed[/bold red]: {len(error.errors)} invalid document(s)")
    for item in error.errors:
        field = item.field or "header"
        err_console.print(
            f"  • {escape(item.document)}: [bold]{field}[/bold]: {escape(item.message)}",
            soft_wrap=True,
        )


def _print_report(report: BuildReport) -> None:
    table = Table(title="Build report", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Documents", str(report.documents))
    table.add_row("Pages written", str(report.pages_written))
    table.add_row("Dangling references", str(len(report.dangling)))
    table.add_row("Render warnings", str(len(report.warnings)))
    table.add_row("Failed documents", str(len(report.failed)))
    table.add_row("Elapsed", f"{report.elapsed_seconds:.2f}s")
    console.print(table)

    for item in report.dangling:
        console.print(f"[yellow]warning[/yellow]: {escape(item.message)}", soft_wrap=True)
    for warning in report.warnings:
        colour = "red" if warning.kind == "failure" else "yellow"
        console.print(f"[{colour}]{warning.kind}[/{colour}]: {escape(warning.message)}", soft_wrap=True)


def _index_table(title: str, entries) -> Table:
    table = Table(title=title)
    table.add_column("", style="dim")
    table.add_column("PEP", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Authors", style="green")
    for entry in entries:
        table.add_row(entry.code, str(entry.number), entry.title, ", ".join(entry.authors))
    return table


# ── proposal-site build ──────────────────────────────────────────────────


@app.command("build")
def build_cmd(
    source: Path | None = typer.Option(None, "--source", "-s", help="Directory of proposal files."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory."),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML configuration file."),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Thread pool size."),
    color_scheme: str | None = typer.Option(None, "--color-scheme", help="auto, light or dark."),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level."),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero on warnings too."),
    json_out: bool = typer.Option(False, "--json", "-j", help="Print the build report as JSON."),
) -> None:
    """Build the site and publish it atomically.

    Example:
        proposal-site build --source peps --output build
        proposal-site build -c site.yaml --strict
    """
    settings = _load_settings(
        config,
        source_dir=source,
        output_dir=output,
        max_workers=workers,
        color_scheme=color_scheme,
        log_level=log_level,
    )

    try:
        report = SiteBuilder(settings).build()
    except CorpusError as e:
        _print_header_errors(e)
        raise typer.Exit(code=1) from e
    except SiteError as e:
        err_console.print(f"[bold red]Build failed[/bold red]: {escape(e.message)}")
        raise typer.Exit(code=1) from e

    if json_out:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _print_report(report)

    if not report.ok:
        raise typer.Exit(code=1)
    if strict and report.has_warnings:
        raise typer.Exit(code=1)


# ── proposal-site check ──────────────────────────────────────────────────


@app.command("check")
def check_cmd(
    source: Path | None = typer.Option(None, "--source", "-s", help="Directory of proposal files."),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML configuration file."),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level."),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero on dangling references."),
) -> None:
    """Validate headers and cross-references without writing output."""
    settings = _load_settings(config, source_dir=source, log_level=log_level)

    try:
        analysis = SiteBuilder(settings).analyze()
    except CorpusError as e:
        _print_header_errors(e)
        raise typer.Exit(code=1) from e

    dangling = analysis.resolution.dangling
    console.print(
        f"[green]✓[/green] {len(analysis.corpus)} documents, "
        f"{len(analysis.resolution.edges())} references, {len(dangling)} dangling"
    )
    for item in dangling:
        console.print(f"[yellow]warning[/yellow]: {escape(item.message)}", soft_wrap=True)

    if strict and dangling:
        raise typer.Exit(code=1)


# ── proposal-site index ──────────────────────────────────────────────────


@app.command("index")
def index_cmd(
    source: Path | None = typer.Option(None, "--source", "-s", help="Directory of proposal files."),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML configuration file."),
    by: str = typer.Option("status", "--by", help="Group by: status, type."),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level."),
    json_out: bool = typer.Option(False, "--json", "-j", help="Output as JSON."),
) -> None:
    """Print the index of all documents."""
    if by not in ("status", "type"):
        err_console.print(f"[bold red]Error[/bold red]: unknown grouping {by!r} (use status or type)")
        raise typer.Exit(code=2)

    settings = _load_settings(config, source_dir=source, log_level=log_level)
    try:
        index: Index = SiteBuilder(settings).analyze().index
    except CorpusError as e:
        _print_header_errors(e)
        raise typer.Exit(code=1) from e

    if json_out:
        typer.echo(json.dumps(index.to_dict(), indent=2))
        return

    groups = index.by_status() if by == "status" else index.by_type()
    for key, entries in groups.items():
        console.print(_index_table(f"{key.value} ({len(entries)})", entries))


# ── proposal-site show / format ──────────────────────────────────────────


@app.command("show")
def show_cmd(
    file: Path = typer.Argument(..., help="Proposal file to parse."),
    json_out: bool = typer.Option(False, "--json", "-j", help="Output as JSON."),
) -> None:
    """Parse one document and print its metadata."""
    try:
        document = parse_file(file)
    except HeaderError as e:
        err_console.print(f"[bold red]Invalid header[/bold red]: {escape(str(e))}")
        raise typer.Exit(code=1) from e

    if json_out:
        typer.echo(json.dumps(document.to_dict(), indent=2))
        return

    table = Table(title=f"{document.label}: {document.title}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Status", document.status.value)
    table.add_row("Type", document.type.value)
    table.add_row("Created", document.created.isoformat())
    table.add_row("Authors", ", ".join(str(author) for author in document.authors))
    for name, numbers in (
        ("Requires", document.requires),
        ("Replaces", document.replaces),
        ("Superseded-By", document.superseded_by),
    ):
        if numbers:
            table.add_row(name, ", ".join(str(n) for n in numbers))
    for name, value in document.extra:
        table.add_row(name, value)
    console.print(table)


@app.command("format")
def format_cmd(
    file: Path = typer.Argument(..., help="Proposal file to normalize."),
) -> None:
    """Print the canonical serialization of one document."""
    try:
        document = parse_file(file)
    except HeaderError as e:
        err_console.print(f"[bold red]Invalid header[/bold red]: {escape(str(e))}")
        raise typer.Exit(code=1) from e

    typer.echo(format_document(document), nl=False)


if __name__ == "__main__":
    app()
