"""Typer-based CLI for CallerGraph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .config_manager import load_crawl_config, save_crawl_config
from .crawler import Crawler
from .d2 import render_d2
from .errors import CallGraphError
from .gopls import GoplsGateway
from .models import CallSite, CrawlReport

app = typer.Typer(
    help="📞 CallerGraph — map every caller of a Go function into a D2 diagram.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CallerGraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """CallerGraph: crawl gopls call hierarchies upward from one function."""
    pass


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(exc: Exception) -> None:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _report_skipped(report: CrawlReport) -> None:
    if not report.skipped:
        return
    typer.echo(f"Skipped {len(report.skipped)} function(s):", err=True)
    for skipped in report.skipped:
        typer.echo(f"  - {skipped.function.name} ({skipped.function.location}): {skipped.reason}", err=True)


@app.command("graph")
def graph(
    name: str = typer.Argument(..., help="Function or method name to start from."),
    file: Path = typer.Argument(..., help="Go source file that defines it."),
    link_prefix: str = typer.Argument(..., help="URL prefix for links to source files."),
    max_lineages: int = typer.Option(config.MAX_LINEAGES, min=1, help="Maximum distinct functions to discover."),
    workers: int = typer.Option(config.MAX_WORKERS, min=1, help="Concurrent gopls queries."),
    timeout: float = typer.Option(config.QUERY_TIMEOUT, min=0.1, help="Seconds allowed per gopls query."),
    gopls: str = typer.Option(config.GOPLS_PATH, help="gopls executable."),
    fail_fast: bool = typer.Option(
        config.FAIL_FAST, "--fail-fast/--skip-failures", help="Abort on the first failed query."
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write D2 here instead of stdout."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
):
    """Crawl the callers of NAME in FILE and print the graph as D2."""
    _configure_logging(verbose, quiet)
    gateway = GoplsGateway(executable=gopls, timeout=timeout)
    crawler = Crawler(gateway, max_lineages=max_lineages, max_workers=workers, fail_fast=fail_fast)
    try:
        start = gateway.lookup_function(name, str(file))
        report = crawler.crawl(start)
    except CallGraphError as exc:
        _fail(exc)

    _report_skipped(report)
    diagram = render_d2(report.graph, link_prefix)
    if output is None:
        typer.echo(diagram, nl=False)
    else:
        output.write_text(diagram, encoding="utf-8")
        typer.echo(f"Wrote {len(report.graph)} edges to {output}", err=True)


def _call_site_table(title: str, call_sites: List[CallSite]) -> Table:
    table = Table(title=title)
    table.add_column("Function", style="cyan")
    table.add_column("Defined at")
    table.add_column("Call locations")
    for call_site in call_sites:
        table.add_row(
            call_site.function.name,
            str(call_site.function.location),
            "\n".join(str(loc) for loc in call_site.locations),
        )
    return table


@app.command("callers")
def callers(
    name: str = typer.Argument(..., help="Function or method name."),
    file: Path = typer.Argument(..., help="Go source file that defines it."),
    gopls: str = typer.Option(config.GOPLS_PATH, help="gopls executable."),
    timeout: float = typer.Option(config.QUERY_TIMEOUT, min=0.1, help="Seconds allowed for each query."),
):
    """Show the direct callers and callees of one function."""
    gateway = GoplsGateway(executable=gopls, timeout=timeout)
    try:
        function = gateway.lookup_function(name, str(file))
        result = gateway.call_hierarchy(function.position)
    except CallGraphError as exc:
        _fail(exc)

    console.print(f"[bold]{function.name}[/bold] {function.location}")
    console.print(_call_site_table("Callers", result.callers))
    console.print(_call_site_table("Callees", result.callees))


@app.command("show-config")
def show_config():
    """Print the effective crawl settings."""
    for key, value in load_crawl_config().items():
        typer.echo(f"{key} = {value}")


@app.command("set-config")
def set_config(
    max_lineages: Optional[int] = typer.Option(None, help="Maximum distinct functions to discover."),
    workers: Optional[int] = typer.Option(None, help="Concurrent gopls queries."),
    timeout: Optional[float] = typer.Option(None, help="Seconds allowed per gopls query."),
    gopls: Optional[str] = typer.Option(None, help="gopls executable."),
    fail_fast: Optional[bool] = typer.Option(None, "--fail-fast/--skip-failures", help="Abort on first failure."),
):
    """Persist crawl settings to the config file."""
    saved = save_crawl_config(
        max_lineages=max_lineages,
        max_workers=workers,
        timeout=timeout,
        gopls=gopls,
        fail_fast=fail_fast,
    )
    if not saved:
        typer.echo("❌ Settings were not saved (see log for the reason).", err=True)
        raise typer.Exit(code=1)
    typer.echo("✅ Saved crawl settings.")


if __name__ == "__main__":
    app()
