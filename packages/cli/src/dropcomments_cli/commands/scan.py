"""scan command — list comments that look stale."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from dropcomments_core.errors import WorkspaceError
from dropcomments_core.service import StaleCommentsService, build_service

console = Console()


def open_service(ctx: click.Context, path: str, overrides: dict | None = None) -> StaleCommentsService:
    """Build a service for the workspace at path using the group's config and store."""
    config = dict(ctx.obj["config"])
    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value
    root = str(Path(path).resolve())
    store = ctx.obj["store_factory"](root)
    return build_service(config, root, store)


def run_scan(service: StaleCommentsService):
    """Scan with a progress bar. Exits with a usage error if the root is unreadable."""
    with Progress(
        TextColumn("Scanning"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("scan", total=None)

        def _update(processed: int, total: int) -> None:
            progress.update(task, completed=processed, total=total)

        try:
            return service.scan_workspace(progress_callback=_update)
        except WorkspaceError as e:
            raise click.UsageError(str(e))


def _first_line(text: str, width: int = 60) -> str:
    line = text.strip().splitlines()[0] if text.strip() else ""
    return line if len(line) <= width else line[: width - 1] + "…"


def _score_style(score: float, threshold: float) -> str:
    if score >= threshold + 20:
        return "red"
    if score >= threshold:
        return "yellow"
    return "dim"


@click.command("scan")
@click.argument("path", default=".", type=click.Path(file_okay=False))
@click.option("--threshold", type=click.IntRange(0, 100), default=None, help="Minimum score to report (0-100).")
@click.option(
    "--low-confidence",
    "low_confidence",
    is_flag=True,
    default=None,
    help="Also show findings up to 10 points below the threshold.",
)
@click.pass_context
def scan_cmd(ctx, path: str, threshold: int | None, low_confidence: bool | None):
    """Scan PATH (default: current directory) for stale comments."""
    service = open_service(
        ctx,
        path,
        {"score_threshold": threshold, "show_low_confidence": low_confidence or None},
    )
    report = run_scan(service)
    items = service.get_items()

    if report.cancelled:
        console.print(f"[yellow]Scan cancelled after {report.processed}/{report.total} files.[/yellow]")
    if report.failed:
        console.print(f"[yellow]{len(report.failed)} file(s) could not be read (run with --verbose).[/yellow]")

    if not items:
        console.print(f"[green]No stale comments found in {report.total} file(s).[/green]")
        return

    threshold_value = service.orchestrator.settings.score_threshold
    table = Table(title=f"Stale comments — {len(items)} finding(s)", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", width=10)
    table.add_column("Score", justify="right", width=6)
    table.add_column("Location", max_width=40)
    table.add_column("Reasons", max_width=36)
    table.add_column("Comment", max_width=60)

    for item in items:
        style = _score_style(item.score, threshold_value)
        table.add_row(
            item.id[:8],
            f"[{style}]{item.score:.0f}[/{style}]",
            f"{item.file_path}:{item.range.start.line + 1}",
            ", ".join(item.reasons),
            _first_line(item.original_comment_text),
        )

    console.print(table)
    console.print("[dim]Use `dropcomments regenerate --id <ID>` or `dropcomments dismiss <ID>`.[/dim]")
