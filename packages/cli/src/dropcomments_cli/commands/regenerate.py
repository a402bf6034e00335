"""regenerate command — propose updated text for stale comments."""

from __future__ import annotations

import click
from rich.console import Console

from dropcomments_cli.commands.scan import open_service, run_scan
from dropcomments_core.errors import DropCommentsError

console = Console()


def _check_credentials(config: dict) -> None:
    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")


@click.command("regenerate")
@click.argument("path", default=".", type=click.Path(file_okay=False))
@click.option("--id", "id_prefix", default=None, help="Regenerate only the finding with this id (prefix).")
@click.option(
    "--model",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option("--apply", "apply_changes", is_flag=True, help="Write accepted proposals back to the files.")
@click.option("--yes", "-y", is_flag=True, help="Apply without asking for confirmation.")
@click.pass_context
def regenerate_cmd(ctx, path: str, id_prefix: str | None, model: str | None, apply_changes: bool, yes: bool):
    """Regenerate stale comments found under PATH.

    \b
    Required environment variables:
      OPENAI_API_KEY       Required when using --model openai (default)
      ANTHROPIC_API_KEY    Required when using --model anthropic
    """
    service = open_service(ctx, path, {"model": model})
    _check_credentials({**ctx.obj["config"], **({"model": model} if model else {})})

    run_scan(service)
    if id_prefix:
        try:
            items = [service.find(id_prefix)]
        except DropCommentsError as e:
            raise click.UsageError(str(e))
    else:
        items = service.get_items()

    if not items:
        console.print("[green]No stale comments to regenerate.[/green]")
        return

    console.print(f"Regenerating {len(items)} comment(s)...")
    results = service.regenerate_all(
        items,
        progress_callback=lambda done, total: console.print(f"  [{done}/{total}]", style="dim"),
    )

    accepted = []
    for result in results:
        item = result.item
        location = f"{item.file_path}:{item.range.start.line + 1}"
        if not result.ok:
            console.print(f"\n[red]✗ {location}[/red] [dim]({item.id[:8]})[/dim] {result.error}")
            continue

        console.print(f"\n[bold]{location}[/bold] [dim]({item.id[:8]}, score {item.score:.0f})[/dim]")
        console.print(f"  [red]- {item.original_comment_text}[/red]")
        console.print(f"  [green]+ {item.regenerated_text}[/green]")

        if not apply_changes:
            continue
        if yes or click.confirm("  Apply this change?", default=True):
            accepted.append(item)

    # Bottom-up within each file: an applied edit must not shift a range still pending.
    applied = 0
    for item in sorted(accepted, key=lambda i: (i.file_path, i.range), reverse=True):
        try:
            service.apply(item)
            applied += 1
        except DropCommentsError as e:
            console.print(f"[red]Could not apply {item.file_path}:{item.range.start.line + 1}: {e}[/red]")

    failed = sum(1 for r in results if not r.ok)
    summary = f"\n[bold]{len(results) - failed} proposal(s), {failed} failure(s)"
    if apply_changes:
        summary += f", {applied} applied"
    console.print(summary + ".[/bold]")
