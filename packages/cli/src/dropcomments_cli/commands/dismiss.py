"""dismiss command — hide a finding so rescans never report it again."""

from __future__ import annotations

import click
from rich.console import Console

from dropcomments_cli.commands.scan import open_service, run_scan
from dropcomments_core.errors import DropCommentsError

console = Console()


@click.command("dismiss")
@click.argument("id_prefix")
@click.argument("path", default=".", type=click.Path(file_okay=False))
@click.option("--undo", is_flag=True, help="Restore a previously dismissed finding.")
@click.pass_context
def dismiss_cmd(ctx, id_prefix: str, path: str, undo: bool):
    """Dismiss the finding whose id starts with ID_PREFIX."""
    service = open_service(ctx, path)

    if undo:
        matches = sorted(i for i in service.item_store.dismissed_ids() if i.startswith(id_prefix))
        if not matches:
            raise click.UsageError(f"No dismissed finding matches id {id_prefix!r}.")
        if len(matches) > 1:
            raise click.UsageError(f"Id prefix {id_prefix!r} is ambiguous ({len(matches)} dismissed findings).")
        service.restore(matches[0])
        console.print(f"[green]Restored {matches[0][:8]}. It will be reported on the next scan.[/green]")
        return

    run_scan(service)
    try:
        item = service.find(id_prefix)
        service.dismiss(item)
    except DropCommentsError as e:
        raise click.UsageError(str(e))
    console.print(f"[green]Dismissed {item.id[:8]}[/green] {item.file_path}:{item.range.start.line + 1}")
