"""CLI entry point for dropcomments.

Commands:
  scan        — find comments that no longer describe the code around them
  regenerate  — propose (and optionally apply) rewritten comments
  dismiss     — hide a finding permanently, or undo a dismissal
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from dropcomments_cli.commands.dismiss import dismiss_cmd
from dropcomments_cli.commands.regenerate import regenerate_cmd
from dropcomments_cli.commands.scan import scan_cmd

console = Console()


def _build_store(config: dict, workspace: str):
    """Instantiate the configured state store from .dropcomments.yml settings.

    Store selection hierarchy:
      store: gist   → GistStore  (requires gist_id and github_token)
      store: sqlite → SQLiteStore (store_path, default .dropcomments.db)
      store: noop   → NoOpStore  (dismissals last only for one command)

    This factory lives in cli.py so neither dropcomments_core nor
    dropcomments_store know about the CLI config format.
    """
    from dropcomments_store.noop import NoOpStore

    store_type = config.get("store", "sqlite")

    if store_type == "gist":
        from dropcomments_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print("[yellow]GistStore requires gist_id and a GitHub token. Falling back to no store.[/yellow]")
            return NoOpStore(workspace)
        return GistStore(gist_id=gist_id, token=token, workspace=workspace)

    if store_type == "sqlite":
        from dropcomments_store.sqlite import SQLiteStore

        db_path = config.get("store_path", ".dropcomments.db")
        return SQLiteStore(db_path=db_path, workspace=workspace)

    return NoOpStore(workspace)


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        logging.basicConfig(level=logging.WARNING, format="%(message)s")
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("dropcomments"),
    prog_name="dropcomments",
)
@click.option(
    "--config",
    "config_path",
    default=".dropcomments.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DROPCOMMENTS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log scan and generation details.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Find and fix stale code comments."""
    from dropcomments_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    if config.get("store") == "gist":
        from dropcomments_cli.auth import resolve_github_token

        token = resolve_github_token()
        if token:
            config["github_token"] = token

    def store_factory(workspace: str):
        store = _build_store(config, workspace)
        ctx.call_on_close(store.close)
        return store

    ctx.obj["config"] = config
    ctx.obj["store_factory"] = store_factory


main.add_command(scan_cmd)
main.add_command(regenerate_cmd)
main.add_command(dismiss_cmd)
