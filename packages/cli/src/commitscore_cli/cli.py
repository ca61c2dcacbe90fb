"""CLI entry point for commitscore.

Commands:
  analyze  — score the changed files of one commit
  scan     — analyze recent commits with the worker pool, optionally on a schedule
  history  — list persisted commit analyses
  show     — per-file scores and recommendations of a persisted commit
  models   — probe the configured model provider
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from commitscore_cli.commands.analyze import analyze_cmd
from commitscore_cli.commands.history import history_cmd
from commitscore_cli.commands.models import models_cmd
from commitscore_cli.commands.scan import scan_cmd
from commitscore_cli.commands.show import show_cmd
from commitscore_cli.runtime import resolve_github_token

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .commitscore.yml settings.

    Store selection:
      store: sqlite → SQLiteStore (store_path, default .commitscore.db)
      store: memory → MemoryStore (nothing survives the process)

    This factory lives in cli.py so neither commitscore_core nor
    commitscore_store know about the CLI config format.
    """
    store_type = config.get("store", "sqlite")

    if store_type == "memory":
        from commitscore_store.memory import MemoryStore

        return MemoryStore()

    if store_type == "sqlite":
        from commitscore_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path") or ".commitscore.db")

    raise click.UsageError(f"Unknown store {store_type!r}. Use 'sqlite' or 'memory'.")


def _build_cache(config: dict):
    from commitscore_store.cache import MemoryCache, NullCache

    ttl = float(config.get("cache_ttl") or 0)
    if ttl <= 0:
        return NullCache()
    return MemoryCache(default_ttl=ttl)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )
    # Request-level chatter from the HTTP and GitHub clients is only useful when debugging.
    for noisy in ("httpx", "httpcore", "github", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("commitscore"),
    prog_name="commitscore",
)
@click.option(
    "--config",
    "config_path",
    default=".commitscore.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="COMMITSCORE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Clean-code quality scoring of GitHub commits with a language model."""
    from commitscore_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["cache"] = _build_cache(config)
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(analyze_cmd)
main.add_command(scan_cmd)
main.add_command(history_cmd)
main.add_command(show_cmd)
main.add_command(models_cmd)
