"""Main CLI entry point for modsync."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from modsync.cli.commands import search, share, updates
from modsync.config import get_settings
from modsync.core.logging.logger import configure_logging

app = typer.Typer(
    help="Search content registries, check for updates and work with share codes.",
    add_completion=False,
)

app.command("search")(search.search_command)
app.command("popular")(search.popular_command)
app.add_typer(share.app, name="share", help="Encode and inspect share codes")
app.add_typer(updates.app, name="updates", help="Check installed content for updates")


def _version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("modsync")
    except PackageNotFoundError:
        return "unknown"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", help="Path to modsync.config.yaml.", dir_okay=False),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output.")] = False,
    version: Annotated[bool, typer.Option("--version", help="Show version and exit.")] = False,
) -> None:
    """modsync - keep game instance content in sync with online registries."""
    if version:
        typer.echo(f"modsync {_version()}")
        raise typer.Exit(0)

    try:
        settings = get_settings(config)
    except (OSError, ValueError) as exc:
        typer.echo(f"Failed to load configuration: {exc}", err=True)
        raise typer.Exit(1) from exc

    logger_settings = settings.logger
    if verbose:
        logger_settings = logger_settings.model_copy(update={"level": "debug", "type": "console"})
    configure_logging(logger_settings)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


if __name__ == "__main__":
    app()
