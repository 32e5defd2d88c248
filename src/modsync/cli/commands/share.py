"""CLI commands for share codes."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from modsync.bundles import ShareBundle, decode_share_code, encode_share_code
from modsync.cli.output import load_inventory, print_hint, print_section_header
from modsync.core.exceptions import ShareCodeError
from modsync.models import ContentType
from modsync.ui.console import console

app = typer.Typer(help="Encode and inspect share codes.")


def _print_bundle(bundle: ShareBundle) -> None:
    print_section_header(bundle.name or "Shared instance")
    loader = bundle.loader or "vanilla"
    if bundle.loader_version:
        loader = f"{loader} {bundle.loader_version}"
    console.print(f"[dim]▎• game version:[/dim] [cyan]{bundle.game_version or 'unknown'}[/cyan]")
    console.print(f"[dim]▎• loader:[/dim] [cyan]{loader}[/cyan]")

    table = Table(show_header=True, box=None)
    table.add_column("Type", style="white", header_style="bold bright_white")
    table.add_column("Name", style="cyan", header_style="bold bright_white")
    table.add_column("Project", style="dim", header_style="bold bright_white")
    table.add_column("Version", style="green", header_style="bold bright_white")

    rows = 0
    for content_type in ContentType:
        for item in bundle.items_for(content_type):
            table.add_row(
                content_type.value,
                item.name or item.filename or "",
                item.project_id or "-",
                item.version_name or item.version_id or "latest",
            )
            rows += 1

    if rows == 0:
        console.print("[yellow]The share code references no content.[/yellow]")
        return
    console.print(table)


@app.command("decode")
def share_decode(
    code: Annotated[str, typer.Argument(help="Share code to decode.", show_default=False)],
) -> None:
    """Print the contents of a share code."""
    try:
        bundle = decode_share_code(code)
    except ShareCodeError as exc:
        typer.echo(f"Invalid share code: {exc}", err=True)
        raise typer.Exit(1) from exc
    _print_bundle(bundle)


@app.command("encode")
def share_encode(
    inventory: Annotated[
        Path,
        typer.Option("--inventory", "-i", exists=True, dir_okay=False, help="JSON list of installed items."),
    ],
    game_version: Annotated[str, typer.Option("--game-version", "-g", help="Instance game version.")],
    content_type: Annotated[
        ContentType,
        typer.Option("--type", "-t", case_sensitive=False, help="Content type of the inventory."),
    ] = ContentType.MOD,
    loader: Annotated[str, typer.Option("--loader", "-l", help="Instance mod loader.")] = "vanilla",
    name: Annotated[str, typer.Option("--name", help="Bundle name.")] = "",
) -> None:
    """Build a share code from an inventory of installed items."""
    try:
        items = load_inventory(inventory)
    except ValueError as exc:
        typer.echo(f"Failed to read inventory: {exc}", err=True)
        raise typer.Exit(1) from exc

    bundle = ShareBundle.from_installed(
        name=name or inventory.stem,
        game_version=game_version,
        loader=loader,
        installed={content_type: items},
    )
    shared = len(bundle.items_for(content_type))
    skipped = len(items) - shared
    console.print(encode_share_code(bundle), soft_wrap=True)
    if skipped:
        print_hint(f"{skipped} unlinked item(s) were left out")
