"""CLI command for checking installed content for updates."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.table import Table

from modsync.cli.output import load_inventory, print_hint, print_section_header
from modsync.config import get_settings
from modsync.models import ContentType, Provider
from modsync.registry import build_registry_hub
from modsync.ui.console import console
from modsync.updates import check_updates
from modsync.versions import (
    format_installed_version_label,
    strip_game_version,
    with_version_prefix,
)

if TYPE_CHECKING:
    from modsync.models import InstalledItem
    from modsync.updates import UpdateCheckReport

app = typer.Typer(help="Check installed content for updates.")


async def _check(
    items: list[InstalledItem],
    *,
    content_type: ContentType,
    game_version: str | None,
    loader: str | None,
) -> UpdateCheckReport:
    settings = get_settings()
    hub = build_registry_hub(settings)
    try:
        return await check_updates(
            hub,
            items,
            content_type=content_type,
            game_version=game_version,
            loader=loader,
            concurrency=settings.updates.check_concurrency,
        )
    finally:
        await hub.aclose()


def _latest_label(label: str, provider: Provider, game_version: str | None) -> str | None:
    formatted = format_installed_version_label(label, provider)
    if provider is Provider.CURSEFORGE:
        return formatted
    return with_version_prefix(strip_game_version(formatted, game_version))


def _print_report(
    report: UpdateCheckReport,
    items: list[InstalledItem],
    game_version: str | None = None,
) -> None:
    print_section_header("Update Check")
    console.print(
        f"[dim]▎• checked:[/dim] {report.checked}  "
        f"[dim]skipped:[/dim] {report.skipped}  "
        f"[dim]failed:[/dim] {report.failed_count}"
    )

    if not report.candidates:
        console.print("[green]Everything is up to date.[/green]")
    else:
        by_project = {item.project_id: item for item in items if item.project_id}
        table = Table(show_header=True, box=None)
        table.add_column("Name", style="cyan", header_style="bold bright_white")
        table.add_column("Provider", style="dim", header_style="bold bright_white")
        table.add_column("Installed", style="white", header_style="bold bright_white")
        table.add_column("Latest", style="green", header_style="bold bright_white")

        for project_id, candidate in report.candidates.items():
            item = by_project.get(project_id)
            installed = (
                format_installed_version_label(item.version, item.provider, item.filename)
                if item
                else None
            )
            latest = candidate.latest_version
            table.add_row(
                (item.name if item else None) or candidate.filename,
                item.provider_label if item else candidate.provider.label,
                installed or "?",
                _latest_label(latest.version_label, candidate.provider, game_version) or latest.id,
            )
        console.print(table)

    for failure in report.failed:
        console.print(f"[yellow]▎• {failure.filename}: {failure.detail}[/yellow]")
    if report.skipped:
        print_hint("Manual items are skipped; link them to a registry to track updates")


@app.command("check")
def updates_check(
    inventory: Annotated[
        Path,
        typer.Option("--inventory", "-i", exists=True, dir_okay=False, help="JSON list of installed items."),
    ],
    content_type: Annotated[
        ContentType,
        typer.Option("--type", "-t", case_sensitive=False, help="Content type of the inventory."),
    ] = ContentType.MOD,
    game_version: Annotated[
        str | None, typer.Option("--game-version", "-g", help="Instance game version.")
    ] = None,
    loader: Annotated[str | None, typer.Option("--loader", "-l", help="Instance mod loader.")] = None,
) -> None:
    """List installed items with a newer compatible version."""
    try:
        items = load_inventory(inventory)
    except ValueError as exc:
        typer.echo(f"Failed to read inventory: {exc}", err=True)
        raise typer.Exit(1) from exc

    report = asyncio.run(
        _check(items, content_type=content_type, game_version=game_version, loader=loader)
    )
    _print_report(report, items, game_version)
