"""Shared rendering helpers for CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from rich.table import Table
from rich.text import Text

from modsync.models import InstalledItem
from modsync.ui.console import console

if TYPE_CHECKING:
    from collections.abc import Sequence

    from modsync.models import RegistryProject


def print_section_header(title: str, color: str = "blue") -> None:
    width = console.size.width
    left = f"[{color}]▎[/{color}][dim {color}]▶[/dim {color}] [{color}]{title}[/{color}]"
    left_text = Text.from_markup(left)
    separator_count = max(1, width - left_text.cell_len - 1)

    combined = Text()
    combined.append_text(left_text)
    combined.append(" ")
    combined.append("─" * separator_count, style="dim")

    console.print()
    console.print(combined)
    console.print()


def print_hint(message: str) -> None:
    console.print(f"[dim]▎• {message}[/dim]")


def format_downloads(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)


def print_projects(projects: Sequence[RegistryProject]) -> None:
    if not projects:
        console.print("[yellow]No results.[/yellow]")
        return

    table = Table(show_header=True, box=None)
    table.add_column("#", justify="right", style="dim", header_style="bold bright_white")
    table.add_column("Title", style="cyan", header_style="bold bright_white")
    table.add_column("Author", style="white", header_style="bold bright_white")
    table.add_column("Downloads", justify="right", style="green", header_style="bold bright_white")
    table.add_column("Id", style="dim", header_style="bold bright_white")

    for index, project in enumerate(projects, 1):
        table.add_row(
            str(index),
            project.title or project.slug,
            project.author or "",
            format_downloads(project.downloads),
            project.id,
        )
    console.print(table)


def load_inventory(path: Path) -> list[InstalledItem]:
    """Read installed items from a JSON list of backend records."""
    with open(path, encoding="utf-8") as handle:
        payload = json.load(handle)
    if isinstance(payload, dict):
        payload = payload.get("items", [])
    if not isinstance(payload, list):
        raise ValueError(f"Inventory must be a JSON list: {path}")
    return [InstalledItem.from_dict(entry) for entry in payload if isinstance(entry, dict)]
