"""Discovery commands: ``modsync search`` and ``modsync popular``."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer

from modsync.cli.output import print_hint, print_projects, print_section_header
from modsync.config import get_settings
from modsync.feed import FeedController, SearchContext
from modsync.models import ContentType, Provider
from modsync.registry import SearchCache, build_registry_hub
from modsync.ui.console import console

ProviderOption = Annotated[
    Provider,
    typer.Option("--provider", "-p", help="Registry to search.", case_sensitive=False),
]
TypeOption = Annotated[
    ContentType,
    typer.Option("--type", "-t", help="Content type to search for.", case_sensitive=False),
]
GameVersionOption = Annotated[
    str | None,
    typer.Option("--game-version", "-g", help="Only show content for this game version."),
]
LoaderOption = Annotated[
    str | None,
    typer.Option("--loader", "-l", help="Mod loader filter (mods only)."),
]
PagesOption = Annotated[
    int,
    typer.Option("--pages", min=1, help="Number of result pages to load."),
]


async def _run_feed(
    *,
    provider: Provider,
    content_type: ContentType,
    game_version: str | None,
    loader: str | None,
    query: str,
    categories: list[str],
    pages: int,
    popular: bool,
) -> FeedController:
    settings = get_settings()
    hub = build_registry_hub(settings)
    try:
        controller = FeedController(
            hub,
            SearchContext(
                provider=provider,
                content_type=content_type,
                game_version=game_version,
                loader=loader,
                page_size=settings.search.page_size,
            ),
            cache=SearchCache(
                ttl_seconds=settings.search.cache_ttl_seconds,
                max_entries=settings.search.cache_max_entries,
            ),
            search_on_empty=settings.search.search_on_empty,
            with_popular=popular,
        )
        if popular:
            await controller.load_popular()
        else:
            await controller.search(query, categories)
        for _ in range(pages - 1):
            if not controller.state.can_load_more:
                break
            await controller.load_more()
        return controller
    finally:
        await hub.aclose()


def _render(controller: FeedController, title: str) -> None:
    state = controller.state.active
    print_section_header(title)
    if state.error:
        console.print(f"[red]Search failed: {state.error}[/red]")
    print_projects(state.results)
    if state.has_more:
        print_hint("More results available; increase --pages to load them")


def search_command(
    query: Annotated[str, typer.Argument(help="Search text; empty sorts by downloads.")] = "",
    provider: ProviderOption = Provider.MODRINTH,
    content_type: TypeOption = ContentType.MOD,
    game_version: GameVersionOption = None,
    loader: LoaderOption = None,
    category: Annotated[
        list[str] | None,
        typer.Option("--category", "-c", help="Category filter; repeat to require several."),
    ] = None,
    pages: PagesOption = 1,
) -> None:
    """Search a registry and print the results."""
    controller = asyncio.run(
        _run_feed(
            provider=provider,
            content_type=content_type,
            game_version=game_version,
            loader=loader,
            query=query,
            categories=category or [],
            pages=pages,
            popular=False,
        )
    )

    _render(controller, f"{provider.label} {content_type.value} search")
    if controller.state.active.error:
        raise typer.Exit(1)


def popular_command(
    provider: ProviderOption = Provider.MODRINTH,
    content_type: TypeOption = ContentType.MOD,
    game_version: GameVersionOption = None,
    loader: LoaderOption = None,
    pages: PagesOption = 1,
) -> None:
    """Show the most downloaded content for a registry."""
    controller = asyncio.run(
        _run_feed(
            provider=provider,
            content_type=content_type,
            game_version=game_version,
            loader=loader,
            query="",
            categories=[],
            pages=pages,
            popular=True,
        )
    )

    _render(controller, f"Popular {content_type.value} on {provider.label}")
    if controller.state.active.error:
        raise typer.Exit(1)
