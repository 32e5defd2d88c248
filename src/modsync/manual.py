"""
Link manually installed files to registry projects.

Resolution is two-phase. A dry run searches every configured provider for
each unlinked file and reports how many matched, including how many matched
equally well on more than one provider. Persisting those ambiguous items
needs a single preferred source for the whole batch; without one they are
left untouched.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from modsync.core.exceptions import ModsyncError
from modsync.core.logging.logger import get_logger
from modsync.instance import MetadataLink
from modsync.matching import best_match, derive_search_query
from modsync.registry.base import SearchRequest

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from modsync.instance import InstanceBackend
    from modsync.models import ContentType, InstalledItem, Provider, RegistryProject
    from modsync.registry.base import RegistryHub

logger = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 10

ManualResolveStatus = Literal["previewed", "resolved", "cancelled", "nothing_to_resolve", "failed"]


@dataclass(frozen=True)
class ManualMatch:
    item: InstalledItem
    scores: dict[Provider, tuple[RegistryProject, int]] = field(default_factory=dict)

    @property
    def best_score(self) -> int:
        return max((score for _, score in self.scores.values()), default=0)

    @property
    def matched(self) -> bool:
        return self.best_score > 0

    @property
    def ambiguous(self) -> bool:
        best = self.best_score
        return best > 0 and sum(1 for _, score in self.scores.values() if score == best) > 1

    def choose(self, preferred_source: Provider | None) -> tuple[Provider, RegistryProject] | None:
        """Pick the winning provider; ambiguous matches need ``preferred_source``."""
        if not self.matched:
            return None
        best = self.best_score
        leaders = [provider for provider, (_, score) in self.scores.items() if score == best]
        if len(leaders) == 1:
            provider = leaders[0]
        elif preferred_source is not None and preferred_source in leaders:
            provider = preferred_source
        else:
            return None
        return provider, self.scores[provider][0]


@dataclass(frozen=True)
class ManualResolveResult:
    status: ManualResolveStatus
    scanned: int = 0
    matched: int = 0
    updated: int = 0
    both_sources: int = 0
    failed: tuple[str, ...] = ()
    """File names whose metadata could not be written."""

    detail: str | None = None


class ManualMetadataResolver:
    def __init__(
        self,
        hub: RegistryHub,
        backend: InstanceBackend,
        *,
        game_version: str | None = None,
        loader: str | None = None,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> None:
        self._hub = hub
        self._backend = backend
        self._game_version = game_version
        self._loader = loader
        self._search_limit = search_limit

    async def _targets(
        self,
        content_type: ContentType,
        filenames: Sequence[str] | None,
    ) -> list[InstalledItem]:
        items = await self._backend.list_installed(content_type)
        unlinked = [item for item in items if not item.is_linked]
        if filenames is None:
            return unlinked
        wanted = set(filenames)
        return [item for item in unlinked if item.filename in wanted]

    async def _search(
        self,
        provider: Provider,
        content_type: ContentType,
        query: str,
    ) -> list[RegistryProject]:
        request = SearchRequest.build(
            provider=provider,
            content_type=content_type,
            query=query,
            game_version=self._game_version,
            loader=self._loader,
            limit=self._search_limit,
        )
        page = await self._hub.client(provider).search(request)
        return list(page.hits)

    async def match(self, item: InstalledItem, content_type: ContentType) -> ManualMatch:
        """Score the item against every configured provider."""
        query = derive_search_query(item.filename)
        scores: dict[Provider, tuple[RegistryProject, int]] = {}
        for provider in self._hub.providers:
            try:
                hits = await self._search(provider, content_type, query)
            except ModsyncError as exc:
                logger.warning(
                    "Manual metadata search failed",
                    data={"provider": provider.value, "filename": item.filename, "error": str(exc)},
                )
                continue
            project, score = best_match(hits, item)
            if project is not None and score > 0:
                scores[provider] = (project, score)
        return ManualMatch(item=item, scores=scores)

    async def _exact_version_id(
        self,
        provider: Provider,
        project: RegistryProject,
        content_type: ContentType,
        filename: str,
    ) -> str | None:
        """Version whose file has the installed file name, if the provider lists one."""
        try:
            versions = await self._hub.client(provider).versions_for_project(
                project.id,
                content_type=content_type,
                game_version=None,
                loader=None,
            )
        except ModsyncError as exc:
            logger.debug(
                "Could not list versions while linking",
                data={"project_id": project.id, "error": str(exc)},
            )
            return None
        target = filename.lower()
        if target.endswith(".disabled"):
            target = target[: -len(".disabled")]
        for version in versions:
            if any(item.filename.lower() == target for item in version.files):
                return version.id
        return None

    async def resolve(
        self,
        content_type: ContentType,
        filenames: Sequence[str] | None = None,
        *,
        dry_run: bool = False,
        preferred_source: Provider | None = None,
    ) -> ManualResolveResult:
        try:
            targets = await self._targets(content_type, filenames)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to list installed content",
                data={"content_type": content_type.value, "error": str(exc)},
            )
            return ManualResolveResult(status="failed", detail=str(exc))
        if not targets:
            return ManualResolveResult(status="nothing_to_resolve")

        matches = [await self.match(item, content_type) for item in targets]
        matched = sum(1 for match in matches if match.matched)
        both_sources = sum(1 for match in matches if match.ambiguous)

        if dry_run:
            return ManualResolveResult(
                status="previewed",
                scanned=len(targets),
                matched=matched,
                both_sources=both_sources,
            )

        updated = 0
        failed: list[str] = []
        for match in matches:
            choice = match.choose(preferred_source)
            if choice is None:
                continue
            provider, project = choice
            filename = match.item.filename
            version_id = await self._exact_version_id(provider, project, content_type, filename)
            link = MetadataLink(
                provider=provider,
                project_id=project.id,
                version_id=version_id,
                name=project.title or None,
                author=project.author or None,
                icon_url=project.icon_url,
            )
            try:
                await self._backend.link_metadata(content_type, filename, link)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Failed to record metadata",
                    data={"filename": filename, "project_id": project.id, "error": str(exc)},
                )
                failed.append(filename)
                continue
            updated += 1

        return ManualResolveResult(
            status="resolved",
            scanned=len(targets),
            matched=matched,
            updated=updated,
            both_sources=both_sources,
            failed=tuple(failed),
        )

    async def resolve_with_choice(
        self,
        content_type: ContentType,
        filenames: Sequence[str] | None,
        choose_source: Callable[[int], Awaitable[Provider | None] | Provider | None],
    ) -> ManualResolveResult:
        """Dry run, ask once for a source when any match is ambiguous, then persist.

        ``choose_source`` receives the ambiguous count; returning ``None``
        cancels the whole batch before anything is written.
        """
        preview = await self.resolve(content_type, filenames, dry_run=True)
        if preview.status == "failed" or preview.scanned == 0 or preview.matched == 0:
            return preview

        preferred: Provider | None = None
        if preview.both_sources > 0:
            choice = choose_source(preview.both_sources)
            if inspect.isawaitable(choice):
                choice = await choice
            if choice is None:
                logger.info(
                    "Manual metadata resolution cancelled",
                    data={"content_type": content_type.value, "both_sources": preview.both_sources},
                )
                return ManualResolveResult(
                    status="cancelled",
                    scanned=preview.scanned,
                    matched=preview.matched,
                    both_sources=preview.both_sources,
                )
            preferred = choice

        return await self.resolve(content_type, filenames, preferred_source=preferred)
