from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from modsync.constants import DEFAULT_PAGE_SIZE, SORT_POPULARITY, SORT_RELEVANCE
from modsync.core.exceptions import ProviderUnavailableError
from modsync.models import ContentType, Provider

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from modsync.models import RegistryProject, RegistryVersion, SearchPage

_CURSEFORGE_ID_PATTERN = re.compile(r"^\d+$")


@dataclass(frozen=True)
class SearchRequest:
    """A single registry search, fully described so it can be cached and replayed."""

    provider: Provider
    content_type: ContentType
    query: str = ""
    game_version: str | None = None
    loader: str | None = None
    categories: tuple[str, ...] = field(default_factory=tuple)
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0
    sort_index: str = SORT_RELEVANCE

    @classmethod
    def build(
        cls,
        *,
        provider: Provider,
        content_type: ContentType,
        query: str = "",
        game_version: str | None = None,
        loader: str | None = None,
        categories: Iterable[str] = (),
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> SearchRequest:
        """Normalize inputs and pick the sort index from the query."""
        cleaned = tuple(value.strip() for value in categories if value and value.strip())
        query = query.strip()
        return cls(
            provider=provider,
            content_type=content_type,
            query=query,
            game_version=game_version or None,
            loader=(loader or "").lower() or None,
            categories=cleaned,
            limit=limit,
            offset=offset,
            sort_index=SORT_RELEVANCE if query else SORT_POPULARITY,
        )

    @property
    def cache_key(self) -> str:
        return json.dumps(
            {
                "provider": self.provider.value,
                "query": self.query,
                "content_type": self.content_type.value,
                "game_version": self.game_version or "",
                "loader": self.loader or "",
                "categories": sorted(self.categories),
                "limit": self.limit,
                "offset": self.offset,
                "index": self.sort_index,
            },
            sort_keys=True,
        )


@runtime_checkable
class RegistryClient(Protocol):
    """Async access to one content registry, returning normalized values."""

    provider: Provider

    async def search(self, request: SearchRequest) -> SearchPage: ...

    async def versions_for_project(
        self,
        project_id: str,
        *,
        content_type: ContentType,
        game_version: str | None = None,
        loader: str | None = None,
    ) -> list[RegistryVersion]:
        """Compatible versions, newest first."""
        ...

    async def get_version(self, version_id: str) -> RegistryVersion: ...

    async def get_project(self, project_id: str) -> RegistryProject: ...

    async def get_projects(self, project_ids: Sequence[str]) -> list[RegistryProject]: ...


def infer_provider(project_id: str) -> Provider:
    """CurseForge project ids are numeric; everything else is a Modrinth id or slug."""
    if _CURSEFORGE_ID_PATTERN.match(str(project_id or "").strip()):
        return Provider.CURSEFORGE
    return Provider.MODRINTH


class RegistryHub:
    """Maps each configured provider to its client."""

    def __init__(self, clients: Mapping[Provider, RegistryClient] | Iterable[RegistryClient]) -> None:
        if isinstance(clients, dict):
            self._clients: dict[Provider, RegistryClient] = dict(clients)
        else:
            self._clients = {client.provider: client for client in clients}

    @property
    def providers(self) -> list[Provider]:
        return [provider for provider in Provider if provider in self._clients]

    def has(self, provider: Provider) -> bool:
        return provider in self._clients

    def client(self, provider: Provider) -> RegistryClient:
        try:
            return self._clients[provider]
        except KeyError:
            raise ProviderUnavailableError(
                f"{provider.label} is not configured",
                "add credentials for this provider to modsync.config.yaml",
            ) from None

    async def aclose(self) -> None:
        for client in self._clients.values():
            closer = getattr(client, "aclose", None)
            if closer is not None:
                await closer()
