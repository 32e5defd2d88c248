"""Modrinth registry client (https://docs.modrinth.com/api/)."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from modsync.config import ModrinthSettings
from modsync.models import (
    ContentType,
    Provider,
    RegistryFile,
    RegistryProject,
    RegistryVersion,
    SearchPage,
)
from modsync.registry.http import HttpRegistryClient

if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx

    from modsync.registry.base import SearchRequest


class _ProjectModel(BaseModel):
    project_id: str
    slug: str = ""
    title: str = ""
    author: str = ""
    icon_url: str | None = None
    downloads: int = 0
    categories: list[str] = Field(default_factory=list)
    description: str = ""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _normalize_project(cls, data: Any) -> Any:
        # Search hits carry ``project_id``; the project endpoint uses ``id``.
        if isinstance(data, dict) and "project_id" not in data and "id" in data:
            data = {**data, "project_id": data["id"]}
        return data

    def to_project(self) -> RegistryProject:
        return RegistryProject(
            id=self.project_id,
            provider=Provider.MODRINTH,
            slug=self.slug,
            title=self.title,
            author=self.author,
            icon_url=self.icon_url,
            downloads=max(0, self.downloads),
            categories=frozenset(self.categories),
            description=self.description,
        )


class _SearchModel(BaseModel):
    hits: list[_ProjectModel] = Field(default_factory=list)
    total_hits: int = 0

    model_config = ConfigDict(extra="ignore")


class _FileModel(BaseModel):
    url: str | None = None
    filename: str
    primary: bool = False

    model_config = ConfigDict(extra="ignore")


class _VersionModel(BaseModel):
    id: str
    project_id: str
    name: str = ""
    version_number: str = ""
    date_published: datetime | None = None
    files: list[_FileModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def to_version(self) -> RegistryVersion:
        return RegistryVersion(
            id=self.id,
            project_id=self.project_id,
            version_label=self.version_number or self.name,
            published_at=self.date_published,
            files=tuple(
                RegistryFile(filename=item.filename, url=item.url, is_primary=item.primary)
                for item in self.files
            ),
            name=self.name,
        )


def build_facets(request: SearchRequest) -> str:
    """Each inner list is ORed, the outer list ANDs the groups together."""
    groups: list[list[str]] = [[f"project_type:{request.content_type.value}"]]
    if request.game_version:
        groups.append([f"versions:{request.game_version}"])
    if request.loader and request.content_type.uses_loader:
        groups.append([f"categories:{request.loader}"])
    for category in request.categories:
        groups.append([f"categories:{category}"])
    return json.dumps(groups)


def _sort_newest_first(versions: list[RegistryVersion]) -> list[RegistryVersion]:
    if any(version.published_at is None for version in versions):
        return versions
    return sorted(versions, key=lambda version: version.published_at, reverse=True)


class ModrinthClient(HttpRegistryClient):
    provider = Provider.MODRINTH

    def __init__(
        self,
        settings: ModrinthSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or ModrinthSettings()
        super().__init__(
            base_url=settings.base_url,
            headers={"User-Agent": settings.user_agent},
            client=client,
        )

    async def search(self, request: SearchRequest) -> SearchPage:
        params: dict[str, Any] = {
            "query": request.query,
            "facets": build_facets(request),
            "limit": request.limit,
            "offset": request.offset,
            "index": request.sort_index,
        }
        payload = await self._request_json("GET", "/search", params=params)
        result = self._validate(_SearchModel, payload)
        return SearchPage(
            hits=tuple(hit.to_project() for hit in result.hits),
            total_hits=result.total_hits,
        )

    async def versions_for_project(
        self,
        project_id: str,
        *,
        content_type: ContentType,
        game_version: str | None = None,
        loader: str | None = None,
    ) -> list[RegistryVersion]:
        params: dict[str, Any] = {}
        if game_version:
            params["game_versions"] = json.dumps([game_version])
        if loader and content_type.uses_loader:
            params["loaders"] = json.dumps([loader.lower()])
        payload = await self._request_json(
            "GET", f"/project/{project_id}/version", params=params or None
        )
        if not isinstance(payload, list):
            payload = []
        versions = [self._validate(_VersionModel, item).to_version() for item in payload]
        return _sort_newest_first(versions)

    async def get_version(self, version_id: str) -> RegistryVersion:
        payload = await self._request_json("GET", f"/version/{version_id}")
        return self._validate(_VersionModel, payload).to_version()

    async def get_project(self, project_id: str) -> RegistryProject:
        payload = await self._request_json("GET", f"/project/{project_id}")
        return self._validate(_ProjectModel, payload).to_project()

    async def get_projects(self, project_ids: Sequence[str]) -> list[RegistryProject]:
        ids = [project_id for project_id in project_ids if project_id]
        if not ids:
            return []
        payload = await self._request_json("GET", "/projects", params={"ids": json.dumps(ids)})
        if not isinstance(payload, list):
            return []
        return [self._validate(_ProjectModel, item).to_project() for item in payload]
