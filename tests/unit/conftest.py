from __future__ import annotations

import asyncio
import dataclasses
import inspect
import os
from collections.abc import Awaitable, Callable

import pytest

import modsync.config as config_module
from modsync.core.exceptions import RegistryError
from modsync.instance import InstallRequest, MetadataLink
from modsync.models import (
    ContentType,
    InstalledItem,
    Provider,
    RegistryProject,
    RegistryVersion,
    SearchPage,
)
from modsync.registry.base import RegistryHub, SearchRequest

SearchHandler = Callable[[SearchRequest], "Awaitable[SearchPage] | SearchPage"]


@pytest.fixture(autouse=True)
def isolate_settings(tmp_path, monkeypatch):
    """Keep cached settings and MODSYNC_* variables from leaking between tests."""
    original_settings = getattr(config_module, "_settings", None)
    for key in list(os.environ):
        if key.startswith("MODSYNC_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    config_module._settings = None
    try:
        yield
    finally:
        config_module._settings = original_settings


class FakeRegistryClient:
    """In-memory registry. Tests set ``hits``/``versions``/``projects`` or a custom ``search_handler``."""

    def __init__(self, provider: Provider) -> None:
        self.provider = provider
        self.hits: dict[str, list[RegistryProject]] = {}
        self.total_hits: int | None = None
        self.search_handler: SearchHandler | None = None
        self.versions: dict[str, list[RegistryVersion]] = {}
        self.projects: dict[str, RegistryProject] = {}
        self.failing_projects: set[str] = set()
        self.fail_search = False
        self.fail_bulk = False
        self.search_calls: list[SearchRequest] = []
        self.version_calls: list[tuple[str, str | None, str | None]] = []
        self.bulk_calls: list[list[str]] = []

    def _error(self, message: str) -> RegistryError:
        return RegistryError(self.provider, message, status_code=503)

    async def search(self, request: SearchRequest) -> SearchPage:
        self.search_calls.append(request)
        if self.fail_search:
            raise self._error("search unavailable")
        if self.search_handler is not None:
            result = self.search_handler(request)
            if inspect.isawaitable(result):
                result = await result
            return result
        hits = self.hits.get(request.query, [])
        page = hits[request.offset : request.offset + request.limit]
        return SearchPage(hits=tuple(page), total_hits=self.total_hits)

    async def versions_for_project(
        self,
        project_id: str,
        *,
        content_type: ContentType,
        game_version: str | None = None,
        loader: str | None = None,
    ) -> list[RegistryVersion]:
        self.version_calls.append((project_id, game_version, loader))
        if project_id in self.failing_projects:
            raise self._error(f"versions unavailable for {project_id}")
        return list(self.versions.get(project_id, []))

    async def get_version(self, version_id: str) -> RegistryVersion:
        for versions in self.versions.values():
            for version in versions:
                if version.id == version_id:
                    return version
        raise RegistryError(self.provider, "version not found", status_code=404)

    async def get_project(self, project_id: str) -> RegistryProject:
        if project_id in self.failing_projects or project_id not in self.projects:
            raise RegistryError(self.provider, "project not found", status_code=404)
        return self.projects[project_id]

    async def get_projects(self, project_ids) -> list[RegistryProject]:
        self.bulk_calls.append(list(project_ids))
        if self.fail_bulk:
            raise self._error("bulk lookup unavailable")
        return [self.projects[pid] for pid in project_ids if pid in self.projects]


class FakeInstanceBackend:
    """Instance file store that records every mutation."""

    def __init__(self) -> None:
        self.items: dict[ContentType, list[InstalledItem]] = {ct: [] for ct in ContentType}
        self.install_calls: list[InstallRequest] = []
        self.delete_calls: list[tuple[ContentType, str]] = []
        self.link_calls: list[tuple[ContentType, str, MetadataLink]] = []
        self.fail_install: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_link: set[str] = set()
        self.fail_list = False

    @property
    def file_operations(self) -> int:
        return len(self.install_calls) + len(self.delete_calls)

    def add(self, content_type: ContentType, item: InstalledItem) -> None:
        self.items[content_type].append(item)

    def find(self, content_type: ContentType, filename: str) -> InstalledItem | None:
        for item in self.items[content_type]:
            if item.filename == filename:
                return item
        return None

    async def list_installed(self, content_type: ContentType) -> list[InstalledItem]:
        if self.fail_list:
            raise OSError("instance directory unreadable")
        return list(self.items[content_type])

    async def install_file(self, request: InstallRequest) -> str:
        self.install_calls.append(request)
        if request.project_id in self.fail_install:
            raise OSError(f"disk full while installing {request.project_id}")
        filename = request.file.filename
        installed = InstalledItem(
            filename=filename,
            name=request.name,
            author=request.author,
            provider=request.provider,
            project_id=request.project_id,
            version_id=request.version_id,
            version=request.version_name,
        )
        bucket = self.items[request.content_type]
        bucket[:] = [item for item in bucket if item.filename != filename]
        bucket.append(installed)
        return filename

    async def delete_installed_file(self, content_type: ContentType, filename: str) -> None:
        self.delete_calls.append((content_type, filename))
        if filename in self.fail_delete:
            raise OSError(f"file locked: {filename}")
        bucket = self.items[content_type]
        bucket[:] = [item for item in bucket if item.filename != filename]

    async def link_metadata(self, content_type: ContentType, filename: str, link: MetadataLink) -> None:
        self.link_calls.append((content_type, filename, link))
        if filename in self.fail_link:
            raise OSError(f"metadata store read-only: {filename}")
        bucket = self.items[content_type]
        for index, item in enumerate(bucket):
            if item.filename == filename:
                bucket[index] = dataclasses.replace(
                    item,
                    provider=link.provider,
                    project_id=link.project_id,
                    version_id=link.version_id,
                    name=item.name or link.name,
                )


class Gate:
    """Lets a test hold a fake search open until it chooses to release it."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self._release = asyncio.Event()

    def release(self) -> None:
        self._release.set()

    async def wait(self) -> None:
        self.entered.set()
        await self._release.wait()


@pytest.fixture
def modrinth() -> FakeRegistryClient:
    return FakeRegistryClient(Provider.MODRINTH)


@pytest.fixture
def curseforge() -> FakeRegistryClient:
    return FakeRegistryClient(Provider.CURSEFORGE)


@pytest.fixture
def hub(modrinth: FakeRegistryClient, curseforge: FakeRegistryClient) -> RegistryHub:
    return RegistryHub([modrinth, curseforge])


@pytest.fixture
def backend() -> FakeInstanceBackend:
    return FakeInstanceBackend()


@pytest.fixture
def make_gate() -> Callable[[], Gate]:
    return Gate
