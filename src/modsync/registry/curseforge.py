"""CurseForge registry client (https://docs.curseforge.com/rest-api/)."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from modsync.config import CurseForgeSettings
from modsync.constants import (
    CURSEFORGE_MAX_PAGE_SIZE,
    CURSEFORGE_MINECRAFT_GAME_ID,
    CURSEFORGE_SORT_FIELD_TOTAL_DOWNLOADS,
)
from modsync.core.exceptions import ProviderUnavailableError, RegistryError
from modsync.core.logging.logger import get_logger
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

logger = get_logger(__name__)

CLASS_IDS: dict[ContentType, int] = {
    ContentType.MOD: 6,
    ContentType.RESOURCEPACK: 12,
    ContentType.SHADER: 6552,
    ContentType.DATAPACK: 6945,
}

MOD_LOADER_TYPES: dict[str, int] = {
    "forge": 1,
    "fabric": 4,
    "quilt": 5,
    "neoforge": 6,
}

FILES_PAGE_SIZE = 50


class _Author(BaseModel):
    name: str = ""

    model_config = ConfigDict(extra="ignore")


class _Logo(BaseModel):
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _Category(BaseModel):
    id: int = 0
    name: str = ""
    slug: str = ""

    model_config = ConfigDict(extra="ignore")

    @property
    def label(self) -> str:
        return self.name.strip() or self.slug.strip()


class _ProjectModel(BaseModel):
    id: int
    name: str = ""
    slug: str = ""
    summary: str = ""
    download_count: float = Field(default=0, alias="downloadCount")
    authors: list[_Author] = Field(default_factory=list)
    logo: _Logo | None = None
    categories: list[_Category] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_project(self) -> RegistryProject:
        return RegistryProject(
            id=str(self.id),
            provider=Provider.CURSEFORGE,
            slug=self.slug,
            title=self.name,
            author=self.authors[0].name if self.authors else "Unknown",
            icon_url=self.logo.thumbnail_url if self.logo else None,
            downloads=max(0, int(self.download_count)),
            categories=frozenset(c.label for c in self.categories if c.label),
            description=self.summary,
        )


class _FileModel(BaseModel):
    id: int
    mod_id: int = Field(default=0, alias="modId")
    display_name: str = Field(default="", alias="displayName")
    file_name: str = Field(alias="fileName")
    file_date: datetime | None = Field(default=None, alias="fileDate")
    download_url: str | None = Field(default=None, alias="downloadUrl")
    game_versions: list[str] = Field(default_factory=list, alias="gameVersions")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def supports(self, game_version: str | None, loader: str | None) -> bool:
        """Filter on the mixed game-version/loader tags CurseForge attaches to files."""
        tags = [tag.strip().lower() for tag in self.game_versions]
        if game_version and tags and game_version.lower() not in tags:
            return False
        if loader:
            loader_tags = [tag for tag in tags if tag in MOD_LOADER_TYPES]
            # Files without loader tags are loader-agnostic.
            if loader_tags and loader.lower() not in loader_tags:
                return False
        return True

    def to_version(self, project_id: str | None = None) -> RegistryVersion:
        return RegistryVersion(
            id=str(self.id),
            project_id=project_id or str(self.mod_id),
            # CurseForge has no separate version number; the file name is the label.
            version_label=self.display_name or self.file_name,
            published_at=self.file_date,
            files=(RegistryFile(filename=self.file_name, url=self.download_url, is_primary=True),),
            name=self.display_name,
        )


class _Pagination(BaseModel):
    index: int = 0
    page_size: int = Field(default=0, alias="pageSize")
    result_count: int = Field(default=0, alias="resultCount")
    total_count: int = Field(default=0, alias="totalCount")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _SearchResponse(BaseModel):
    data: list[_ProjectModel] = Field(default_factory=list)
    pagination: _Pagination = Field(default_factory=_Pagination)

    model_config = ConfigDict(extra="ignore")


class _FilesResponse(BaseModel):
    data: list[_FileModel] = Field(default_factory=list)
    pagination: _Pagination = Field(default_factory=_Pagination)

    model_config = ConfigDict(extra="ignore")


class _ProjectResponse(BaseModel):
    data: _ProjectModel

    model_config = ConfigDict(extra="ignore")


class _ProjectListResponse(BaseModel):
    data: list[_ProjectModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class _FileListResponse(BaseModel):
    data: list[_FileModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class _CategoryListResponse(BaseModel):
    data: list[_Category] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


def _compact(value: str) -> str:
    return value.strip().lower().replace(" ", "").replace("/", "").replace("+", "")


def _parse_id(value: str, label: str) -> int:
    text = str(value).strip()
    if not text.isdigit():
        raise RegistryError(Provider.CURSEFORGE, f"Invalid CurseForge {label}", details=text)
    return int(text)


class CurseForgeClient(HttpRegistryClient):
    """CurseForge access. Requires an API key.

    Search pages report ``total_hits=None``: the declared total is unreliable
    past the API's result window, so a short page is the only end signal.
    """

    provider = Provider.CURSEFORGE

    def __init__(
        self,
        settings: CurseForgeSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or CurseForgeSettings()
        if not settings.api_key:
            raise ProviderUnavailableError(
                "CurseForge API key is not configured",
                "set curseforge.api_key or MODSYNC_CURSEFORGE__API_KEY",
            )
        super().__init__(
            base_url=settings.base_url,
            headers={"x-api-key": settings.api_key, "User-Agent": settings.user_agent},
            client=client,
        )
        self._categories: dict[int, list[_Category]] = {}

    async def _class_categories(self, class_id: int) -> list[_Category]:
        cached = self._categories.get(class_id)
        if cached is not None:
            return cached
        payload = await self._request_json(
            "GET",
            "/categories",
            params={"gameId": CURSEFORGE_MINECRAFT_GAME_ID, "classId": class_id},
        )
        categories = self._validate(_CategoryListResponse, payload).data
        self._categories[class_id] = categories
        return categories

    async def resolve_category_ids(self, names: Sequence[str], class_id: int) -> list[int]:
        """Map category names or slugs to CurseForge ids; unknown names are dropped."""
        requested = [name.strip().lower() for name in names if name and name.strip()]
        requested = [name for name in requested if name != "all"]
        if not requested:
            return []

        available = await self._class_categories(class_id)
        found: set[int] = set()
        for name in requested:
            for category in available:
                if name in (category.name.strip().lower(), category.slug.strip().lower()) or (
                    _compact(name) == _compact(category.name)
                ):
                    found.add(category.id)
                    break
            else:
                logger.debug(
                    "Unknown CurseForge category",
                    data={"category": name, "class_id": class_id},
                )
        return sorted(found)

    async def search(self, request: SearchRequest) -> SearchPage:
        class_id = CLASS_IDS[request.content_type]
        params: dict[str, Any] = {
            "gameId": CURSEFORGE_MINECRAFT_GAME_ID,
            "classId": class_id,
            "pageSize": max(1, min(request.limit, CURSEFORGE_MAX_PAGE_SIZE)),
            "index": request.offset,
            "sortField": CURSEFORGE_SORT_FIELD_TOTAL_DOWNLOADS,
            "sortOrder": "desc",
        }
        if request.query:
            params["searchFilter"] = request.query
        if request.game_version:
            params["gameVersion"] = request.game_version
        if request.loader and request.content_type.uses_loader:
            loader_type = MOD_LOADER_TYPES.get(request.loader)
            if loader_type is not None:
                params["modLoaderType"] = loader_type

        category_ids = await self.resolve_category_ids(request.categories, class_id)
        if category_ids:
            params["categoryIds"] = "[" + ",".join(str(value) for value in category_ids) + "]"

        payload = await self._request_json("GET", "/mods/search", params=params)
        result = self._validate(_SearchResponse, payload)
        return SearchPage(
            hits=tuple(project.to_project() for project in result.data),
            total_hits=None,
        )

    async def _all_files(self, mod_id: int, params: dict[str, Any]) -> list[_FileModel]:
        files: list[_FileModel] = []
        index = 0
        while True:
            payload = await self._request_json(
                "GET",
                f"/mods/{mod_id}/files",
                params={**params, "pageSize": FILES_PAGE_SIZE, "index": index},
            )
            page = self._validate(_FilesResponse, payload)
            files.extend(page.data)
            count = page.pagination.result_count or len(page.data)
            if count == 0:
                break
            index += count
            if index >= page.pagination.total_count:
                break
        return files

    async def versions_for_project(
        self,
        project_id: str,
        *,
        content_type: ContentType,
        game_version: str | None = None,
        loader: str | None = None,
    ) -> list[RegistryVersion]:
        mod_id = _parse_id(project_id, "project id")
        loader = loader if content_type.uses_loader else None
        params: dict[str, Any] = {}
        if game_version:
            params["gameVersion"] = game_version
        if loader and loader.lower() in MOD_LOADER_TYPES:
            params["modLoaderType"] = MOD_LOADER_TYPES[loader.lower()]

        files = [item for item in await self._all_files(mod_id, params) if item.supports(game_version, loader)]
        files.sort(key=lambda item: item.file_date.timestamp() if item.file_date else 0.0, reverse=True)
        return [item.to_version(str(mod_id)) for item in files]

    async def get_version(self, version_id: str) -> RegistryVersion:
        file_id = _parse_id(version_id, "file id")
        payload = await self._request_json("POST", "/mods/files", json_body={"fileIds": [file_id]})
        files = self._validate(_FileListResponse, payload).data
        if not files:
            raise RegistryError(
                self.provider, "CurseForge file not found", status_code=404, details=str(file_id)
            )
        return files[0].to_version()

    async def get_project(self, project_id: str) -> RegistryProject:
        mod_id = _parse_id(project_id, "project id")
        payload = await self._request_json("GET", f"/mods/{mod_id}")
        return self._validate(_ProjectResponse, payload).data.to_project()

    async def get_projects(self, project_ids: Sequence[str]) -> list[RegistryProject]:
        ids = sorted({_parse_id(value, "project id") for value in project_ids if value})
        if not ids:
            return []
        payload = await self._request_json("POST", "/mods", json_body={"modIds": ids})
        return [project.to_project() for project in self._validate(_ProjectListResponse, payload).data]
