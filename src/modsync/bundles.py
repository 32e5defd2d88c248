"""
Share codes: portable references to an instance's registry content.

A share code is the bundle's JSON encoded as unpadded standard base64.
Importing a bundle installs each referenced project in order, skipping
projects that are already installed, and reports progress as it goes.
"""

from __future__ import annotations

import base64
import binascii
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from modsync.constants import IMPORT_PREFETCH_PERCENT
from modsync.core.exceptions import ModsyncError, NoCompatibleVersionError, ShareCodeError
from modsync.core.logging.logger import get_logger
from modsync.core.logging.progress_payloads import build_progress_payload
from modsync.instance import InstallRequest
from modsync.models import ContentType
from modsync.registry.base import infer_provider

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from modsync.instance import InstanceBackend
    from modsync.models import InstalledItem, Provider, RegistryProject, RegistryVersion
    from modsync.registry.base import RegistryHub

logger = get_logger(__name__)

BundleImportStatus = Literal["imported", "nothing_to_import", "invalid_code", "failed"]

_BUNDLE_FIELDS: dict[ContentType, str] = {
    ContentType.MOD: "mods",
    ContentType.RESOURCEPACK: "resourcepacks",
    ContentType.SHADER: "shaders",
    ContentType.DATAPACK: "datapacks",
}

_CAMEL_KEYS = {
    "projectId": "project_id",
    "versionId": "version_id",
    "iconUrl": "icon_url",
    "versionName": "version_name",
    "fileName": "filename",
}


class ShareItem(BaseModel):
    project_id: str = ""
    version_id: str | None = None
    filename: str | None = None
    name: str | None = None
    icon_url: str | None = None
    version_name: str | None = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _normalize_item(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        normalized = dict(data)
        for camel, snake in _CAMEL_KEYS.items():
            if camel in normalized and snake not in normalized:
                normalized[snake] = normalized.pop(camel)
        if normalized.get("project_id") is not None:
            normalized["project_id"] = str(normalized["project_id"]).strip()
        if normalized.get("version_id") is not None:
            normalized["version_id"] = str(normalized["version_id"]).strip() or None
        return normalized

    @property
    def provider(self) -> Provider:
        return infer_provider(self.project_id)

    @classmethod
    def from_installed(cls, item: InstalledItem) -> ShareItem:
        return cls(
            project_id=item.project_id or "",
            version_id=item.version_id,
            filename=item.filename,
            name=item.name,
            icon_url=item.icon_url,
            version_name=item.version,
        )


class ShareBundle(BaseModel):
    name: str = ""
    version: str = ""
    """Game version of the instance the bundle was taken from."""

    loader: str = ""
    loader_version: str | None = None
    mods: list[ShareItem] = Field(default_factory=list)
    resourcepacks: list[ShareItem] = Field(default_factory=list)
    shaders: list[ShareItem] = Field(default_factory=list)
    datapacks: list[ShareItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @property
    def game_version(self) -> str:
        return self.version

    def items_for(self, content_type: ContentType) -> list[ShareItem]:
        return list(getattr(self, _BUNDLE_FIELDS[content_type]))

    @classmethod
    def from_installed(
        cls,
        *,
        name: str,
        game_version: str,
        loader: str,
        installed: Mapping[ContentType, Iterable[InstalledItem]],
        loader_version: str | None = None,
    ) -> ShareBundle:
        """Build a bundle from linked installed items; unlinked files cannot be shared."""
        sections: dict[str, list[ShareItem]] = {}
        for content_type, field_name in _BUNDLE_FIELDS.items():
            sections[field_name] = [
                ShareItem.from_installed(item)
                for item in installed.get(content_type, ())
                if item.is_linked
            ]
        return cls(
            name=name,
            version=game_version,
            loader=loader,
            loader_version=loader_version,
            **sections,
        )


def encode_share_code(bundle: ShareBundle) -> str:
    payload = bundle.model_dump_json().encode("utf-8")
    return base64.b64encode(payload).decode("ascii").rstrip("=")


def decode_share_code(code: str) -> ShareBundle:
    """Decode a share code; padded and unpadded input are both accepted."""
    text = "".join((code or "").split()).rstrip("=")
    if not text:
        raise ShareCodeError("Share code is empty")
    padded = text + "=" * (-len(text) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ShareCodeError("Share code is not valid base64", str(exc)) from exc
    try:
        return ShareBundle.model_validate_json(raw)
    except ValidationError as exc:
        raise ShareCodeError("Share code does not contain a valid bundle", str(exc)) from exc


@dataclass(frozen=True)
class ImportProgress:
    status: str
    percent: float
    index: int | None = None
    total: int | None = None
    project_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return build_progress_payload(
            status=self.status,
            percent=self.percent,
            index=self.index,
            total=self.total,
            project_id=self.project_id,
        )


@dataclass(frozen=True)
class BundleImportResult:
    status: BundleImportStatus
    installed_count: int = 0
    total: int = 0
    failed: tuple[str, ...] = ()
    """Project ids that could not be installed."""

    detail: str | None = None


def import_percent(completed: int, total: int) -> float:
    """Map ``completed`` of ``total`` items into the range after the prefetch phase."""
    if total <= 0:
        return 100.0
    span = 100.0 - IMPORT_PREFETCH_PERCENT
    return IMPORT_PREFETCH_PERCENT + (completed / total) * span


class BundleImporter:
    """Install the items a share bundle references into one instance."""

    def __init__(
        self,
        hub: RegistryHub,
        backend: InstanceBackend,
        *,
        game_version: str | None = None,
        loader: str | None = None,
    ) -> None:
        self._hub = hub
        self._backend = backend
        self._game_version = game_version
        self._loader = loader

    async def _prefetch_projects(self, items: list[ShareItem]) -> dict[str, RegistryProject]:
        by_provider: dict[Provider, list[str]] = defaultdict(list)
        for item in items:
            if item.project_id not in by_provider[item.provider]:
                by_provider[item.provider].append(item.project_id)

        projects: dict[str, RegistryProject] = {}
        for provider, project_ids in by_provider.items():
            if not self._hub.has(provider):
                continue
            try:
                fetched = await self._hub.client(provider).get_projects(project_ids)
            except ModsyncError as exc:
                logger.warning(
                    "Bulk project metadata fetch failed",
                    data={"provider": provider.value, "count": len(project_ids), "error": str(exc)},
                )
                continue
            for project in fetched:
                projects[project.id] = project
                if project.slug:
                    projects[project.slug] = project
        return projects

    async def _resolve_version(self, item: ShareItem, content_type: ContentType) -> RegistryVersion:
        client = self._hub.client(item.provider)
        if item.version_id:
            return await client.get_version(item.version_id)
        versions = await client.versions_for_project(
            item.project_id,
            content_type=content_type,
            game_version=self._game_version,
            loader=self._loader if content_type.uses_loader else None,
        )
        for version in versions:
            if version.is_installable:
                return version
        raise NoCompatibleVersionError(
            f"No compatible version for {item.name or item.project_id}",
            f"game_version={self._game_version or '*'} loader={self._loader or '*'}",
        )

    async def apply_bundle(
        self,
        bundle: ShareBundle | str,
        content_type: ContentType,
        *,
        on_progress: Callable[[ImportProgress], None] | None = None,
    ) -> BundleImportResult:
        def _report(progress: ImportProgress) -> None:
            if on_progress is not None:
                on_progress(progress)

        if isinstance(bundle, str):
            _report(ImportProgress(status="Decoding share code", percent=0.0))
            try:
                bundle = decode_share_code(bundle)
            except ShareCodeError as exc:
                logger.warning("Invalid share code", data={"error": str(exc)})
                return BundleImportResult(status="invalid_code", detail=str(exc))

        items = [item for item in bundle.items_for(content_type) if item.project_id]
        total = len(items)
        if total == 0:
            return BundleImportResult(status="nothing_to_import")

        _report(
            ImportProgress(
                status=f"Found {total} items. Fetching metadata...",
                percent=IMPORT_PREFETCH_PERCENT,
                total=total,
            )
        )
        try:
            installed = await self._backend.list_installed(content_type)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to list installed content",
                data={"content_type": content_type.value, "error": str(exc)},
            )
            return BundleImportResult(status="failed", total=total, detail=str(exc))
        installed_ids = {item.project_id for item in installed if item.project_id}
        projects = await self._prefetch_projects(items)

        installed_count = 0
        failed: list[str] = []
        for index, item in enumerate(items):
            label = item.name or item.project_id
            if item.project_id in installed_ids:
                installed_count += 1
            else:
                try:
                    version = await self._resolve_version(item, content_type)
                    project = projects.get(item.project_id)
                    if project is None:
                        try:
                            project = await self._hub.client(item.provider).get_project(item.project_id)
                        except ModsyncError as exc:
                            logger.debug(
                                "Project metadata unavailable",
                                data={"project_id": item.project_id, "error": str(exc)},
                            )
                    request = InstallRequest.for_version(
                        provider=item.provider,
                        content_type=content_type,
                        version=version,
                        project=project,
                        fallback_name=item.name,
                        fallback_icon_url=item.icon_url,
                    )
                    await self._backend.install_file(request)
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Failed to install bundle item",
                        data={"project_id": item.project_id, "error": str(exc)},
                    )
                    failed.append(item.project_id)
                else:
                    installed_ids.add(item.project_id)
                    installed_count += 1

            _report(
                ImportProgress(
                    status=f"Processed {label} ({index + 1}/{total})",
                    percent=import_percent(index + 1, total),
                    index=index,
                    total=total,
                    project_id=item.project_id,
                )
            )

        logger.info(
            "Bundle import finished",
            data={
                "content_type": content_type.value,
                "installed": installed_count,
                "failed": len(failed),
                "total": total,
            },
        )
        return BundleImportResult(
            status="imported",
            installed_count=installed_count,
            total=total,
            failed=tuple(failed),
        )
