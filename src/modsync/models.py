"""
Shared value types for registry projects, versions and installed content.

Registry payloads from every provider are normalized into these types at the
client boundary; nothing downstream sees provider-specific field names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from modsync.constants import MANUAL_PROVIDER_LABEL


class Provider(StrEnum):
    MODRINTH = "modrinth"
    CURSEFORGE = "curseforge"

    @property
    def label(self) -> str:
        return "CurseForge" if self is Provider.CURSEFORGE else "Modrinth"

    @classmethod
    def parse(cls, value: Any) -> Provider | None:
        """Parse a provider label; ``None``, empty or "Manual" mean unlinked."""
        if isinstance(value, Provider):
            return value
        text = str(value or "").strip().lower()
        if not text or text == MANUAL_PROVIDER_LABEL.lower():
            return None
        try:
            return cls(text)
        except ValueError:
            return None


class ContentType(StrEnum):
    MOD = "mod"
    RESOURCEPACK = "resourcepack"
    SHADER = "shader"
    DATAPACK = "datapack"

    @property
    def uses_loader(self) -> bool:
        """Only mods are filtered by mod loader; packs and shaders are loader-agnostic."""
        return self is ContentType.MOD


@dataclass(frozen=True)
class RegistryProject:
    id: str
    provider: Provider
    slug: str
    title: str
    author: str = ""
    icon_url: str | None = None
    downloads: int = 0
    categories: frozenset[str] = frozenset()
    description: str = ""

    @property
    def key(self) -> str:
        return (self.id or self.slug).strip().lower()


@dataclass(frozen=True)
class RegistryFile:
    filename: str
    url: str | None
    is_primary: bool = False


@dataclass(frozen=True)
class RegistryVersion:
    id: str
    project_id: str
    version_label: str
    published_at: datetime | None = None
    files: tuple[RegistryFile, ...] = ()
    name: str = ""

    @property
    def primary_file(self) -> RegistryFile | None:
        for candidate in self.files:
            if candidate.is_primary:
                return candidate
        return self.files[0] if self.files else None

    @property
    def is_installable(self) -> bool:
        return bool(self.files)


@dataclass(frozen=True)
class SearchPage:
    hits: tuple[RegistryProject, ...]
    total_hits: int | None
    """Declared total, or ``None`` when the provider cannot report one."""


@dataclass(frozen=True)
class InstalledItem:
    filename: str
    name: str | None = None
    author: str | None = None
    provider: Provider | None = None
    project_id: str | None = None
    version_id: str | None = None
    version: str | None = None
    enabled: bool = True
    categories: frozenset[str] = field(default_factory=frozenset)
    icon_url: str | None = None

    @property
    def is_linked(self) -> bool:
        return self.provider is not None and bool(self.project_id)

    @property
    def provider_label(self) -> str:
        return self.provider.label if self.provider else MANUAL_PROVIDER_LABEL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstalledItem:
        """Build an item from a backend record (snake_case or camelCase keys)."""

        def _pick(*keys: str) -> Any:
            for key in keys:
                value = data.get(key)
                if value is not None and value != "":
                    return value
            return None

        filename = _pick("filename", "file_name")
        if not filename:
            raise ValueError("Installed item record is missing a filename")

        project_id = _pick("project_id", "projectId")
        version_id = _pick("version_id", "versionId")
        enabled = data.get("enabled")
        return cls(
            filename=str(filename),
            name=_pick("name", "title"),
            author=_pick("author"),
            provider=Provider.parse(_pick("provider")),
            project_id=str(project_id) if project_id is not None else None,
            version_id=str(version_id) if version_id is not None else None,
            version=_pick("version", "version_name", "versionName"),
            enabled=True if enabled is None else bool(enabled),
            categories=frozenset(data.get("categories") or ()),
            icon_url=_pick("icon_url", "iconUrl"),
        )


@dataclass(frozen=True)
class UpdateCandidate:
    project_id: str
    provider: Provider
    latest_version: RegistryVersion
    filename: str
    """Installed file the candidate replaces."""
