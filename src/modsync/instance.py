"""Contract for the backend that owns an instance's installed files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from modsync.models import (
        ContentType,
        InstalledItem,
        Provider,
        RegistryFile,
        RegistryProject,
        RegistryVersion,
    )


@dataclass(frozen=True)
class InstallRequest:
    provider: Provider
    project_id: str
    version_id: str
    file: RegistryFile
    content_type: ContentType
    name: str | None = None
    author: str | None = None
    icon_url: str | None = None
    version_name: str | None = None
    categories: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def for_version(
        cls,
        *,
        provider: Provider,
        content_type: ContentType,
        version: RegistryVersion,
        project: RegistryProject | None = None,
        fallback_name: str | None = None,
        fallback_icon_url: str | None = None,
    ) -> InstallRequest:
        """Install the version's primary file, carrying project metadata when known."""
        primary = version.primary_file
        if primary is None:
            raise ValueError(f"Version {version.id} has no downloadable files")
        return cls(
            provider=provider,
            project_id=project.id if project else version.project_id,
            version_id=version.id,
            file=primary,
            content_type=content_type,
            name=(project.title if project else None) or fallback_name,
            author=project.author if project else None,
            icon_url=(project.icon_url if project else None) or fallback_icon_url,
            version_name=version.version_label or version.name or None,
            categories=tuple(sorted(project.categories)) if project else (),
        )


@dataclass(frozen=True)
class MetadataLink:
    """Registry linkage recorded onto an installed file without touching its contents."""

    provider: Provider
    project_id: str
    version_id: str | None = None
    name: str | None = None
    author: str | None = None
    icon_url: str | None = None
    version_name: str | None = None


@runtime_checkable
class InstanceBackend(Protocol):
    """File operations on one game instance.

    The backend is the source of truth: callers reload ``list_installed``
    after any mutation instead of patching their own copies.
    """

    async def list_installed(self, content_type: ContentType) -> list[InstalledItem]: ...

    async def install_file(self, request: InstallRequest) -> str:
        """Download and place the file; returns the installed file name."""
        ...

    async def delete_installed_file(self, content_type: ContentType, filename: str) -> None: ...

    async def link_metadata(
        self,
        content_type: ContentType,
        filename: str,
        link: MetadataLink,
    ) -> None: ...
