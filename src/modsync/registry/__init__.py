"""Registry access: provider clients, search cache and the provider hub."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modsync.core.logging.logger import get_logger
from modsync.registry.base import RegistryClient, RegistryHub, SearchRequest, infer_provider
from modsync.registry.cache import SearchCache
from modsync.registry.curseforge import CurseForgeClient
from modsync.registry.modrinth import ModrinthClient

if TYPE_CHECKING:
    import httpx

    from modsync.config import Settings

logger = get_logger(__name__)


def build_registry_hub(settings: Settings, *, client: httpx.AsyncClient | None = None) -> RegistryHub:
    """Create clients for every provider the settings enable.

    CurseForge is only registered when an API key is configured.
    """
    clients: list[RegistryClient] = [ModrinthClient(settings.modrinth, client=client)]
    if settings.curseforge.api_key:
        clients.append(CurseForgeClient(settings.curseforge, client=client))
    else:
        logger.debug("CurseForge disabled: no API key configured")
    return RegistryHub(clients)


__all__ = [
    "CurseForgeClient",
    "ModrinthClient",
    "RegistryClient",
    "RegistryHub",
    "SearchCache",
    "SearchRequest",
    "build_registry_hub",
    "infer_provider",
]
