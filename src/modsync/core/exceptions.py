from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modsync.models import Provider


class ModsyncError(Exception):
    """Base class for modsync errors."""

    def __init__(self, message: str, details: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class RegistryError(ModsyncError):
    """A registry request failed (network, HTTP status, or unparseable payload)."""

    def __init__(
        self,
        provider: Provider,
        message: str,
        *,
        status_code: int | None = None,
        details: str = "",
    ) -> None:
        super().__init__(message, details)
        self.provider = provider
        self.status_code = status_code

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class ProviderUnavailableError(ModsyncError):
    """The requested provider is not configured (for example, missing API key)."""


class NoCompatibleVersionError(ModsyncError):
    """A project has no version matching the instance game version / loader."""


class ShareCodeError(ModsyncError):
    """A share code could not be decoded into a bundle."""
