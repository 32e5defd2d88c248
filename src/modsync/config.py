"""
Configuration management for modsync.

Settings are layered: built-in defaults, then ``modsync.config.yaml`` (or the
file named by ``MODSYNC_CONFIG``), then ``MODSYNC_*`` environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from modsync.constants import (
    CURSEFORGE_API_BASE,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_PAGE_SIZE,
    DEFAULT_USER_AGENT,
    MODRINTH_API_BASE,
    SEARCH_CACHE_MAX_ENTRIES,
    SEARCH_CACHE_TTL_SECONDS,
)

CONFIG_PATH_ENV = "MODSYNC_CONFIG"


class SearchSettings(BaseModel):
    """Discovery feed behaviour."""

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=100)
    search_on_empty: bool = True
    """Issue a popularity-sorted search when the query and categories are empty."""

    cache_ttl_seconds: float = Field(default=SEARCH_CACHE_TTL_SECONDS, ge=0)
    cache_max_entries: int = Field(default=SEARCH_CACHE_MAX_ENTRIES, ge=0)

    model_config = ConfigDict(extra="ignore")


class ModrinthSettings(BaseModel):
    base_url: str = MODRINTH_API_BASE
    user_agent: str = DEFAULT_USER_AGENT

    model_config = ConfigDict(extra="ignore")


class CurseForgeSettings(BaseModel):
    base_url: str = CURSEFORGE_API_BASE
    api_key: str | None = None
    """CurseForge requires an API key; the provider is disabled without one."""

    user_agent: str = DEFAULT_USER_AGENT

    model_config = ConfigDict(extra="ignore")


class UpdateSettings(BaseModel):
    check_concurrency: int = Field(default=8, ge=1)
    """Upper bound on parallel latest-version lookups. Applying updates is always sequential."""

    model_config = ConfigDict(extra="ignore")


class LoggerSettings(BaseModel):
    level: Literal["debug", "info", "warning", "error"] = "warning"
    type: Literal["console", "file", "none"] = "console"
    path: str = "modsync.log"

    model_config = ConfigDict(extra="ignore")


class Settings(BaseSettings):
    """Top-level modsync settings."""

    search: SearchSettings = Field(default_factory=SearchSettings)
    modrinth: ModrinthSettings = Field(default_factory=ModrinthSettings)
    curseforge: CurseForgeSettings = Field(default_factory=CurseForgeSettings)
    updates: UpdateSettings = Field(default_factory=UpdateSettings)
    logger: LoggerSettings = Field(default_factory=LoggerSettings)

    model_config = SettingsConfigDict(
        env_prefix="MODSYNC_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values loaded from the YAML file (passed as init kwargs).
        return env_settings, init_settings, file_secret_settings


_settings: Settings | None = None


def find_config_file(cwd: Path | None = None) -> Path | None:
    """Locate the config file from ``MODSYNC_CONFIG`` or the working directory."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        path = Path(override).expanduser()
        return path if path.is_file() else None

    candidate = (cwd or Path.cwd()) / DEFAULT_CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def load_config_file(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return payload


def get_settings(config_path: str | Path | None = None) -> Settings:
    """Return the process-wide settings, loading them on first use.

    Passing ``config_path`` always reloads from that file.
    """
    global _settings
    if _settings is not None and config_path is None:
        return _settings

    path = Path(config_path) if config_path is not None else find_config_file()
    payload = load_config_file(path) if path is not None else {}
    _settings = Settings(**payload)
    return _settings
