"""Version label helpers shared by update detection and display code."""

from __future__ import annotations

import re

from modsync.models import Provider

_ARCHIVE_EXTENSION = re.compile(r"\.(?:jar(?:\.disabled)?|zip)$", re.IGNORECASE)
_TRAILING_VERSION = re.compile(r"(\d+(?:\.\d+){1,4}(?:[-+._][0-9a-z]+)*)$", re.IGNORECASE)
_GAME_VERSION = re.compile(r"\b\d+\.\d+(?:\.\d+)?\b")
_TRAILING_GAME_VERSION = re.compile(r"([+._-])(?:mc)?\d+\.\d+(?:\.\d+)?$", re.IGNORECASE)

MAX_LABEL_LENGTH = 32


def _clean(value: str | None) -> str | None:
    text = str(value or "").strip()
    return text or None


def strip_archive_extension(value: str) -> str:
    return _ARCHIVE_EXTENSION.sub("", value)


def format_installed_version_label(
    version: str | None,
    provider: Provider | str | None,
    filename: str | None = None,
) -> str | None:
    """Return a short display label for an installed item's version.

    CurseForge reports file names as version labels, so for that provider the
    archive extension is stripped and a trailing version number is extracted.
    Labels that merely repeat the file name, or are too long to be useful,
    become ``None``.
    """
    raw = _clean(version)
    if raw is None:
        return None

    if Provider.parse(provider) is not Provider.CURSEFORGE:
        return raw

    base = strip_archive_extension(raw).strip()
    if not base:
        return None

    match = _TRAILING_VERSION.search(base)
    if match:
        return match.group(1)

    filename_base = strip_archive_extension(_clean(filename) or "").strip().lower()
    if filename_base and filename_base == base.lower():
        return None
    if len(base) > MAX_LABEL_LENGTH:
        return None
    return base


def with_version_prefix(label: str | None) -> str | None:
    text = _clean(label)
    if text is None:
        return None
    return text if text.lower().startswith("v") else f"v{text}"


def strip_game_version(version_number: str | None, game_version: str | None = None) -> str | None:
    """Remove a game-version suffix such as ``+1.20.1`` or ``-mc1.20`` from a version number."""
    raw = _clean(version_number)
    if raw is None:
        return None

    target = re.sub(r"^v", "", str(game_version or "").strip(), flags=re.IGNORECASE)
    result = raw
    if target:
        escaped = re.escape(target)
        result = re.sub(rf"(?:[+._-](?:mc)?{escaped})+$", "", result, flags=re.IGNORECASE)
        result = re.sub(rf"([+._-])(?:mc)?{escaped}([+._-])", r"\1", result, flags=re.IGNORECASE)

    result = _TRAILING_GAME_VERSION.sub("", result)
    result = re.sub(r"[+._-]{2,}", ".", result)
    result = re.sub(r"[+._-]+$", "", result).strip()

    if re.fullmatch(r"0+", result):
        return raw
    if result.isdigit() and target and target.lower() in raw.lower():
        return raw
    if not result:
        fallback = _GAME_VERSION.search(raw)
        return fallback.group(0) if fallback else raw
    return result


def normalize_version_label(label: str | None) -> str:
    """Canonical form for comparing labels when no version id is recorded."""
    text = strip_archive_extension(str(label or "").strip()).lower()
    if text.startswith("v") and text[1:2].isdigit():
        text = text[1:]
    return text


def labels_match(installed: str | None, latest: str | None, provider: Provider | None = None) -> bool:
    """True when two labels name the same release.

    Empty labels never match, so an item without any recorded version is
    always offered the latest release.
    """
    left = normalize_version_label(format_installed_version_label(installed, provider))
    right = normalize_version_label(format_installed_version_label(latest, provider))
    return bool(left) and left == right
