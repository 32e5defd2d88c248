"""
Identity matching between registry projects and installed files.

Used when an installed item may lack a recorded project id, for example
files dropped into an instance by hand. Matching by project id is always
tried first; the name and file-name heuristics are fallbacks and can
produce false positives for short slugs.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from modsync.versions import strip_archive_extension

if TYPE_CHECKING:
    from collections.abc import Sequence

    from modsync.models import InstalledItem, RegistryProject

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_VERSION_TOKEN = re.compile(r"^v?\d+(?:[.x]\d*)*[a-z]?$|^(?:mc|fabric|forge|neoforge|quilt)\d.*$")
_SEPARATORS = re.compile(r"[\s_\-+.\[\]()]+")

EXACT_CONFIDENCE = 2
CONTAINS_CONFIDENCE = 1


def normalize_key(value: str | None) -> str:
    """Lowercase and drop everything that is not a letter or digit."""
    return _NON_ALNUM.sub("", str(value or "").lower())


def _lower(value: str | None) -> str:
    return str(value or "").strip().lower()


def find_installed(
    project: RegistryProject,
    installed: Sequence[InstalledItem],
    *,
    normalized: bool = False,
) -> InstalledItem | None:
    """Return the installed item that corresponds to ``project``, if any.

    Rules are evaluated in priority order across the whole list, so an exact
    project id match always beats a title collision on another item:

    1. ``project_id`` equals the project id, else the slug.
    2. Case-insensitive title equals the installed name.
    3. File name contains the title, or file name / name contains the slug.

    With ``normalized=True`` rules 2 and 3 compare alphanumeric-only forms,
    which tolerates separators such as ``sodium-extra`` vs ``Sodium Extra``.
    """
    if not installed:
        return None

    for identifier in (project.id, project.slug):
        if not identifier:
            continue
        for item in installed:
            if item.project_id and item.project_id == identifier:
                return item

    if normalized:
        title = normalize_key(project.title)
        slug = normalize_key(project.slug)
    else:
        title = _lower(project.title)
        slug = _lower(project.slug)

    if title:
        for item in installed:
            name = normalize_key(item.name) if normalized else _lower(item.name)
            if name and name == title:
                return item

    for item in installed:
        filename = normalize_key(item.filename) if normalized else _lower(item.filename)
        name = normalize_key(item.name) if normalized else _lower(item.name)
        if title and title in filename:
            return item
        if slug and (slug in filename or slug in name):
            return item
    return None


def derive_search_query(filename: str) -> str:
    """Turn an installed file name into a registry search query.

    ``Sodium-Extra-0.5.1+mc1.20.1.jar`` becomes ``Sodium Extra``.
    """
    stem = strip_archive_extension(filename.strip())
    if stem.lower().endswith(".disabled"):
        stem = stem[: -len(".disabled")]
    words: list[str] = []
    for token in _SEPARATORS.split(stem):
        if not token:
            continue
        if _VERSION_TOKEN.match(token.lower()):
            # Everything after the first version token is build metadata.
            break
        words.append(token)
    return " ".join(words) or stem


def match_confidence(project: RegistryProject, item: InstalledItem) -> int:
    """Score how well a search hit identifies an unlinked installed file.

    Returns 2 for an exact title/name equality, 1 for normalized containment
    and 0 for no match.
    """
    title = _lower(project.title)
    query = _lower(derive_search_query(item.filename))
    if title and (title == _lower(item.name) or title == query):
        return EXACT_CONFIDENCE

    normalized_title = normalize_key(project.title)
    normalized_slug = normalize_key(project.slug)
    normalized_file = normalize_key(item.filename)
    normalized_name = normalize_key(item.name)
    for needle in (normalized_slug, normalized_title):
        if needle and (needle in normalized_file or (normalized_name and needle in normalized_name)):
            return CONTAINS_CONFIDENCE
    return 0


def best_match(
    hits: Sequence[RegistryProject],
    item: InstalledItem,
) -> tuple[RegistryProject | None, int]:
    """Highest-confidence hit for ``item``; earlier hits win ties."""
    best: RegistryProject | None = None
    best_score = 0
    for hit in hits:
        score = match_confidence(hit, item)
        if score > best_score:
            best, best_score = hit, score
            if score == EXACT_CONFIDENCE:
                break
    return best, best_score
