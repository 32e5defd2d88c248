"""
Update detection and bulk application for installed registry content.

Checks run concurrently (bounded) because they are read-only. Applying
updates is a plain sequential loop: one item at a time, each failure
captured in its result, never raised.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from modsync.core.exceptions import NoCompatibleVersionError
from modsync.core.logging.logger import get_logger
from modsync.instance import InstallRequest
from modsync.models import UpdateCandidate
from modsync.versions import labels_match

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from modsync.instance import InstanceBackend
    from modsync.models import ContentType, InstalledItem, RegistryVersion
    from modsync.registry.base import RegistryHub

logger = get_logger(__name__)

DEFAULT_CHECK_CONCURRENCY = 8

UpdateCheckStatus = Literal["update_available", "up_to_date", "no_compatible_version", "failed"]
UpdateApplyStatus = Literal["updated", "up_to_date", "failed"]
UpdateBatchStatus = Literal["applied", "failed"]


@dataclass(frozen=True)
class UpdateFailure:
    project_id: str
    filename: str
    detail: str


@dataclass(frozen=True)
class UpdateCheckReport:
    candidates: dict[str, UpdateCandidate] = field(default_factory=dict)
    """Keyed by project id, for badge rendering."""

    checked: int = 0
    skipped: int = 0
    failed: tuple[UpdateFailure, ...] = ()

    @property
    def failed_count(self) -> int:
        return len(self.failed)


@dataclass(frozen=True)
class UpdateApplyResult:
    project_id: str
    filename: str
    status: UpdateApplyStatus
    new_filename: str | None = None
    detail: str | None = None


@dataclass(frozen=True)
class UpdateApplyReport:
    results: tuple[UpdateApplyResult, ...] = ()
    status: UpdateBatchStatus = "applied"
    detail: str | None = None
    """Why the batch could not start, when ``status`` is ``"failed"``."""

    @property
    def updated(self) -> list[UpdateApplyResult]:
        return [result for result in self.results if result.status == "updated"]

    @property
    def failed(self) -> list[UpdateApplyResult]:
        return [result for result in self.results if result.status == "failed"]


def is_trackable(item: InstalledItem) -> bool:
    """Only items linked to a registry project can be checked for updates."""
    return item.is_linked


def is_newer(item: InstalledItem, latest: RegistryVersion) -> bool:
    """True when ``latest`` is a different release than the one installed.

    Compares version ids when the item has one; otherwise falls back to the
    normalized version label. A latest release whose primary file already has
    the installed file name is never an update.
    """
    primary = latest.primary_file
    if primary is not None and primary.filename == item.filename:
        return False
    if item.version_id:
        return latest.id != item.version_id
    return not labels_match(item.version, latest.version_label, item.provider)


async def latest_compatible_version(
    hub: RegistryHub,
    item: InstalledItem,
    *,
    content_type: ContentType,
    game_version: str | None,
    loader: str | None,
) -> RegistryVersion:
    assert item.provider is not None and item.project_id
    client = hub.client(item.provider)
    versions = await client.versions_for_project(
        item.project_id,
        content_type=content_type,
        game_version=game_version,
        loader=loader if content_type.uses_loader else None,
    )
    for version in versions:
        if version.is_installable:
            return version
    raise NoCompatibleVersionError(
        f"No compatible version for {item.name or item.filename}",
        f"game_version={game_version or '*'} loader={loader or '*'}",
    )


async def check_updates(
    hub: RegistryHub,
    items: Sequence[InstalledItem],
    *,
    content_type: ContentType,
    game_version: str | None = None,
    loader: str | None = None,
    concurrency: int = DEFAULT_CHECK_CONCURRENCY,
) -> UpdateCheckReport:
    """Find installed items whose provider offers a different latest version."""
    tracked = [item for item in items if is_trackable(item)]
    skipped = len(items) - len(tracked)
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _check(item: InstalledItem) -> tuple[UpdateCheckStatus, UpdateCandidate | str | None]:
        async with semaphore:
            try:
                latest = await latest_compatible_version(
                    hub,
                    item,
                    content_type=content_type,
                    game_version=game_version,
                    loader=loader,
                )
            except NoCompatibleVersionError as exc:
                logger.debug("No compatible update", data={"project_id": item.project_id, "detail": str(exc)})
                return "no_compatible_version", None
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Update check failed",
                    data={"project_id": item.project_id, "provider": str(item.provider), "error": str(exc)},
                )
                return "failed", str(exc)

        if not is_newer(item, latest):
            return "up_to_date", None
        assert item.provider is not None and item.project_id
        return "update_available", UpdateCandidate(
            project_id=item.project_id,
            provider=item.provider,
            latest_version=latest,
            filename=item.filename,
        )

    outcomes = await asyncio.gather(*(_check(item) for item in tracked))

    candidates: dict[str, UpdateCandidate] = {}
    failures: list[UpdateFailure] = []
    for item, (status, payload) in zip(tracked, outcomes, strict=True):
        if status == "update_available" and isinstance(payload, UpdateCandidate):
            candidates[payload.project_id] = payload
        elif status == "failed":
            failures.append(
                UpdateFailure(
                    project_id=item.project_id or "",
                    filename=item.filename,
                    detail=str(payload or ""),
                )
            )

    return UpdateCheckReport(
        candidates=candidates,
        checked=len(tracked),
        skipped=skipped,
        failed=tuple(failures),
    )


async def apply_updates(
    hub: RegistryHub,
    backend: InstanceBackend,
    candidates: Iterable[UpdateCandidate],
    *,
    content_type: ContentType,
) -> UpdateApplyReport:
    """Install each candidate's latest version, one at a time.

    The installed list is re-read first so a retried batch skips items that
    already carry the candidate version. The old file is deleted only when the
    new file name differs; an in-place overwrite keeps the replacement.
    """
    try:
        listed = await backend.list_installed(content_type)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Failed to list installed content",
            data={"content_type": content_type.value, "error": str(exc)},
        )
        return UpdateApplyReport(status="failed", detail=str(exc))
    installed = {item.project_id: item for item in listed if item.project_id}
    results: list[UpdateApplyResult] = []

    for candidate in candidates:
        latest = candidate.latest_version
        current = installed.get(candidate.project_id)
        old_filename = current.filename if current else candidate.filename

        if current is not None and not is_newer(current, latest):
            results.append(
                UpdateApplyResult(
                    project_id=candidate.project_id,
                    filename=old_filename,
                    status="up_to_date",
                )
            )
            continue

        try:
            client = hub.client(candidate.provider)
            project = await client.get_project(candidate.project_id)
            request = InstallRequest.for_version(
                provider=candidate.provider,
                content_type=content_type,
                version=latest,
                project=project,
            )
            new_filename = await backend.install_file(request)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to update item",
                data={"project_id": candidate.project_id, "filename": old_filename, "error": str(exc)},
            )
            results.append(
                UpdateApplyResult(
                    project_id=candidate.project_id,
                    filename=old_filename,
                    status="failed",
                    detail=str(exc),
                )
            )
            continue

        if new_filename != old_filename:
            try:
                await backend.delete_installed_file(content_type, old_filename)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Updated item but failed to remove the previous file",
                    data={"project_id": candidate.project_id, "filename": old_filename, "error": str(exc)},
                )

        logger.info(
            "Updated item",
            data={"project_id": candidate.project_id, "from": old_filename, "to": new_filename},
        )
        results.append(
            UpdateApplyResult(
                project_id=candidate.project_id,
                filename=old_filename,
                status="updated",
                new_filename=new_filename,
            )
        )

    return UpdateApplyReport(results=tuple(results))
