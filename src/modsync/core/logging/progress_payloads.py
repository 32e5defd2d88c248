"""Helpers for building normalized progress payloads."""

from __future__ import annotations

from typing import Any


def build_progress_payload(
    *,
    status: str,
    percent: float,
    index: int | None = None,
    total: int | None = None,
    project_id: str | None = None,
    details: str | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct a normalized payload for progress events."""
    payload: dict[str, Any] = {"status": status, "percent": percent}

    if index is not None:
        payload["index"] = index
    if total is not None:
        payload["total"] = total
    if project_id is not None:
        payload["project_id"] = project_id
    if details is not None:
        payload["details"] = details

    if extra:
        payload.update(extra)

    return payload
