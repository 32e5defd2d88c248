from __future__ import annotations

from datetime import UTC, datetime

import pytest

from modsync.models import (
    ContentType,
    InstalledItem,
    Provider,
    RegistryFile,
    RegistryProject,
    RegistryVersion,
    UpdateCandidate,
)
from modsync.updates import apply_updates, check_updates, is_newer


def _version(project_id: str, version_id: str, filename: str, label: str = "") -> RegistryVersion:
    return RegistryVersion(
        id=version_id,
        project_id=project_id,
        version_label=label or version_id,
        published_at=datetime(2024, 1, 1, tzinfo=UTC),
        files=(RegistryFile(filename=filename, url=f"https://cdn.example/{filename}", is_primary=True),),
    )


def _project(project_id: str, provider: Provider = Provider.MODRINTH) -> RegistryProject:
    return RegistryProject(id=project_id, provider=provider, slug=project_id, title=project_id.title())


def _linked(project_id: str, version_id: str, filename: str, provider: Provider = Provider.MODRINTH) -> InstalledItem:
    return InstalledItem(
        filename=filename,
        name=project_id.title(),
        provider=provider,
        project_id=project_id,
        version_id=version_id,
    )


def test_is_newer_rules() -> None:
    item = _linked("sodium", "v1", "sodium-0.5.2.jar")

    assert is_newer(item, _version("sodium", "v2", "sodium-0.5.3.jar"))
    assert not is_newer(item, _version("sodium", "v1", "sodium-0.5.2.jar"))
    assert not is_newer(item, _version("sodium", "v9", "sodium-0.5.2.jar"))

    unversioned = InstalledItem(filename="a.jar", provider=Provider.MODRINTH, project_id="a", version="1.0.0")
    assert not is_newer(unversioned, _version("a", "x", "a-1.0.0.jar", label="v1.0.0"))
    assert is_newer(unversioned, _version("a", "y", "a-1.1.0.jar", label="1.1.0"))


@pytest.mark.asyncio
async def test_check_reports_candidates_and_skips_manual_items(hub, modrinth) -> None:
    modrinth.versions["sodium"] = [_version("sodium", "v2", "sodium-0.5.3.jar")]
    modrinth.versions["lithium"] = [_version("lithium", "l1", "lithium-0.11.jar")]
    items = [
        _linked("sodium", "v1", "sodium-0.5.2.jar"),
        _linked("lithium", "l1", "lithium-0.11.jar"),
        InstalledItem(filename="handmade.jar"),
    ]

    report = await check_updates(
        hub, items, content_type=ContentType.MOD, game_version="1.20.1", loader="fabric"
    )

    assert list(report.candidates) == ["sodium"]
    assert report.candidates["sodium"].filename == "sodium-0.5.2.jar"
    assert report.checked == 2
    assert report.skipped == 1
    assert report.failed == ()
    assert ("sodium", "1.20.1", "fabric") in modrinth.version_calls


@pytest.mark.asyncio
async def test_check_isolates_failures(hub, modrinth, curseforge) -> None:
    modrinth.failing_projects.add("broken")
    curseforge.versions["238222"] = [_version("238222", "5001", "jei-15.3.jar")]
    items = [
        _linked("broken", "b1", "broken.jar"),
        _linked("238222", "5000", "jei-15.2.jar", provider=Provider.CURSEFORGE),
    ]

    report = await check_updates(hub, items, content_type=ContentType.MOD)

    assert list(report.candidates) == ["238222"]
    assert report.failed_count == 1
    assert report.failed[0].filename == "broken.jar"
    assert "versions unavailable" in report.failed[0].detail


@pytest.mark.asyncio
async def test_no_compatible_version_is_not_a_failure(hub, modrinth) -> None:
    report = await check_updates(hub, [_linked("old", "o1", "old.jar")], content_type=ContentType.MOD)

    assert report.candidates == {}
    assert report.failed == ()
    assert report.checked == 1


@pytest.mark.asyncio
async def test_loader_is_only_forwarded_for_mods(hub, modrinth) -> None:
    modrinth.versions["faithful"] = [_version("faithful", "f2", "Faithful-2.zip")]

    await check_updates(
        hub,
        [_linked("faithful", "f1", "Faithful-1.zip")],
        content_type=ContentType.RESOURCEPACK,
        game_version="1.20.1",
        loader="fabric",
    )

    assert modrinth.version_calls == [("faithful", "1.20.1", None)]


@pytest.mark.asyncio
async def test_apply_replaces_file_and_is_idempotent(hub, modrinth, backend) -> None:
    latest = _version("sodium", "v2", "sodium-0.5.3.jar")
    modrinth.projects["sodium"] = _project("sodium")
    backend.add(ContentType.MOD, _linked("sodium", "v1", "sodium-0.5.2.jar"))
    candidate = UpdateCandidate("sodium", Provider.MODRINTH, latest, "sodium-0.5.2.jar")

    first = await apply_updates(hub, backend, [candidate], content_type=ContentType.MOD)

    assert first.status == "applied"
    assert [result.status for result in first.results] == ["updated"]
    assert first.updated[0].new_filename == "sodium-0.5.3.jar"
    assert backend.delete_calls == [(ContentType.MOD, "sodium-0.5.2.jar")]
    assert [item.filename for item in backend.items[ContentType.MOD]] == ["sodium-0.5.3.jar"]
    assert backend.install_calls[0].name == "Sodium"

    operations = backend.file_operations
    second = await apply_updates(hub, backend, [candidate], content_type=ContentType.MOD)

    assert [result.status for result in second.results] == ["up_to_date"]
    assert backend.file_operations == operations


@pytest.mark.asyncio
async def test_same_filename_install_does_not_delete(hub, modrinth, backend) -> None:
    modrinth.projects["pack"] = _project("pack")
    latest = _version("pack", "p2", "Pack.zip")
    candidate = UpdateCandidate("pack", Provider.MODRINTH, latest, "Pack.zip")

    report = await apply_updates(hub, backend, [candidate], content_type=ContentType.RESOURCEPACK)

    assert report.results[0].status == "updated"
    assert report.results[0].new_filename == "Pack.zip"
    assert backend.delete_calls == []


@pytest.mark.asyncio
async def test_installed_primary_filename_is_up_to_date(hub, modrinth, backend) -> None:
    backend.add(ContentType.RESOURCEPACK, _linked("pack", "p1", "Pack.zip"))
    candidate = UpdateCandidate("pack", Provider.MODRINTH, _version("pack", "p2", "Pack.zip"), "Pack.zip")

    report = await apply_updates(hub, backend, [candidate], content_type=ContentType.RESOURCEPACK)

    assert report.results[0].status == "up_to_date"
    assert backend.file_operations == 0


@pytest.mark.asyncio
async def test_partial_failure_continues_with_remaining_items(hub, modrinth, backend) -> None:
    for project_id in ("a", "b", "c"):
        modrinth.projects[project_id] = _project(project_id)
        backend.add(ContentType.MOD, _linked(project_id, "1", f"{project_id}-1.jar"))
    backend.fail_install.add("b")
    candidates = [
        UpdateCandidate(project_id, Provider.MODRINTH, _version(project_id, "2", f"{project_id}-2.jar"), f"{project_id}-1.jar")
        for project_id in ("a", "b", "c")
    ]

    report = await apply_updates(hub, backend, candidates, content_type=ContentType.MOD)

    assert [result.status for result in report.results] == ["updated", "failed", "updated"]
    assert "disk full" in (report.failed[0].detail or "")
    assert backend.find(ContentType.MOD, "b-1.jar") is not None
    assert (ContentType.MOD, "b-1.jar") not in backend.delete_calls


@pytest.mark.asyncio
async def test_delete_failure_still_counts_as_updated(hub, modrinth, backend) -> None:
    modrinth.projects["sodium"] = _project("sodium")
    backend.add(ContentType.MOD, _linked("sodium", "v1", "sodium-0.5.2.jar"))
    backend.fail_delete.add("sodium-0.5.2.jar")
    candidate = UpdateCandidate(
        "sodium", Provider.MODRINTH, _version("sodium", "v2", "sodium-0.5.3.jar"), "sodium-0.5.2.jar"
    )

    report = await apply_updates(hub, backend, [candidate], content_type=ContentType.MOD)

    assert report.results[0].status == "updated"
    assert backend.find(ContentType.MOD, "sodium-0.5.3.jar") is not None


@pytest.mark.asyncio
async def test_unreadable_instance_fails_the_batch_without_touching_files(hub, modrinth, backend) -> None:
    modrinth.projects["sodium"] = _project("sodium")
    backend.fail_list = True
    candidate = UpdateCandidate(
        "sodium", Provider.MODRINTH, _version("sodium", "v2", "sodium-0.5.3.jar"), "sodium-0.5.2.jar"
    )

    report = await apply_updates(hub, backend, [candidate], content_type=ContentType.MOD)

    assert report.status == "failed"
    assert report.detail == "instance directory unreadable"
    assert report.results == ()
    assert backend.file_operations == 0
