from __future__ import annotations

import pytest

from modsync.manual import ManualMetadataResolver
from modsync.models import (
    ContentType,
    InstalledItem,
    Provider,
    RegistryFile,
    RegistryProject,
    RegistryVersion,
)

NAMES = ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta", "iota", "kappa"]


def _hit(provider: Provider, project_id: str, name: str) -> RegistryProject:
    return RegistryProject(id=project_id, provider=provider, slug=name, title=name.title())


@pytest.fixture
def catalog(backend, modrinth, curseforge):
    """Ten unlinked mods: four only on Modrinth, two only on CurseForge, two on both."""
    for name in NAMES:
        backend.add(ContentType.MOD, InstalledItem(filename=f"{name}-1.0.jar"))
    for name in ("alpha", "beta", "gamma", "delta"):
        modrinth.hits[name] = [_hit(Provider.MODRINTH, f"mr-{name}", name)]
    for index, name in enumerate(("alpha", "beta", "epsilon", "zeta")):
        curseforge.hits[name] = [_hit(Provider.CURSEFORGE, str(100 + index), name)]
    return backend


def _resolver(hub, backend) -> ManualMetadataResolver:
    return ManualMetadataResolver(hub, backend, game_version="1.20.1", loader="fabric")


@pytest.mark.asyncio
async def test_dry_run_reports_counts_without_writing(hub, catalog) -> None:
    result = await _resolver(hub, catalog).resolve(ContentType.MOD, dry_run=True)

    assert result.status == "previewed"
    assert (result.scanned, result.matched, result.both_sources) == (10, 6, 2)
    assert catalog.link_calls == []


@pytest.mark.asyncio
async def test_declined_choice_cancels_everything(hub, catalog) -> None:
    asked: list[int] = []

    def decline(count: int):
        asked.append(count)
        return None

    result = await _resolver(hub, catalog).resolve_with_choice(ContentType.MOD, None, decline)

    assert result.status == "cancelled"
    assert asked == [2]
    assert catalog.link_calls == []
    assert catalog.file_operations == 0


@pytest.mark.asyncio
async def test_preferred_source_applies_to_ambiguous_items(hub, catalog) -> None:
    async def prefer_curseforge(count: int) -> Provider:
        return Provider.CURSEFORGE

    result = await _resolver(hub, catalog).resolve_with_choice(ContentType.MOD, None, prefer_curseforge)

    assert result.status == "resolved"
    assert result.updated == 6
    alpha = catalog.find(ContentType.MOD, "alpha-1.0.jar")
    gamma = catalog.find(ContentType.MOD, "gamma-1.0.jar")
    assert (alpha.provider, alpha.project_id) == (Provider.CURSEFORGE, "100")
    assert (gamma.provider, gamma.project_id) == (Provider.MODRINTH, "mr-gamma")
    assert catalog.find(ContentType.MOD, "kappa-1.0.jar").provider is None


@pytest.mark.asyncio
async def test_rerun_after_resolution_writes_nothing(hub, catalog) -> None:
    resolver = _resolver(hub, catalog)
    await resolver.resolve(ContentType.MOD, preferred_source=Provider.MODRINTH)
    writes = len(catalog.link_calls)

    again = await resolver.resolve(ContentType.MOD, preferred_source=Provider.MODRINTH)

    assert writes == 6
    assert again.scanned == 4
    assert again.updated == 0
    assert len(catalog.link_calls) == writes


@pytest.mark.asyncio
async def test_ambiguous_items_are_skipped_without_a_preference(hub, catalog) -> None:
    result = await _resolver(hub, catalog).resolve(ContentType.MOD)

    assert result.updated == 4
    assert catalog.find(ContentType.MOD, "alpha-1.0.jar").provider is None
    assert catalog.find(ContentType.MOD, "zeta-1.0.jar").provider is Provider.CURSEFORGE


@pytest.mark.asyncio
async def test_nothing_to_resolve_when_everything_is_linked(hub, backend) -> None:
    backend.add(
        ContentType.MOD,
        InstalledItem(filename="sodium.jar", provider=Provider.MODRINTH, project_id="AANobbMI"),
    )

    result = await _resolver(hub, backend).resolve(ContentType.MOD)

    assert result.status == "nothing_to_resolve"
    assert result.scanned == 0


@pytest.mark.asyncio
async def test_links_exact_version_by_file_name(hub, modrinth, backend) -> None:
    backend.add(ContentType.MOD, InstalledItem(filename="Gamma-2.0.jar.disabled"))
    modrinth.hits["Gamma"] = [_hit(Provider.MODRINTH, "mr-gamma", "gamma")]
    modrinth.versions["mr-gamma"] = [
        RegistryVersion(
            id="g3",
            project_id="mr-gamma",
            version_label="3.0",
            files=(RegistryFile(filename="gamma-3.0.jar", url=None, is_primary=True),),
        ),
        RegistryVersion(
            id="g2",
            project_id="mr-gamma",
            version_label="2.0",
            files=(RegistryFile(filename="gamma-2.0.jar", url=None, is_primary=True),),
        ),
    ]

    result = await _resolver(hub, backend).resolve(ContentType.MOD, ["Gamma-2.0.jar.disabled"])

    assert result.updated == 1
    _, filename, link = backend.link_calls[0]
    assert filename == "Gamma-2.0.jar.disabled"
    assert link.version_id == "g2"
    assert link.name == "Gamma"
    assert modrinth.version_calls == [("mr-gamma", None, None)]


@pytest.mark.asyncio
async def test_search_and_write_failures_are_isolated(hub, modrinth, curseforge, catalog) -> None:
    curseforge.fail_search = True
    catalog.fail_link.add("beta-1.0.jar")

    result = await _resolver(hub, catalog).resolve(ContentType.MOD)

    assert result.both_sources == 0
    assert result.matched == 4
    assert result.updated == 3
    assert result.failed == ("beta-1.0.jar",)


@pytest.mark.asyncio
async def test_unreadable_instance_returns_failed_result(hub, catalog) -> None:
    catalog.fail_list = True
    asked: list[int] = []

    preview = await _resolver(hub, catalog).resolve(ContentType.MOD, dry_run=True)
    chosen = await _resolver(hub, catalog).resolve_with_choice(ContentType.MOD, None, asked.append)

    assert preview.status == "failed"
    assert preview.detail == "instance directory unreadable"
    assert chosen.status == "failed"
    assert asked == []
    assert catalog.link_calls == []
