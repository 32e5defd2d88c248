import pytest

from modsync.matching import (
    CONTAINS_CONFIDENCE,
    EXACT_CONFIDENCE,
    best_match,
    derive_search_query,
    find_installed,
    match_confidence,
)
from modsync.models import InstalledItem, Provider, RegistryProject


def _project(project_id: str, slug: str, title: str) -> RegistryProject:
    return RegistryProject(id=project_id, provider=Provider.MODRINTH, slug=slug, title=title)


SODIUM = _project("AANobbMI", "sodium", "Sodium")


def test_project_id_beats_title_collision_later_in_list() -> None:
    impostor = InstalledItem(filename="sodium-fork.jar", name="Sodium")
    linked = InstalledItem(filename="renamed.jar", name="Renamed", project_id="AANobbMI")

    assert find_installed(SODIUM, [impostor, linked]) is linked


def test_project_id_stored_as_slug_matches_before_title() -> None:
    impostor = InstalledItem(filename="sodium-fork.jar", name="Sodium")
    stored_by_slug = InstalledItem(filename="renamed.jar", name="Renamed", project_id="sodium")

    assert find_installed(SODIUM, [impostor, stored_by_slug]) is stored_by_slug


def test_project_id_match_wins_over_slug_match() -> None:
    by_slug = InstalledItem(filename="a.jar", project_id="sodium")
    by_id = InstalledItem(filename="b.jar", project_id="AANobbMI")

    assert find_installed(SODIUM, [by_slug, by_id]) is by_id


def test_title_equality_beats_filename_containment() -> None:
    by_filename = InstalledItem(filename="sodium-extra-0.5.jar", name="Sodium Extra")
    by_name = InstalledItem(filename="rendering.jar", name="sodium")

    assert find_installed(SODIUM, [by_filename, by_name]) is by_name


def test_filename_or_name_containment_is_the_fallback() -> None:
    item = InstalledItem(filename="iris-mc1.20.1-1.6.4.jar")
    iris = _project("YL57xq9U", "iris", "Iris Shaders")

    assert find_installed(iris, [item]) is item


def test_normalized_mode_ignores_separators() -> None:
    item = InstalledItem(filename="extras.jar", name="sodium-extra")
    extra = _project("PtjYWJkn", "sodium-extra", "Sodium Extra")

    assert find_installed(extra, [item], normalized=True) is item
    assert find_installed(_project("x", "", "Sodium Extra"), [item]) is None


def test_no_match_returns_none() -> None:
    assert find_installed(SODIUM, []) is None
    assert find_installed(SODIUM, [InstalledItem(filename="lithium.jar", name="Lithium")]) is None


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("Sodium-Extra-0.5.1+mc1.20.1.jar", "Sodium Extra"),
        ("fabric-api-0.92.0+1.20.1.jar", "fabric api"),
        ("iris-mc1.20.1-1.6.4.jar", "iris"),
        ("OptiFine_1.20.1_HD_U_I6.jar.disabled", "OptiFine"),
        ("Faithful 32x.zip", "Faithful"),
        ("1.20.1.jar", "1.20.1"),
    ],
)
def test_derive_search_query(filename, expected) -> None:
    assert derive_search_query(filename) == expected


def test_match_confidence_levels() -> None:
    item = InstalledItem(filename="Sodium-0.5.3.jar")

    assert match_confidence(SODIUM, item) == EXACT_CONFIDENCE
    assert match_confidence(_project("a", "sodium", "Sodium Extra"), item) == CONTAINS_CONFIDENCE
    assert match_confidence(_project("b", "lithium", "Lithium"), item) == 0


def test_best_match_prefers_exact_over_containment() -> None:
    item = InstalledItem(filename="Sodium-0.5.3.jar")
    partial = _project("a", "sodium", "Sodium Extra")

    project, score = best_match([partial, SODIUM], item)

    assert project is SODIUM
    assert score == EXACT_CONFIDENCE
    assert best_match([], item) == (None, 0)
