import pytest

from modsync.models import Provider
from modsync.versions import (
    format_installed_version_label,
    labels_match,
    normalize_version_label,
    strip_archive_extension,
    with_version_prefix,
)


@pytest.mark.parametrize(
    ("version", "provider", "filename", "expected"),
    [
        ("0.5.3", Provider.MODRINTH, None, "0.5.3"),
        ("mc1.20.1-0.5.3", None, None, "mc1.20.1-0.5.3"),
        ("  ", Provider.CURSEFORGE, None, None),
        (None, Provider.CURSEFORGE, None, None),
        ("Sodium 0.5.3.jar", Provider.CURSEFORGE, None, "0.5.3"),
        ("Sodium 0.5.3.jar", "curseforge", None, "0.5.3"),
        ("AppleSkin.jar", Provider.CURSEFORGE, "AppleSkin.jar", None),
        ("Release Candidate", Provider.CURSEFORGE, "other.jar", "Release Candidate"),
        ("An Extremely Descriptive Release Name", Provider.CURSEFORGE, None, None),
    ],
)
def test_format_installed_version_label(version, provider, filename, expected) -> None:
    assert format_installed_version_label(version, provider, filename) == expected


def test_strip_archive_extension_handles_disabled_jars() -> None:
    assert strip_archive_extension("sodium.jar.disabled") == "sodium"
    assert strip_archive_extension("Faithful.ZIP") == "Faithful"
    assert strip_archive_extension("notes.txt") == "notes.txt"


def test_with_version_prefix() -> None:
    assert with_version_prefix("1.2.0") == "v1.2.0"
    assert with_version_prefix("v1.2.0") == "v1.2.0"
    assert with_version_prefix("") is None


def test_normalize_version_label() -> None:
    assert normalize_version_label("V1.4.0.jar") == "1.4.0"
    assert normalize_version_label("vanilla") == "vanilla"
    assert normalize_version_label(None) == ""


def test_labels_match() -> None:
    assert labels_match("v0.5.3", "0.5.3")
    assert labels_match("Sodium 0.5.3.jar", "sodium-0.5.3.jar", Provider.CURSEFORGE)
    assert not labels_match("0.5.2", "0.5.3")
    assert not labels_match(None, None)
    assert not labels_match("", "0.5.3")
