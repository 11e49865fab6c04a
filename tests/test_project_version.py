from __future__ import annotations

import pytest

from versioning.project_version import BuildType, ProjectVersion


def test_str_is_semantic_version() -> None:
    assert str(ProjectVersion("1.2.3", BuildType.snapshot)) == "1.2.3"
    assert str(ProjectVersion("2.0.0-rc.1+abc", BuildType.release)) == "2.0.0-rc.1+abc"


def test_build_type_flags() -> None:
    snapshot = ProjectVersion("1.2.3", BuildType.snapshot)
    release = ProjectVersion("1.2.3", BuildType.release)
    assert snapshot.is_snapshot_build and not snapshot.is_release_build
    assert release.is_release_build and not release.is_snapshot_build


def test_build_type_accepts_names() -> None:
    assert ProjectVersion("1.0.0", "Release").build_type is BuildType.release
    assert BuildType.parse(" SNAPSHOT ") is BuildType.snapshot


@pytest.mark.parametrize("semver", ["", "   ", "1.2", "v1.2.3", "01.2.3", "1.2.3-"])
def test_rejects_bad_semantic_version(semver: str) -> None:
    with pytest.raises(ValueError):
        ProjectVersion(semver, BuildType.snapshot)


def test_rejects_unknown_build_type() -> None:
    with pytest.raises(ValueError, match="Unknown build type"):
        ProjectVersion("1.2.3", "nightly")


def test_is_immutable() -> None:
    version = ProjectVersion("1.2.3")
    with pytest.raises(AttributeError):
        version.semantic_version = "2.0.0"  # type: ignore[misc]
