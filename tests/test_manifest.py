from __future__ import annotations

from pathlib import Path

import pytest

from versioning.manifest import ManifestError, load_build, load_settings
from versioning.model import Dependency
from versioning.project_version import BuildType, ProjectVersion

RELEASE_BUILD = """\
version:
  semver: 2.0.0
  build_type: release
dependencies:
  implementation:
    - org.cthing:versionparser:4.1.0
    - group: org.cthing
      name: annotations
  testImplementation:
    - junit:junit:4.13
default_tasks: [version]
"""


def test_load_root_project(write_project) -> None:
    root_dir = write_project(RELEASE_BUILD)
    settings, root = load_build(root_dir)

    assert settings.root_name == "test"
    assert root.name == "test"
    assert root.version == ProjectVersion("2.0.0", BuildType.release)
    assert root.build_file == root_dir.resolve() / "build.yaml"
    assert root.default_tasks == ["version"]
    assert root.configurations["implementation"].dependencies == [
        Dependency("org.cthing", "versionparser", "4.1.0"),
        Dependency("org.cthing", "annotations", None),
    ]
    assert root.configurations["testImplementation"].dependencies == [Dependency("junit", "junit", "4.13")]


def test_plain_version_kept_as_text(write_project) -> None:
    _, root = load_build(write_project("version: 1.2.3\n"))
    assert root.version == "1.2.3"


def test_missing_version_is_unspecified(write_project) -> None:
    _, root = load_build(write_project("{}\n"))
    assert root.version == "unspecified"


def test_no_settings_uses_directory_name(write_project) -> None:
    settings, root = load_build(write_project(settings=None))
    assert settings.settings_file is None
    assert root.name == "project"
    assert root.child_projects == []


def test_sub_projects(write_project) -> None:
    root_dir = write_project(
        settings="name: app\ninclude: [core, libs/util]\n",
        children={
            "core": "dependencies:\n  api:\n    - org.cthing:lib:1.0.0\n",
            "libs/util": "version:\n  semver: 9.9.9\n",
        },
    )
    _, root = load_build(root_dir)

    assert [p.path for p in root.all_projects] == [":", ":core", ":libs", ":libs:util"]
    core, libs, util = root.all_projects[1:]
    assert core.version is root.version
    assert core.configurations["api"].dependencies == [Dependency("org.cthing", "lib", "1.0.0")]
    assert libs.version is root.version
    assert util.version == ProjectVersion("9.9.9", BuildType.snapshot)
    assert util.build_file == root_dir.resolve() / "libs" / "util" / "build.yaml"


def test_policy_overrides(write_project) -> None:
    root_dir = write_project(
        settings="name: app\nversioning:\n  internal_groups: [com.example]\n  configurations: [shipped]\n",
    )
    settings = load_settings(root_dir)
    assert settings.policy.internal_groups == ("com.example",)
    assert settings.policy.configurations == ("shipped",)


def test_settings_yml_variant(tmp_path: Path) -> None:
    (tmp_path / "settings.yml").write_text("name: other\n", encoding="utf-8")
    assert load_settings(tmp_path).root_name == "other"


@pytest.mark.parametrize("build", [
    "- just\n- a list\n",
    "version:\n  semver: not-a-version\n",
    "version:\n  semver: 1.0.0\n  build_type: nightly\n",
    "dependencies: [org.cthing:lib:1.0]\n",
    "dependencies:\n  api: org.cthing:lib:1.0\n",
    "dependencies:\n  api:\n    - a:b:c:d\n",
    "version: [unclosed\n",
])
def test_malformed_build_file(write_project, build: str) -> None:
    with pytest.raises(ManifestError):
        load_build(write_project(build))


def test_missing_project_dir(tmp_path: Path) -> None:
    with pytest.raises(ManifestError, match="does not exist"):
        load_build(tmp_path / "missing")
