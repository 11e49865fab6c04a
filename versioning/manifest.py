"""
manifest.py

Responsibility: Load a multi-module project from YAML files into a `Project` tree.

Layout on disk:
- `settings.yaml` (or `settings.yml`) at the root: project `name`, `include`d
  sub-project directories and an optional `versioning` policy block.
- `build.yaml` in the root and in every included directory: `version`,
  `dependencies` keyed by configuration name, and `default_tasks`.

The loader only checks structure. Whether the version is acceptable is up to
the versioning plugin.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from versioning.host import BuildError
from versioning.model import Configuration, Dependency, Project
from versioning.project_version import ProjectVersion

BUILD_FILENAME = "build.yaml"
SETTINGS_FILENAMES = ("settings.yaml", "settings.yml")
UNSPECIFIED_VERSION = "unspecified"


class ManifestError(BuildError):
    pass


@dataclass(frozen=True)
class PolicySettings:
    """Overrides for the versioning policy constants; None keeps the default."""

    internal_groups: tuple[str, ...] | None = None
    configurations: tuple[str, ...] | None = None


@dataclass(frozen=True)
class Settings:
    root_name: str
    include: tuple[str, ...] = ()
    settings_file: Path | None = None
    policy: PolicySettings = field(default_factory=PolicySettings)


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ManifestError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"{path} must be a mapping/object at the top level.")
    return data


def _str_list(value: Any, what: str, path: Path) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ManifestError(f"`{what}` in {path} must be a list.")
    return tuple(str(v).strip() for v in value if str(v).strip())


def load_settings(root_dir: str | Path) -> Settings:
    root = Path(root_dir)
    for filename in SETTINGS_FILENAMES:
        path = root / filename
        if path.is_file():
            break
    else:
        return Settings(root_name=root.resolve().name)

    data = _load_yaml_mapping(path)
    name = str(data.get("name") or "").strip() or root.resolve().name

    policy_raw = data.get("versioning") or {}
    if not isinstance(policy_raw, dict):
        raise ManifestError(f"`versioning` in {path} must be an object/mapping when provided.")
    groups = policy_raw.get("internal_groups")
    configs = policy_raw.get("configurations")
    policy = PolicySettings(
        internal_groups=_str_list(groups, "versioning.internal_groups", path) if groups is not None else None,
        configurations=_str_list(configs, "versioning.configurations", path) if configs is not None else None,
    )

    return Settings(
        root_name=name,
        include=_str_list(data.get("include"), "include", path),
        settings_file=path,
        policy=policy,
    )


def parse_version(raw: Any, path: Path) -> Any:
    """
    A mapping becomes a `ProjectVersion`; a scalar is kept as plain text so the
    version type check can reject it.
    """
    if isinstance(raw, dict):
        semver = raw.get("semver") or raw.get("version")
        build_type = raw.get("build_type") or raw.get("buildType") or "snapshot"
        try:
            return ProjectVersion(str(semver or ""), build_type)
        except ValueError as e:
            raise ManifestError(f"Invalid version in {path}: {e}") from e
    return str(raw)


def _parse_dependency(raw: Any, path: Path) -> Dependency:
    try:
        if isinstance(raw, dict):
            name = str(raw.get("name") or "").strip()
            if not name:
                raise ValueError(f"dependency is missing a name: {raw!r}")
            group = raw.get("group")
            version = raw.get("version")
            return Dependency(
                group=str(group).strip() if group is not None else None,
                name=name,
                version=str(version).strip() if version is not None else None,
            )
        return Dependency.parse(str(raw))
    except ValueError as e:
        raise ManifestError(f"Invalid dependency in {path}: {e}") from e


def _parse_configurations(raw: Any, path: Path) -> list[Configuration]:
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise ManifestError(f"`dependencies` in {path} must be a mapping of configuration name to list.")
    configs: list[Configuration] = []
    for name, deps in raw.items():
        if deps is None:
            deps = []
        if not isinstance(deps, list):
            raise ManifestError(f"Configuration `{name}` in {path} must be a list of dependencies.")
        configs.append(Configuration(str(name), [_parse_dependency(d, path) for d in deps]))
    return configs


def _load_project(
    name: str,
    project_dir: Path,
    *,
    parent: Project | None,
) -> Project:
    build_file = project_dir / BUILD_FILENAME
    data = _load_yaml_mapping(build_file) if build_file.is_file() else {}

    if "version" in data and data["version"] is not None:
        version = parse_version(data["version"], build_file)
    elif parent is not None:
        version = parent.root_project.version
    else:
        version = UNSPECIFIED_VERSION

    return Project(
        name,
        project_dir,
        version=version,
        build_file=build_file,
        configurations=_parse_configurations(data.get("dependencies"), build_file),
        default_tasks=_str_list(data.get("default_tasks"), "default_tasks", build_file),
        parent=parent,
    )


def load_build(root_dir: str | Path) -> tuple[Settings, Project]:
    """Load settings and the full project tree rooted at `root_dir`."""
    root_path = Path(root_dir).resolve()
    if not root_path.is_dir():
        raise ManifestError(f"Project directory does not exist: {root_path}")

    settings = load_settings(root_path)
    root = _load_project(settings.root_name, root_path, parent=None)

    for include in settings.include:
        parent = root
        # Nested includes ("libs/core") hang off an intermediate project for each segment.
        segments = [s for s in include.replace("\\", "/").split("/") if s]
        for depth, segment in enumerate(segments):
            existing = next((c for c in parent.child_projects if c.name == segment), None)
            if existing is not None:
                parent = existing
                continue
            child_dir = root_path.joinpath(*segments[: depth + 1])
            parent = _load_project(segment, child_dir, parent=parent)

    return settings, root
