"""
project_version.py

Responsibility: The structured project version value.

A project version is a semantic version plus the classification of the build
producing it. Build scripts construct it once; everything else only reads it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

# MAJOR.MINOR.PATCH with optional pre-release and build metadata.
_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)


class BuildType(str, Enum):
    snapshot = "snapshot"
    release = "release"

    @classmethod
    def parse(cls, value: str | BuildType) -> BuildType:
        if isinstance(value, BuildType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ValueError(f"Unknown build type: {value!r} (expected 'snapshot' or 'release')") from e


@dataclass(frozen=True)
class ProjectVersion:
    """Semantic version of a project together with its build type."""

    semantic_version: str
    build_type: BuildType = BuildType.snapshot

    def __post_init__(self) -> None:
        semver = (self.semantic_version or "").strip()
        if not semver:
            raise ValueError("Semantic version must not be empty")
        if not _SEMVER_RE.match(semver):
            raise ValueError(f"Not a semantic version: {semver!r}")
        object.__setattr__(self, "semantic_version", semver)
        object.__setattr__(self, "build_type", BuildType.parse(self.build_type))

    @property
    def is_snapshot_build(self) -> bool:
        return self.build_type is BuildType.snapshot

    @property
    def is_release_build(self) -> bool:
        return self.build_type is BuildType.release

    def __str__(self) -> str:
        return self.semantic_version
