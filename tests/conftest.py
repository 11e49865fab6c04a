from __future__ import annotations

from pathlib import Path

import pytest


SNAPSHOT_BUILD = """\
version:
  semver: 1.2.3
  build_type: snapshot
"""


@pytest.fixture
def write_project(tmp_path: Path):
    """Write settings.yaml and build.yaml files under a fresh project directory."""

    def _write(build: str = SNAPSHOT_BUILD, *, settings: str | None = 'name: "test"\n', children: dict[str, str] | None = None) -> Path:
        root = tmp_path / "project"
        root.mkdir(exist_ok=True)
        if settings is not None:
            (root / "settings.yaml").write_text(settings, encoding="utf-8")
        (root / "build.yaml").write_text(build, encoding="utf-8")
        for name, text in (children or {}).items():
            child = root / name
            child.mkdir(parents=True, exist_ok=True)
            (child / "build.yaml").write_text(text, encoding="utf-8")
        return root

    return _write
