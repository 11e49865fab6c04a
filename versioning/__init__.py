"""
versioning package

This package implements versioning-gate as a CLI-first utility.

Key responsibilities are split across modules:
- `project_version.py`: the structured project version (semantic version + build type)
- `model.py`: in-memory project tree, configurations and dependencies
- `manifest.py`: load the project tree from `settings.yaml` / `build.yaml`
- `host.py`: build lifecycle (configure, then execute tasks with up-to-date checks)
- `plugin.py`: version type guard, release dependency check, version file and version tasks
- `cli.py`: CLI entrypoint and orchestration (load -> configure -> execute)
"""

from __future__ import annotations

from versioning.project_version import BuildType, ProjectVersion

__all__ = ["BuildType", "ProjectVersion", "__version__"]

__version__ = "0.1.0"
