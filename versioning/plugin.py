"""
plugin.py

Responsibility: Enforce semantic versioning of a multi-module project.

When applied, a project's version must be a `ProjectVersion`:

    version:
      semver: 1.2.3
      build_type: snapshot

Release builds may only depend on pinned, non-snapshot versions of internal
artifacts. The plugin also registers a `version` task that prints the project
version and, on the root project, a `projectVersionFile` task that writes the
version to `build/projectversion.txt`.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from versioning.host import CLEAN_TASK_NAME, HELP_GROUP, BuildError, StartParameter, Task, TaskExecutionError
from versioning.model import Dependency, Project
from versioning.project_version import ProjectVersion

log = logging.getLogger(__name__)

VERSION_TASK_NAME = "version"
VERSION_FILE_TASK_NAME = "projectVersionFile"
VERSION_FILE_TASK_PATH = ":" + VERSION_FILE_TASK_NAME
PROJECT_VERSION_FILENAME = "projectversion.txt"
EXEMPT_PROJECT_NAME = "buildSrc"

SNAPSHOT_VERSION_PATTERN = re.compile(r".*(?:\+|-SNAPSHOT|-\d+)$")
INTERNAL_GROUPS = frozenset({"com.cthing", "org.cthing"})
BUILD_CONFIGS = frozenset({"api", "compileOnly", "compileOnlyApi", "implementation", "runtimeOnly"})
BUILD_RELATED_FILES = ("build.properties", "settings.yaml", "settings.yml", "catalog/versions.toml")

_VERSION_TYPE_NAME = f"{ProjectVersion.__module__}.{ProjectVersion.__qualname__}"


def is_snapshot_version(version: str | None, pattern: re.Pattern[str] = SNAPSHOT_VERSION_PATTERN) -> bool:
    """An absent version is unpinned and counts as a snapshot."""
    return version is None or pattern.match(version) is not None


def is_not_clean_only(task_names: list[str]) -> bool:
    """
    True when no tasks were requested (default tasks will run) or the tasks
    include more than just "clean".
    """
    return not task_names or any(name != CLEAN_TASK_NAME for name in task_names)


class VersioningPlugin:
    def __init__(
        self,
        *,
        internal_groups: Iterable[str] = INTERNAL_GROUPS,
        build_configs: Iterable[str] = BUILD_CONFIGS,
        snapshot_pattern: re.Pattern[str] | str = SNAPSHOT_VERSION_PATTERN,
        build_related_files: Iterable[str] = BUILD_RELATED_FILES,
    ) -> None:
        self.internal_groups = frozenset(internal_groups)
        self.build_configs = frozenset(build_configs)
        self.snapshot_pattern = re.compile(snapshot_pattern) if isinstance(snapshot_pattern, str) else snapshot_pattern
        self.build_related_files = tuple(build_related_files)

    def apply(self, project: Project) -> None:
        if project.name == EXEMPT_PROJECT_NAME:
            log.debug("Not applying versioning to %s", project.path)
            return

        project.after_evaluate(validate_version_type)
        project.after_evaluate(self.validate_release_dependencies)
        self.create_version_file_task(project)
        self.create_version_task(project)

    def find_snapshot_dependency(self, project: Project) -> tuple[str, Dependency] | None:
        """
        Return the first internal dependency, across this project and its
        descendants, that is unpinned or has a snapshot-shaped version.
        """
        for child in project.all_projects:
            for config in child.configurations_named(self.build_configs):
                for dep in config.dependencies:
                    if dep.group is not None and dep.group in self.internal_groups \
                            and is_snapshot_version(dep.version, self.snapshot_pattern):
                        return config.name, dep
        return None

    def validate_release_dependencies(self, project: Project) -> None:
        """A release build cannot depend on snapshot internal artifacts for compilation or runtime."""
        version = project.version
        if not isinstance(version, ProjectVersion) or not version.is_release_build:
            return
        found = self.find_snapshot_dependency(project)
        if found is None:
            return
        config_name, dep = found
        message = f"Release build depends on snapshot artifact {dep.notation} ({config_name})"
        log.error(message)
        raise BuildError(message)

    def create_version_file_task(self, project: Project) -> Task | None:
        # Only the root project writes the file, and not when "clean" is the only task.
        start = _start_parameter(project)
        if not project.is_root or not is_not_clean_only(start.task_names):
            return None

        root = project.root_project
        projects = project.all_projects
        version_file = project.build_dir / PROJECT_VERSION_FILENAME

        def write_version(task: Task) -> None:
            try:
                version_file.parent.mkdir(parents=True, exist_ok=True)
                version_file.write_text(str(root.version), encoding="utf-8")
            except OSError as e:
                raise TaskExecutionError(task, e) from e
            log.info("Wrote %s", version_file)

        def configure(task: Task) -> None:
            task.output_files.append(version_file)
            task.input_files.extend(p.build_file for p in projects)
            for filename in self.build_related_files:
                path = Path(project.project_dir, filename)
                if path.exists():
                    task.input_files.append(path)
            if project.tasks.find_by_name(CLEAN_TASK_NAME) is not None:
                task.must_run_after(CLEAN_TASK_NAME)
            task.do_last(write_version)

        task = project.tasks.register(VERSION_FILE_TASK_NAME, configure)

        # Always consider the task for execution.
        start.task_names.append(VERSION_FILE_TASK_PATH)
        return task

    def create_version_task(self, project: Project) -> Task:
        def configure(task: Task) -> None:
            task.group = HELP_GROUP
            task.description = "Display project version number"
            task.do_first(lambda t: print(project.version))

        return project.tasks.register(VERSION_TASK_NAME, configure)


def validate_version_type(project: Project) -> None:
    if not isinstance(project.version, ProjectVersion):
        raise BuildError(f"Version is not an instance of {_VERSION_TYPE_NAME}")


def _start_parameter(project: Project) -> StartParameter:
    build = project.root_project.build
    if build is None:
        raise BuildError(f"{project!r} is not part of a build")
    return build.start_parameter
