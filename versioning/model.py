"""
model.py

Responsibility: In-memory view of a multi-module project.

Projects form a tree rooted at the root project. Each project owns its declared
dependency configurations and a task container. The versioning checks only read
from these objects; the manifest loader is the only code that builds them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

from versioning.host import Build, TaskContainer

BUILD_DIR_NAME = "build"


@dataclass(frozen=True)
class Dependency:
    """A declared dependency: `group:name:version`, group and version optional."""

    group: str | None
    name: str
    version: str | None = None

    @property
    def notation(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"

    @classmethod
    def parse(cls, notation: str) -> Dependency:
        parts = [p.strip() for p in str(notation).split(":")]
        if len(parts) == 1 and parts[0]:
            return cls(group=None, name=parts[0])
        if len(parts) == 2 and parts[1]:
            return cls(group=parts[0] or None, name=parts[1])
        if len(parts) == 3 and parts[1]:
            return cls(group=parts[0] or None, name=parts[1], version=parts[2] or None)
        raise ValueError(f"Invalid dependency notation: {notation!r} (expected group:name[:version])")


@dataclass
class Configuration:
    name: str
    dependencies: list[Dependency] = field(default_factory=list)


class Project:
    def __init__(
        self,
        name: str,
        project_dir: str | Path,
        *,
        version: Any = "unspecified",
        build_file: str | Path | None = None,
        configurations: Iterable[Configuration] = (),
        default_tasks: Iterable[str] = (),
        parent: Project | None = None,
    ) -> None:
        self.name = name
        self.project_dir = Path(project_dir)
        self.version = version
        self.build_file = Path(build_file) if build_file is not None else self.project_dir / "build.yaml"
        self.configurations: dict[str, Configuration] = {c.name: c for c in configurations}
        self.default_tasks = list(default_tasks)
        self.parent = parent
        self.child_projects: list[Project] = []
        self.tasks = TaskContainer(self)
        self.build: Build | None = None
        self._after_evaluate: list[Callable[[Project], None]] = []
        if parent is not None:
            parent.child_projects.append(self)

    def __repr__(self) -> str:
        return f"Project({self.path!r})"

    @property
    def root_project(self) -> Project:
        project = self
        while project.parent is not None:
            project = project.parent
        return project

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def path(self) -> str:
        if self.parent is None:
            return ":"
        parent_path = self.parent.path
        return f"{parent_path}{self.name}" if parent_path == ":" else f"{parent_path}:{self.name}"

    @property
    def build_dir(self) -> Path:
        return self.project_dir / BUILD_DIR_NAME

    @property
    def all_projects(self) -> list[Project]:
        """This project followed by all of its descendants, depth first."""
        return list(self._walk())

    def _walk(self) -> Iterator[Project]:
        yield self
        for child in self.child_projects:
            yield from child._walk()

    def configuration(self, name: str) -> Configuration:
        """Return the named configuration, creating it empty if undeclared."""
        if name not in self.configurations:
            self.configurations[name] = Configuration(name)
        return self.configurations[name]

    def configurations_named(self, names: Iterable[str]) -> list[Configuration]:
        wanted = set(names)
        return [c for c in self.configurations.values() if c.name in wanted]

    def after_evaluate(self, hook: Callable[[Project], None]) -> None:
        self._after_evaluate.append(hook)

    def run_after_evaluate(self) -> None:
        for hook in self._after_evaluate:
            hook(self)
