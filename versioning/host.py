"""
host.py

Responsibility: The build lifecycle that plugins hook into.

Two phases, run once per invocation:
1) Configuration: base tasks are registered, plugins are applied to every
   project, then each project's after-evaluate hooks run.
2) Execution: requested task names are resolved to tasks, ordered, and run,
   skipping tasks whose declared inputs and outputs are unchanged.

The first failure in either phase aborts the build with a `BuildError`.
"""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Protocol

if TYPE_CHECKING:
    from versioning.model import Project

log = logging.getLogger(__name__)

CLEAN_TASK_NAME = "clean"
TASKS_TASK_NAME = "tasks"
HELP_GROUP = "Help"
BUILD_GROUP = "Build"
TASK_STATE_DIR = ".task-state"


class BuildError(RuntimeError):
    pass


class TaskExecutionError(BuildError):
    def __init__(self, task: Task, cause: BaseException) -> None:
        super().__init__(f"Execution failed for task '{task.path}': {cause}")
        self.task = task
        self.cause = cause


class TaskOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    UP_TO_DATE = "UP_TO_DATE"
    FAILED = "FAILED"


class Plugin(Protocol):
    def apply(self, project: Project) -> None: ...


class Task:
    def __init__(self, name: str, project: Project) -> None:
        self.name = name
        self.project = project
        self.group: str | None = None
        self.description: str | None = None
        self.input_files: list[Path] = []
        self.output_files: list[Path] = []
        self.must_run_after_names: list[str] = []
        self.did_work = True
        self._actions: list[Callable[[Task], None]] = []

    def __repr__(self) -> str:
        return f"Task({self.path!r})"

    @property
    def path(self) -> str:
        prefix = self.project.path
        return f"{prefix}{self.name}" if prefix == ":" else f"{prefix}:{self.name}"

    def do_first(self, action: Callable[[Task], None]) -> None:
        self._actions.insert(0, action)

    def do_last(self, action: Callable[[Task], None]) -> None:
        self._actions.append(action)

    def must_run_after(self, *names: str) -> None:
        """Ordering only: run after the named tasks when they are also scheduled."""
        for name in names:
            if name not in self.must_run_after_names:
                self.must_run_after_names.append(name)

    def execute(self) -> None:
        self.did_work = True
        for action in list(self._actions):
            action(self)


class TaskContainer:
    def __init__(self, project: Project) -> None:
        self._project = project
        self._tasks: dict[str, Task] = {}

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def register(self, name: str, configure: Callable[[Task], None] | None = None) -> Task:
        if name in self._tasks:
            raise BuildError(f"Cannot add task '{name}' as a task with that name already exists.")
        task = Task(name, self._project)
        if configure is not None:
            configure(task)
        self._tasks[name] = task
        return task

    def find_by_name(self, name: str) -> Task | None:
        return self._tasks.get(name)


@dataclass
class StartParameter:
    """The task names requested for this invocation. Plugins may append to it."""

    task_names: list[str] = field(default_factory=list)


@dataclass
class BuildResult:
    outcomes: list[tuple[str, TaskOutcome]] = field(default_factory=list)

    def task(self, path: str) -> TaskOutcome | None:
        for task_path, outcome in self.outcomes:
            if task_path == path:
                return outcome
        return None

    @property
    def executed_paths(self) -> list[str]:
        return [p for p, _ in self.outcomes]


def _clean(task: Task) -> None:
    build_dir = task.project.build_dir
    if not build_dir.exists():
        task.did_work = False
        return
    shutil.rmtree(build_dir)
    log.info("Deleted %s", build_dir)


def _safe_state_name(task_path: str) -> str:
    return task_path.strip(":").replace(":", "_") or "root"


class Build:
    def __init__(
        self,
        root_project: Project,
        task_names: Iterable[str] = (),
        *,
        plugins: Iterable[Plugin] = (),
    ) -> None:
        if not root_project.is_root:
            raise BuildError(f"{root_project!r} is not a root project")
        self.root_project = root_project
        self.start_parameter = StartParameter(list(task_names))
        self.plugins = list(plugins)
        self._defaults_requested = not self.start_parameter.task_names
        self._configured = False

    def configure(self) -> Build:
        if self._configured:
            return self
        projects = self.root_project.all_projects
        for project in projects:
            project.build = self
            self._register_base_tasks(project)
        for project in projects:
            for plugin in self.plugins:
                plugin.apply(project)
        for project in projects:
            log.debug("Evaluated project %s", project.path)
            project.run_after_evaluate()
        self._configured = True
        return self

    def _register_base_tasks(self, project: Project) -> None:
        def configure_clean(task: Task) -> None:
            task.group = BUILD_GROUP
            task.description = "Deletes the build directory."
            task.do_last(_clean)

        project.tasks.register(CLEAN_TASK_NAME, configure_clean)

        if project.is_root:
            def configure_tasks(task: Task) -> None:
                task.group = HELP_GROUP
                task.description = "Displays the tasks runnable from the root project."
                task.do_last(lambda t: print(self.describe_tasks(), end=""))

            project.tasks.register(TASKS_TASK_NAME, configure_tasks)

    def describe_tasks(self) -> str:
        groups: dict[str, list[Task]] = {}
        for task in self.root_project.tasks:
            groups.setdefault(task.group or "Other", []).append(task)
        lines: list[str] = []
        for group in sorted(groups):
            title = f"{group} tasks"
            lines.extend([title, "-" * len(title)])
            for task in sorted(groups[group], key=lambda t: t.name):
                lines.append(f"{task.name} - {task.description}" if task.description else task.name)
            lines.append("")
        return "\n".join(lines) + "\n" if lines else ""

    def _requested_names(self) -> list[str]:
        names = list(self.start_parameter.task_names)
        if self._defaults_requested:
            names = list(self.root_project.default_tasks) + names
        return names

    def _find_project(self, path: str) -> Project | None:
        for project in self.root_project.all_projects:
            if project.path == path:
                return project
        return None

    def _resolve(self, name: str) -> list[Task]:
        if name.startswith(":"):
            project_path, _, task_name = name.rpartition(":")
            project = self._find_project(project_path or ":")
            task = project.tasks.find_by_name(task_name) if project is not None else None
            if task is None:
                raise BuildError(f"Task '{name}' not found in root project '{self.root_project.name}'.")
            return [task]
        found = [p.tasks.find_by_name(name) for p in self.root_project.all_projects]
        tasks = [t for t in found if t is not None]
        if not tasks:
            raise BuildError(f"Task '{name}' not found in root project '{self.root_project.name}'.")
        return tasks

    def task_graph(self) -> list[Task]:
        """Selected tasks in execution order."""
        selected: list[Task] = []
        for name in self._requested_names():
            for task in self._resolve(name):
                if task not in selected:
                    selected.append(task)

        ordered: list[Task] = []
        visiting: set[Task] = set()

        def visit(task: Task) -> None:
            if task in ordered:
                return
            if task in visiting:
                raise BuildError(f"Circular task ordering involving '{task.path}'")
            visiting.add(task)
            for before_name in task.must_run_after_names:
                before = task.project.tasks.find_by_name(before_name)
                if before is not None and before in selected:
                    visit(before)
            visiting.discard(task)
            ordered.append(task)

        for task in selected:
            visit(task)
        return ordered

    def execute(self) -> BuildResult:
        self.configure()
        result = BuildResult()
        for task in self.task_graph():
            try:
                outcome = self._run(task)
            except BuildError:
                result.outcomes.append((task.path, TaskOutcome.FAILED))
                raise
            except Exception as e:  # noqa: BLE001 - surface as TaskExecutionError
                result.outcomes.append((task.path, TaskOutcome.FAILED))
                raise TaskExecutionError(task, e) from e
            result.outcomes.append((task.path, outcome))
        return result

    def _state_file(self, task: Task) -> Path:
        return self.root_project.build_dir / TASK_STATE_DIR / f"{_safe_state_name(task.path)}.json"

    @staticmethod
    def _hash_file(path: Path) -> str | None:
        return hashlib.sha256(path.read_bytes()).hexdigest() if path.is_file() else None

    def _input_fingerprint(self, task: Task) -> str:
        inputs = hashlib.sha256()
        for path in sorted(str(p) for p in task.input_files):
            inputs.update(path.encode("utf-8"))
            p = Path(path)
            inputs.update(p.read_bytes() if p.is_file() else b"\0missing\0")
        return inputs.hexdigest()

    def _output_fingerprint(self, task: Task) -> dict[str, str | None]:
        return {str(p): self._hash_file(p) for p in sorted(task.output_files, key=str)}

    def _is_up_to_date(self, task: Task, inputs: str) -> bool:
        if not task.output_files:
            return False
        if not all(p.exists() for p in task.output_files):
            return False
        state_file = self._state_file(task)
        if not state_file.is_file():
            return False
        try:
            previous = json.loads(state_file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return False
        # Outputs changed since the last run count as stale.
        return previous == {"inputs": inputs, "outputs": self._output_fingerprint(task)}

    def _run(self, task: Task) -> TaskOutcome:
        inputs = self._input_fingerprint(task) if task.output_files else None
        if inputs is not None and self._is_up_to_date(task, inputs):
            log.info("> Task %s UP-TO-DATE", task.path)
            return TaskOutcome.UP_TO_DATE

        log.info("> Task %s", task.path)
        task.execute()

        if inputs is not None:
            state = {"inputs": inputs, "outputs": self._output_fingerprint(task)}
            state_file = self._state_file(task)
            state_file.parent.mkdir(parents=True, exist_ok=True)
            state_file.write_text(json.dumps(state, sort_keys=True), encoding="utf-8")
        return TaskOutcome.SUCCESS if task.did_work else TaskOutcome.UP_TO_DATE
