"""
cli.py

Responsibility: CLI entrypoint for versioning-gate.

High-level flow:
1) Load settings and the project tree from YAML -> `Project`
2) Configure the build with the versioning plugin applied to every project
3) Execute the requested tasks (plus the version file task the plugin adds)

Any `BuildError` ends the run with a single-line message and exit code 1.
"""

from __future__ import annotations

import argparse
import logging
import sys

from versioning.host import Build, BuildError
from versioning.manifest import Settings, load_build
from versioning.plugin import BUILD_CONFIGS, INTERNAL_GROUPS, VersioningPlugin

log = logging.getLogger(__name__)


def _make_plugin(settings: Settings, args: argparse.Namespace) -> VersioningPlugin:
    # CLI overrides settings.yaml, which overrides the built-in policy.
    groups = args.internal_groups
    if groups is None:
        groups = settings.policy.internal_groups if settings.policy.internal_groups is not None else INTERNAL_GROUPS
    configs = settings.policy.configurations if settings.policy.configurations is not None else BUILD_CONFIGS
    return VersioningPlugin(internal_groups=groups, build_configs=configs)


def run_cmd(args: argparse.Namespace) -> int:
    settings, root = load_build(args.project_dir)
    build = Build(root, args.tasks, plugins=[_make_plugin(settings, args)])
    build.configure()
    result = build.execute()
    for path, outcome in result.outcomes:
        log.info("%s %s", path, outcome.value)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="versioning", description="Semantic versioning gate for multi-module projects")
    p.add_argument("tasks", nargs="*", help="Tasks to run, e.g. `version` or `:projectVersionFile`")
    p.add_argument("-p", "--project-dir", default=".", help="Root project directory (default: current directory)")
    p.add_argument(
        "--internal-group",
        dest="internal_groups",
        action="append",
        default=None,
        help="Group treated as internal (repeatable; overrides settings.yaml)",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    try:
        return run_cmd(args)
    except BuildError as e:
        print(f"BUILD FAILED: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
