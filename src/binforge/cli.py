"""
Command-line interface for binforge.

This module provides the `binforge` CLI tool for building and releasing the
Go binary.
"""

import argparse
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from binforge import __version__
from binforge.build.orchestrator import ReleaseOrchestrator
from binforge.build.provenance import ProvenanceError
from binforge.build.task_graph import TaskExecutionError, TaskGraphError
from binforge.cli_utils import ErrorFormatter, PathValidator, setup_logging
from binforge.config import BuildConfig, ProjectConfigError
from binforge.packages.cache import Cache


@dataclass
class RunArgs:
    """Arguments for the run command."""

    project_dir: Path
    tasks: List[str] = field(default_factory=list)
    jobs: Optional[int] = None
    release_version: Optional[str] = None
    use_local_toolchain: bool = False
    debug: bool = False
    optimise: bool = False
    verbose: bool = False


@dataclass
class TasksArgs:
    """Arguments for the tasks command."""

    project_dir: Path


def load_config(args: RunArgs) -> BuildConfig:
    """Merge binforge.ini, the environment and command-line flags."""
    return BuildConfig.load(
        args.project_dir,
        os.environ,
        overrides={
            "version_override": args.release_version,
            "use_local_toolchain": True if args.use_local_toolchain else None,
            "debug": True if args.debug else None,
            "optimise": True if args.optimise else None,
        },
    )


def run_command(args: RunArgs) -> None:
    """Run release tasks.

    Examples:
        binforge run build-all                    # Compile every target
        binforge run build-linux-amd64            # Compile one target
        binforge run compress-all publish-all     # Compress and publish
        binforge run regenerate-licenses          # Rewrite the license listing
        binforge run dump-version --release-version 9.9.9
    """
    print(f"binforge release orchestrator v{__version__}")
    print()

    try:
        setup_logging(Cache(args.project_dir).logs_dir, args.verbose)
        config = load_config(args)
        orchestrator = ReleaseOrchestrator(config)

        print(f"Running: {' '.join(args.tasks)}")
        start_time = time.time()
        report = orchestrator.run(args.tasks, max_workers=args.jobs)
        elapsed = time.time() - start_time

        ErrorFormatter.print_success("Release tasks completed!")
        if args.verbose:
            for name in report.completed:
                print(f"  {name:<28} {report.timings[name]:6.2f}s")
        print(f"Total time: {elapsed:.2f}s")
        sys.exit(0)

    except TaskExecutionError as e:
        ErrorFormatter.handle_task_failure(e, args.verbose)
    except (TaskGraphError, ProjectConfigError) as e:
        ErrorFormatter.handle_configuration_error(e)
    except ProvenanceError as e:
        ErrorFormatter.print_error("Cannot compute build provenance", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def tasks_command(args: TasksArgs) -> None:
    """List the available tasks."""
    try:
        config = BuildConfig.load(args.project_dir, os.environ)
        orchestrator = ReleaseOrchestrator(config)
    except ProjectConfigError as e:
        ErrorFormatter.handle_configuration_error(e)
        return

    for task in orchestrator.tasks:
        print(f"{task.name:<28} {task.description}")

    skipped = orchestrator.uncompressible_targets()
    if skipped:
        print()
        print("Compression not supported for: " + ", ".join(str(t) for t in skipped))
    sys.exit(0)


def main() -> None:
    """binforge - build and release orchestrator for a Go binary."""
    parser = argparse.ArgumentParser(
        prog="binforge",
        description="binforge - build and release orchestrator for a Go binary",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"binforge {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run release tasks and their dependencies",
    )
    run_parser.add_argument(
        "tasks",
        nargs="+",
        help="Task names (see 'binforge tasks')",
    )
    run_parser.add_argument(
        "-C",
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    run_parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Maximum concurrent tasks (default: number of targets)",
    )
    run_parser.add_argument(
        "--release-version",
        default=None,
        help="Explicit release version (overrides RELEASE_EXPLICIT)",
    )
    run_parser.add_argument(
        "--use-local-toolchain",
        action="store_true",
        help="Use the host go when its version matches the pinned one",
    )
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Build without optimizations, keeping symbols",
    )
    run_parser.add_argument(
        "--optimise",
        action="store_true",
        help="Strip symbols and debug information",
    )
    run_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    # Tasks command
    tasks_parser = subparsers.add_parser(
        "tasks",
        help="List available tasks",
    )
    tasks_parser.add_argument(
        "-C",
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )

    parsed_args = parser.parse_args()

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)

    if parsed_args.command == "run":
        run_args = RunArgs(
            project_dir=parsed_args.project_dir,
            tasks=parsed_args.tasks,
            jobs=parsed_args.jobs,
            release_version=parsed_args.release_version,
            use_local_toolchain=parsed_args.use_local_toolchain,
            debug=parsed_args.debug,
            optimise=parsed_args.optimise,
            verbose=parsed_args.verbose,
        )
        run_command(run_args)
    elif parsed_args.command == "tasks":
        tasks_command(TasksArgs(project_dir=parsed_args.project_dir))


if __name__ == "__main__":
    main()
