"""CLI utility functions for binforge.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error handling and formatting
- Project directory validation
"""

import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from binforge.build.task_graph import TaskExecutionError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_dir: Path, verbose: bool = False) -> None:
    """Setup logging for a run.

    Args:
        log_dir: Directory receiving binforge.log
        verbose: Show INFO records on the console (warnings only otherwise)
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("binforge")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        str(log_dir / "binforge.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Task failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_task_failure(error: TaskExecutionError, verbose: bool = False) -> None:
        """Report the first failing task and its target, then exit.

        Args:
            error: The failure raised by the task graph
            verbose: Whether to print the cause's traceback
        """
        lines = [f"Task:   {error.task_name}"]
        if error.target is not None:
            lines.append(f"Target: {error.target}")
        lines.append(f"Error:  {type(error.cause).__name__}: {error.cause}")
        ErrorFormatter.print_error("Release failed!", "\n".join(lines))

        if verbose:
            print("Traceback:")
            print("".join(traceback.format_exception(type(error.cause), error.cause, error.cause.__traceback__)))

        sys.exit(1)

    @staticmethod
    def handle_configuration_error(error: Exception) -> None:
        ErrorFormatter.print_error("Error: Invalid configuration", str(error))
        sys.exit(2)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Release interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
        if not project_dir.is_dir():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
