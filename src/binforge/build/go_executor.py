"""Go command execution.

This module runs the go tool and the upx compressor via subprocess:
    - GoExecutor wraps plain go commands (fmt, test, get, install, mod tidy)
    - GoCompiler cross-compiles the binary for one target with provenance
      linker flags
    - BinaryCompressor shrinks a compiled binary in place with upx

Subprocesses run without a timeout; a hung process blocks its task.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from ..config.targets import Target
from ..packages.toolchain import ToolchainHandle
from .provenance import ProvenanceRecord, render_ldflags

logger = logging.getLogger(__name__)


class GoCommandError(Exception):
    """Raised when a go command exits with a non-zero status."""

    pass


class BuildError(Exception):
    """Raised when compiling a target fails."""

    pass


class CompressionError(Exception):
    """Raised when compressing a target binary fails."""

    pass


def binary_path(build_dir: Path, target: Target, binary_name: str) -> Path:
    """Output path of a target's binary: build/<target>/<binary><ext>."""
    return build_dir / str(target) / f"{binary_name}{target.binary_extension}"


def _run(cmd: List[str], cwd: Path, env: Optional[Dict[str, str]] = None) -> subprocess.CompletedProcess:
    logger.info(f"Running: {' '.join(cmd)}")
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        cwd=cwd,
        env={**os.environ, **(env or {})},
    )


def _describe_failure(cmd: List[str], result: subprocess.CompletedProcess) -> str:
    error_msg = f"Command failed ({result.returncode}): {' '.join(cmd)}\n"
    error_msg += f"stderr: {result.stderr}\n"
    error_msg += f"stdout: {result.stdout}"
    return error_msg


class GoExecutor:
    """Runs go subcommands with the bootstrapped toolchain."""

    def __init__(self, toolchain: ToolchainHandle, project_dir: Path):
        self.toolchain = toolchain
        self.project_dir = project_dir

    def run(self, *args: str, env: Optional[Dict[str, str]] = None) -> str:
        """Run 'go <args>' in the project directory.

        Returns:
            Captured standard output

        Raises:
            GoCommandError: If the command cannot start or exits non-zero
        """
        cmd = [str(self.toolchain.executable_path), *args]
        try:
            result = _run(cmd, self.project_dir, {**self.toolchain.environment(), **(env or {})})
        except OSError as e:
            raise GoCommandError(f"Failed to run {cmd[0]}: {e}") from e

        if result.returncode != 0:
            raise GoCommandError(_describe_failure(cmd, result))
        return result.stdout.strip()

    def install_tools(self, tools: List[str]) -> None:
        """Fetch and install helper tools into GOPATH/bin."""
        for tool in tools:
            self.run("get", tool)
            self.run("install", tool)

    def fmt(self, main_path: str) -> None:
        self.run("fmt", f"{main_path}/main.go")

    def test(self) -> str:
        return self.run("test", "./...")

    def update_dependencies(self) -> None:
        """Upgrade all module dependencies and tidy go.mod."""
        self.run("get", "-u", "...")
        self.run("mod", "tidy")


class GoCompiler:
    """Cross-compiles the binary for one target.

    The output path is keyed by the target so concurrent builds never write
    to the same location.
    """

    def __init__(
        self,
        executor: GoExecutor,
        build_dir: Path,
        package_path: str,
        main_path: str,
        debug: bool = False,
        optimise: bool = False,
    ):
        """Initialize the compiler.

        Args:
            executor: GoExecutor bound to the bootstrapped toolchain
            build_dir: Root of the per-target output directories
            package_path: Go module path the provenance symbols live in
            main_path: Main package path relative to the module root
            debug: Disable optimizations and inlining for debugging
            optimise: Strip the symbol table and DWARF data
        """
        self.executor = executor
        self.build_dir = build_dir
        self.package_path = package_path
        self.main_path = main_path
        self.debug = debug
        self.optimise = optimise

    def build_environment(self, target: Target) -> Dict[str, str]:
        return {
            "GOOS": target.os,
            "GOARCH": target.arch,
            "GOEXE": target.binary_extension,
            "CGO_ENABLED": "0",
        }

    def build_arguments(self, target: Target, provenance: ProvenanceRecord) -> List[str]:
        """Arguments passed to 'go' for one target."""
        args = ["build"]
        ldflags = render_ldflags(
            provenance, self.package_path, self.main_path, strip_symbols=self.optimise
        )
        logger.info(f"LDFlags: {ldflags}")
        args.append(ldflags)

        if self.debug:
            args.extend(["-gcflags", "all=-N -l"])

        output = binary_path(self.build_dir, target, provenance.binary_name)
        args.extend(["-o", str(output), "-v", f"{self.main_path}/main.go"])
        return args

    def build(self, target: Target, provenance: ProvenanceRecord) -> Path:
        """Compile the binary for a target.

        Returns:
            Path to the compiled binary

        Raises:
            BuildError: If the compiler fails or produces no output
        """
        output = binary_path(self.build_dir, target, provenance.binary_name)
        output.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.executor.run(
                *self.build_arguments(target, provenance),
                env=self.build_environment(target),
            )
        except GoCommandError as e:
            raise BuildError(f"Compilation failed for {target}: {e}") from e

        if not output.exists() or output.stat().st_size == 0:
            raise BuildError(f"Compiler produced no binary for {target} at {output}")

        print(f"Built {output}")
        return output


class BinaryCompressor:
    """Compresses binaries in place with upx."""

    def __init__(self, project_dir: Path, command: str = "upx"):
        self.project_dir = project_dir
        self.command = command

    def compress(self, target: Target, path: Path) -> Path:
        """Compress a target's binary.

        Raises:
            CompressionError: If the target does not support compression,
                the binary is missing or upx fails
        """
        if not target.compression_supported:
            raise CompressionError(f"Compression is not supported for {target}")
        if not path.exists():
            raise CompressionError(f"Binary not found for {target}: {path}. Build it first.")

        cmd = [self.command, str(path)]
        try:
            result = _run(cmd, self.project_dir)
        except OSError as e:
            raise CompressionError(f"Failed to run {self.command}: {e}") from e

        if result.returncode != 0:
            raise CompressionError(
                f"Compression failed for {target}\n" + _describe_failure(cmd, result)
            )
        return path
