"""
Release version and build provenance.

The release version is either given explicitly or derived from the base
version and the local clock. The provenance record adds the git commit, the
descriptive git tag and a UTC timestamp; it is computed once per run and
embedded unchanged in every target's binary through linker flags.
"""

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class ProvenanceError(Exception):
    """Raised when provenance information cannot be collected."""

    pass


@dataclass(frozen=True)
class ProvenanceRecord:
    """Build-time constants injected into the binary."""

    version: str
    build_tag: str
    commit_hash: str
    build_timestamp: str
    binary_name: str


def resolve_version(
    base_version: str, override: Optional[str] = None, now: Optional[datetime] = None
) -> str:
    """
    Resolve the release version.

    Without an override the version is '<base>-<M><dd>.<H><mm>' from the
    local clock, e.g. '25.1.0-1019.905' for 19 October 09:05. The format has
    no year and no collision guard; downstream tooling relies on it.

    Args:
        base_version: Fixed version prefix (e.g. '25.1.0')
        override: Explicit version, used verbatim when non-empty
        now: Clock reading (defaults to local time)

    Returns:
        The release version string
    """
    if override:
        return override

    now = now or datetime.now()
    return f"{base_version}-{now.month}{now.day:02d}.{now.hour}{now.minute:02d}"


def format_build_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a moment as ISO-8601 UTC with millisecond precision."""
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def strip_artifact_prefix(describe: str, artifact_name: str) -> str:
    """Drop a leading '<artifact_name>-' from a git describe string."""
    prefix = f"{artifact_name}-"
    return describe[len(prefix):] if describe.startswith(prefix) else describe


def _git(args: List[str], cwd: Path) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            cwd=cwd,
        )
    except OSError as e:
        raise ProvenanceError(f"Failed to run git: {e}") from e

    if result.returncode != 0:
        raise ProvenanceError(
            f"git {' '.join(args)} failed ({result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.strip()


def compute_provenance(
    project_dir: Path,
    version: str,
    artifact_name: str,
    binary_name: str,
    now: Optional[datetime] = None,
) -> ProvenanceRecord:
    """
    Collect the provenance record for this run.

    Args:
        project_dir: Git checkout to describe
        version: Resolved release version
        artifact_name: Artifact name, stripped from the describe output
        binary_name: Name of the compiled binary
        now: Build moment (defaults to the current time)

    Returns:
        The immutable ProvenanceRecord

    Raises:
        ProvenanceError: If git metadata cannot be read
    """
    commit_hash = _git(["rev-parse", "HEAD"], project_dir)
    describe = _git(["describe", "--long", "--dirty", "--always"], project_dir)

    record = ProvenanceRecord(
        version=version,
        build_tag=strip_artifact_prefix(describe, artifact_name),
        commit_hash=commit_hash,
        build_timestamp=format_build_timestamp(now),
        binary_name=binary_name,
    )
    logger.info(
        f"Provenance: version={record.version} tag={record.build_tag} "
        f"commit={record.commit_hash} date={record.build_timestamp}"
    )
    return record


def ldflag(package_path: str, main_path: str, name: str, value: str) -> str:
    return f'-X "{package_path}/{main_path}/cmd.{name}={value}" '


def render_ldflags(
    provenance: ProvenanceRecord,
    package_path: str,
    main_path: str,
    strip_symbols: bool = False,
) -> str:
    """
    Render the -ldflags argument carrying the provenance constants.

    Args:
        provenance: Record to embed
        package_path: Go module path (e.g. 'github.com/xebialabs/blueprint-cli')
        main_path: Path of the main package inside the module
        strip_symbols: Add '-s -w' to drop the symbol table and DWARF data

    Returns:
        The complete '-ldflags=...' argument
    """
    flags = (
        ldflag(package_path, main_path, "CliVersion", provenance.version)
        + ldflag(package_path, main_path, "BuildVersion", provenance.build_tag)
        + ldflag(package_path, main_path, "BuildGitCommit", provenance.commit_hash)
        + ldflag(package_path, main_path, "BuildDate", provenance.build_timestamp)
        + ldflag(package_path, main_path, "BinaryName", provenance.binary_name)
    )
    if strip_symbols:
        flags += "-s -w"
    return "-ldflags=" + flags.rstrip()
