"""
Target platform matrix for release builds.

This module centralizes the operating system / architecture pairs the binary
is compiled for, together with their packaging conventions. Ordering of the
table is stable and drives the names of the per-target tasks.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


class TargetError(Exception):
    """Raised when a target name cannot be resolved."""

    pass


@dataclass(frozen=True)
class Target:
    """One compilation destination."""

    os: str
    arch: str
    release_extension: str  # Extension used in the artifact repository
    binary_extension: str = ""  # Suffix of the compiled executable
    compression_supported: bool = True

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"

    @property
    def key(self) -> Tuple[str, str]:
        return (self.os, self.arch)


TARGETS: Tuple[Target, ...] = (
    # upx crashes with segmentation faults on macOS Ventura and later
    Target("darwin", "amd64", "bin", compression_supported=False),
    Target("darwin", "arm64", "bin", compression_supported=False),
    Target("linux", "amd64", "bin"),
    Target("linux", "arm64", "bin"),
    Target("windows", "amd64", "exe", ".exe"),
)

_BY_KEY: Dict[Tuple[str, str], Target] = {t.key: t for t in TARGETS}


def get_targets() -> Tuple[Target, ...]:
    """Get all supported targets in their stable order."""
    return TARGETS


def get_target(name: str) -> Target:
    """
    Look up a target by its string form.

    Args:
        name: Target name (e.g., 'linux-amd64')

    Returns:
        The matching Target

    Raises:
        TargetError: If no target has that name
    """
    os_name, _, arch = name.partition("-")
    target = _BY_KEY.get((os_name.lower(), arch.lower()))
    if target is None:
        available = ", ".join(str(t) for t in TARGETS)
        raise TargetError(f"Unknown target '{name}'. Available targets: {available}")
    return target
