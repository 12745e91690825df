"""Host platform detection.

Maps the running interpreter's platform onto the os/arch names used by Go
release archives (e.g. 'linux', 'amd64').
"""

import platform
from typing import Tuple


class PlatformError(Exception):
    """Raised when platform detection fails or platform is unsupported."""

    pass


_OS_NAMES = {
    "linux": "linux",
    "windows": "windows",
    "darwin": "darwin",
}

_ARCH_NAMES = {
    "x86_64": "amd64",
    "x64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


class PlatformDetector:
    """Detects the host platform for toolchain selection."""

    @staticmethod
    def detect_host() -> Tuple[str, str]:
        """Detect the host operating system and architecture.

        Returns:
            Tuple of (os, arch) in Go naming, e.g. ('darwin', 'arm64')

        Raises:
            PlatformError: If the host is not one of the supported platforms
        """
        system = platform.system().lower()
        machine = platform.machine().lower()

        os_name = _OS_NAMES.get(system)
        if os_name is None:
            raise PlatformError(f"Unsupported platform: {system}")

        arch = _ARCH_NAMES.get(machine)
        if arch is None:
            raise PlatformError(f"Unsupported architecture: {machine}")

        return os_name, arch

    @staticmethod
    def archive_extension(os_name: str) -> str:
        """Get the Go release archive extension for an operating system."""
        return "zip" if os_name == "windows" else "tar.gz"
