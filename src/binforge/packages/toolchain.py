"""Toolchain management for the Go compiler.

This module makes sure the pinned Go version is available inside the
project cache. The lookup order is:

1. A previously installed pinned toolchain in the project cache
2. The host `go` on PATH, when explicitly allowed and its version matches
3. A fresh install: download the Go release archive for the host, check it
   against the SHA-256 published in the go.dev release index, extract it
   into the cache, then use it to install the pinned version through the
   golang.org/dl wrapper (`go install golang.org/dl/goX.Y.Z@latest` followed
   by `goX.Y.Z download`)

Only the third path touches the network.
"""

import logging
import os
import re
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .cache import Cache
from .downloader import ChecksumError, DownloadError, ExtractionError, PackageDownloader
from .platform_utils import PlatformDetector, PlatformError

logger = logging.getLogger(__name__)

EXE_SUFFIX = ".exe" if sys.platform == "win32" else ""

_VERSION_PATTERN = re.compile(r"go version (go\S+)")


class ToolchainError(Exception):
    """Raised when the toolchain cannot be obtained or verified."""

    pass


@dataclass(frozen=True)
class ToolchainHandle:
    """A ready-to-use Go toolchain."""

    version_tag: str  # e.g. 'go1.23.3'
    executable_path: Path
    gopath: Path
    home: Optional[Path] = None  # Set when the SDK lives in the project cache
    source: str = "cache"  # 'cache', 'host' or 'download'

    def environment(self) -> Dict[str, str]:
        """Environment variables every go invocation must run with."""
        env = {"GOPATH": str(self.gopath)}
        if self.home is not None:
            env["HOME"] = str(self.home)
            env["USERPROFILE"] = str(self.home)
        return env


class GoToolchain:
    """Bootstraps the pinned Go toolchain into the project cache."""

    BASE_URL = "https://go.dev/dl"
    RELEASES_URL = "https://go.dev/dl/?mode=json&include=all"
    DL_MODULE = "golang.org/dl"

    def __init__(
        self,
        cache: Cache,
        version: str,
        use_local_toolchain: bool = False,
        downloader: Optional[PackageDownloader] = None,
        show_progress: bool = True,
    ):
        """Initialize toolchain manager.

        Args:
            cache: Cache instance for storing the toolchain
            version: Pinned Go version (e.g. '1.23.3')
            use_local_toolchain: Allow a host-installed go of the same version
            downloader: Downloader used for the release archive
            show_progress: Whether to show a download progress bar
        """
        self.cache = cache
        self.version = version
        self.use_local_toolchain = use_local_toolchain
        self.downloader = downloader or PackageDownloader()
        self.show_progress = show_progress
        self._lock = threading.Lock()
        self._handle: Optional[ToolchainHandle] = None

    @property
    def version_tag(self) -> str:
        return f"go{self.version}"

    @property
    def pinned_executable(self) -> Path:
        """Path of the golang.org/dl wrapper for the pinned version."""
        return self.cache.gopath / "bin" / f"{self.version_tag}{EXE_SUFFIX}"

    @property
    def bootstrap_executable(self) -> Path:
        """Path of the go binary extracted from the release archive."""
        return self.cache.go_root / "go" / "bin" / f"go{EXE_SUFFIX}"

    def ensure_toolchain(self) -> ToolchainHandle:
        """Ensure the pinned toolchain is available, installing it if necessary.

        Safe to call from several threads: the first caller does the work,
        the others wait for it and get the same handle.

        Returns:
            Handle to the pinned toolchain

        Raises:
            ToolchainError: If the toolchain cannot be obtained or verified
        """
        with self._lock:
            if self._handle is not None:
                return self._handle

            handle = self._find_cached()
            if handle is None and self.use_local_toolchain:
                handle = self._find_host()
            if handle is None:
                handle = self._install()

            logger.info(
                f"Using {handle.version_tag} ({handle.source}) at {handle.executable_path}"
            )
            self._handle = handle
            return handle

    def _find_cached(self) -> Optional[ToolchainHandle]:
        pinned = self.pinned_executable
        if not pinned.exists():
            return None

        handle = ToolchainHandle(
            version_tag=self.version_tag,
            executable_path=pinned,
            gopath=self.cache.gopath,
            home=self.cache.go_home,
            source="cache",
        )
        reported = self.reported_version(pinned, handle.environment())
        if reported != self.version_tag:
            logger.warning(
                f"Cached toolchain reports {reported or 'nothing'}, expected {self.version_tag}; reinstalling"
            )
            return None
        return handle

    def _find_host(self) -> Optional[ToolchainHandle]:
        host_go = shutil.which("go")
        if host_go is None:
            logger.info("No host go found on PATH")
            return None

        reported = self.reported_version(Path(host_go), {})
        if reported != self.version_tag:
            logger.info(
                f"Host go at {host_go} is {reported or 'unusable'}, expected {self.version_tag}"
            )
            return None

        return ToolchainHandle(
            version_tag=self.version_tag,
            executable_path=Path(host_go),
            gopath=self.cache.gopath,
            source="host",
        )

    def _install(self) -> ToolchainHandle:
        self.cache.ensure_directories()

        try:
            host_os, host_arch = PlatformDetector.detect_host()
        except PlatformError as e:
            raise ToolchainError(str(e)) from e

        extension = PlatformDetector.archive_extension(host_os)
        filename = f"{self.version_tag}.{host_os}-{host_arch}.{extension}"
        url = f"{self.BASE_URL}/{filename}"
        package_path = self.cache.get_package_path(self.BASE_URL, self.version, filename)

        print(f"Installing Go toolchain ({self.version_tag}) in project cache...")

        try:
            if not self.bootstrap_executable.exists():
                checksum = self.published_checksum(filename)
                if package_path.exists():
                    try:
                        self.downloader.verify_checksum(package_path, checksum)
                        logger.info(f"Using cached {filename}")
                    except ChecksumError:
                        logger.warning(f"Cached {filename} is corrupt; downloading again")
                        package_path.unlink()
                if not package_path.exists():
                    self.downloader.download(
                        url, package_path, checksum=checksum, show_progress=self.show_progress
                    )
                self.downloader.extract_archive(package_path, self.cache.go_root)
        except (DownloadError, ExtractionError, ChecksumError) as e:
            raise ToolchainError(f"Failed to fetch Go toolchain: {e}") from e

        if not self.bootstrap_executable.exists():
            raise ToolchainError(
                f"Go archive {filename} did not contain {self.bootstrap_executable.name}"
            )

        handle = ToolchainHandle(
            version_tag=self.version_tag,
            executable_path=self.pinned_executable,
            gopath=self.cache.gopath,
            home=self.cache.go_home,
            source="download",
        )
        env = handle.environment()

        self._run(
            [str(self.bootstrap_executable), "install", f"{self.DL_MODULE}/{self.version_tag}@latest"],
            env,
        )
        self._run([str(self.pinned_executable), "download"], env)

        reported = self.reported_version(self.pinned_executable, env)
        if reported != self.version_tag:
            raise ToolchainError(
                f"Toolchain verification failed: expected {self.version_tag}, got {reported or 'nothing'}"
            )

        print(f"Toolchain ready at {self.pinned_executable}")
        return handle

    def published_checksum(self, filename: str) -> str:
        """Look up the SHA-256 that go.dev publishes for a release archive.

        Raises:
            DownloadError: If the release index cannot be fetched
            ToolchainError: If the archive is not listed with a checksum
        """
        releases = self.downloader.fetch_json(self.RELEASES_URL)
        for release in releases:
            for file_info in release.get("files", []):
                if file_info.get("filename") == filename and file_info.get("sha256"):
                    return file_info["sha256"]
        raise ToolchainError(f"No published SHA-256 for {filename} at {self.RELEASES_URL}")

    def reported_version(self, executable: Path, env: Dict[str, str]) -> Optional[str]:
        """Ask a go executable for its version tag.

        Returns:
            The version tag (e.g. 'go1.23.3'), or None if it cannot be run
        """
        try:
            result = subprocess.run(
                [str(executable), "version"],
                capture_output=True,
                text=True,
                env={**os.environ, **env},
                cwd=self.cache.project_dir,
            )
        except OSError as e:
            logger.debug(f"Cannot run {executable}: {e}")
            return None

        if result.returncode != 0:
            return None

        match = _VERSION_PATTERN.search(result.stdout)
        return match.group(1) if match else None

    def _run(self, cmd: List[str], env: Dict[str, str]) -> None:
        logger.info(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                env={**os.environ, **env},
                cwd=self.cache.project_dir,
            )
        except OSError as e:
            raise ToolchainError(f"Failed to run {cmd[0]}: {e}") from e

        if result.returncode != 0:
            raise ToolchainError(
                f"Command failed ({result.returncode}): {' '.join(cmd)}\n"
                + f"stderr: {result.stderr}\n"
                + f"stdout: {result.stdout}"
            )
