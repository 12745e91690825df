"""Cache management for binforge.

This module provides the project-local cache structure for downloaded
toolchain archives, the extracted toolchain and the run logs.

Cache Structure:
    .binforge/
    ├── cache/
    │   ├── packages/
    │   │   └── {url_hash}/         # SHA256 hash of base URL
    │   │       └── {version}/      # Version string
    │   │           └── archive     # Downloaded archive
    │   └── toolchains/
    │       └── go/
    │           ├── go/             # Extracted bootstrap toolchain
    │           ├── gopath/         # GOPATH (bin/go{version})
    │           └── home/           # HOME for the pinned SDK (home/sdk/go{version})
    └── logs/
        └── binforge.log

Everything lives under the project directory; nothing is written to a
system-global location.
"""

import hashlib
import os
import shutil
import stat
from pathlib import Path
from typing import Any, Callable, Optional


def remove_readonly(func: Callable[[str], None], path: str, excinfo: Any) -> None:
    """
    Error handler for shutil.rmtree on read-only entries.

    Go marks its module cache (GOPATH/pkg/mod) read-only. Unlinking an
    entry needs write permission on its parent directory, so both the
    parent and the entry are made writable before retrying.

    Args:
        func: The function that raised the exception
        path: The path to the file/directory
        excinfo: Exception information (unused)
    """
    parent = os.path.dirname(path)
    os.chmod(parent, os.stat(parent).st_mode | stat.S_IWUSR | stat.S_IXUSR)
    if not os.path.islink(path):
        os.chmod(path, os.stat(path).st_mode | stat.S_IWUSR)
    func(path)


def remove_tree(path: Path) -> None:
    """Remove a directory tree, including read-only entries."""
    if path.exists():
        shutil.rmtree(path, onerror=remove_readonly)


class Cache:
    """Manages the binforge cache directory structure."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize cache manager.

        Args:
            project_dir: Project directory. If None, uses current directory.
        """
        if project_dir is None:
            project_dir = Path.cwd()

        self.project_dir = Path(project_dir).resolve()
        self.root = self.project_dir / ".binforge"
        self.cache_root = self.root / "cache"

    @staticmethod
    def hash_url(url: str) -> str:
        """Generate a SHA256 hash of a URL for cache directory naming.

        Args:
            url: The base URL to hash

        Returns:
            First 16 characters of SHA256 hash (sufficient for uniqueness)
        """
        return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]

    @property
    def packages_dir(self) -> Path:
        """Directory for downloaded package archives."""
        return self.cache_root / "packages"

    @property
    def toolchains_dir(self) -> Path:
        """Directory for extracted toolchains."""
        return self.cache_root / "toolchains"

    @property
    def logs_dir(self) -> Path:
        """Directory for run logs."""
        return self.root / "logs"

    @property
    def go_root(self) -> Path:
        """Root of the project-local Go installation."""
        return self.toolchains_dir / "go"

    @property
    def gopath(self) -> Path:
        """GOPATH used for every go invocation."""
        return self.go_root / "gopath"

    @property
    def go_home(self) -> Path:
        """HOME used by the golang.org/dl wrappers to store SDKs."""
        return self.go_root / "home"

    def ensure_directories(self) -> None:
        """Create all cache directories if they don't exist."""
        for directory in [
            self.packages_dir,
            self.toolchains_dir,
            self.gopath,
            self.go_home,
        ]:
            directory.mkdir(parents=True, exist_ok=True)

    def get_package_path(self, url: str, version: str, filename: str) -> Path:
        """Get path where a package archive would be stored.

        Args:
            url: Base URL for the package source
            version: Version string (e.g., '1.23.3')
            filename: Archive filename (e.g., 'go1.23.3.linux-amd64.tar.gz')

        Returns:
            Path to the package archive
        """
        url_hash = self.hash_url(url)
        return self.packages_dir / url_hash / version / filename

    def clean_toolchains(self) -> None:
        """Remove the extracted toolchains and downloaded archives."""
        for directory in [self.toolchains_dir, self.packages_dir]:
            remove_tree(directory)
