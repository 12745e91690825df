"""Package management for binforge.

This module handles downloading, caching, and bootstrapping the Go toolchain.
"""

from .cache import Cache
from .downloader import ChecksumError, DownloadError, ExtractionError, PackageDownloader
from .platform_utils import PlatformDetector, PlatformError
from .toolchain import GoToolchain, ToolchainError, ToolchainHandle

__all__ = [
    "Cache",
    "PackageDownloader",
    "DownloadError",
    "ChecksumError",
    "ExtractionError",
    "PlatformDetector",
    "PlatformError",
    "GoToolchain",
    "ToolchainError",
    "ToolchainHandle",
]
