"""
binforge.ini configuration parser.

This module parses the optional project file that names the artifact, the
pinned toolchain and the publishing settings.

Example binforge.ini:
    [project]
    artifact_name = blueprint-cli
    binary_name = xl-blueprint
    base_version = 25.1.0

    [toolchain]
    go_version = 1.23.3
    tools =
        github.com/wlbr/templify
        github.com/gobuffalo/packr/packr
"""

import configparser
from pathlib import Path
from typing import List, Optional

PROJECT_FILE = "binforge.ini"


class ProjectConfigError(Exception):
    """Exception raised for binforge.ini configuration errors."""

    pass


class ProjectConfig:
    """
    Parser for binforge.ini configuration files.

    Usage:
        config = ProjectConfig(Path("binforge.ini"))
        name = config.get("project", "artifact_name", "blueprint-cli")
        tools = config.get_list("toolchain", "tools")
    """

    KNOWN_SECTIONS = {"project", "toolchain", "compress", "licenses", "publish"}

    def __init__(self, ini_path: Path):
        """
        Initialize the parser with a binforge.ini file.

        Args:
            ini_path: Path to the binforge.ini file

        Raises:
            ProjectConfigError: If the file doesn't exist, cannot be parsed
                or declares an unknown section
        """
        self.ini_path = ini_path

        if not ini_path.exists():
            raise ProjectConfigError(f"Configuration file not found: {ini_path}")

        self.config = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )

        try:
            self.config.read(ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ProjectConfigError(f"Failed to parse {ini_path}: {e}") from e

        unknown = set(self.config.sections()) - self.KNOWN_SECTIONS
        if unknown:
            raise ProjectConfigError(
                f"Unknown section(s) in {ini_path.name}: {', '.join(sorted(unknown))}. "
                + f"Expected: {', '.join(sorted(self.KNOWN_SECTIONS))}"
            )

    def get(self, section: str, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a single value, falling back to a default.

        Empty values are treated as missing.
        """
        if section not in self.config:
            return default
        value = self.config[section].get(key)
        if value is None or not value.strip():
            return default
        return value.strip()

    def has(self, section: str, key: str) -> bool:
        """Check whether a key is present, even with an empty value."""
        return self.config.has_option(section, key)

    def get_list(self, section: str, key: str, default: Optional[List[str]] = None) -> List[str]:
        """
        Get a whitespace, comma or newline separated list.

        Example:
            For tools =
                github.com/wlbr/templify
                github.com/gobuffalo/packr/packr
            Returns: ['github.com/wlbr/templify', 'github.com/gobuffalo/packr/packr']
        """
        raw = self.get(section, key)
        if raw is None:
            return list(default or [])
        return [item for item in raw.replace(",", " ").split() if item]
