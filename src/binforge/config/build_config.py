"""
Immutable build configuration.

A BuildConfig is assembled once at the start of a run from binforge.ini, the
process environment and command-line overrides, then handed to every task.
Nothing downstream reads the environment directly.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .project_config import PROJECT_FILE, ProjectConfig

TRUTHY = {"1", "true", "yes", "on"}

# Defaults mirror the release settings of the blueprint CLI
DEFAULT_ARTIFACT_NAME = "blueprint-cli"
DEFAULT_BINARY_NAME = "xl-blueprint"
DEFAULT_BASE_VERSION = "25.1.0"
DEFAULT_GROUP_ID = "com.xebialabs.xlclient"
DEFAULT_PACKAGE_PATH = "github.com/xebialabs/blueprint-cli"
DEFAULT_MAIN_PATH = "cmd/blueprint"
DEFAULT_GO_VERSION = "1.23.3"
DEFAULT_GO_TOOLS = ("github.com/wlbr/templify", "github.com/gobuffalo/packr/packr")
DEFAULT_PRERELEASE_MARKERS = ("alpha",)


def _is_truthy(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in TRUTHY


@dataclass(frozen=True)
class BuildConfig:
    """Settings shared read-only by every task of one run."""

    project_dir: Path
    artifact_name: str = DEFAULT_ARTIFACT_NAME
    binary_name: str = DEFAULT_BINARY_NAME
    base_version: str = DEFAULT_BASE_VERSION
    group_id: str = DEFAULT_GROUP_ID
    package_path: str = DEFAULT_PACKAGE_PATH
    main_path: str = DEFAULT_MAIN_PATH
    go_version: str = DEFAULT_GO_VERSION
    go_tools: Tuple[str, ...] = DEFAULT_GO_TOOLS
    compress_command: str = "upx"
    license_manifest: str = "go.mod"
    license_listing: str = "licenses/licences.md"
    bucket: str = DEFAULT_ARTIFACT_NAME
    prerelease_markers: Tuple[str, ...] = DEFAULT_PRERELEASE_MARKERS

    # Environment inputs
    version_override: Optional[str] = None
    use_local_toolchain: bool = False
    debug: bool = False
    optimise: bool = False
    repository_url: Optional[str] = None
    repository_username: Optional[str] = field(default=None, repr=False)
    repository_password: Optional[str] = field(default=None, repr=False)
    s3_endpoint_url: Optional[str] = None

    @property
    def build_dir(self) -> Path:
        return self.project_dir / "build"

    @property
    def version_dump_path(self) -> Path:
        return self.build_dir / "version.dump"

    @property
    def manifest_path(self) -> Path:
        return self.project_dir / self.license_manifest

    @property
    def listing_path(self) -> Path:
        return self.project_dir / self.license_listing

    @classmethod
    def load(
        cls,
        project_dir: Path,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "BuildConfig":
        """
        Build the configuration for a run.

        Precedence, lowest to highest: defaults, binforge.ini, environment,
        explicit overrides (command-line flags). Overrides whose value is
        None are ignored.

        Args:
            project_dir: Project root directory
            environ: Environment mapping (normally os.environ)
            overrides: Field values that win over everything else

        Returns:
            A frozen BuildConfig

        Raises:
            ProjectConfigError: If binforge.ini exists but is invalid
        """
        project_dir = Path(project_dir).resolve()
        environ = environ or {}
        values: Dict[str, Any] = {}

        ini_path = project_dir / PROJECT_FILE
        if ini_path.exists():
            values.update(cls._values_from_file(ProjectConfig(ini_path)))

        values.update(cls._values_from_environment(environ))

        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value

        return cls(project_dir=project_dir, **values)

    @staticmethod
    def _values_from_file(project: ProjectConfig) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for key in (
            "artifact_name",
            "binary_name",
            "base_version",
            "group_id",
            "package_path",
            "main_path",
        ):
            value = project.get("project", key)
            if value is not None:
                values[key] = value

        go_version = project.get("toolchain", "go_version")
        if go_version:
            values["go_version"] = go_version
        if project.has("toolchain", "tools"):
            values["go_tools"] = tuple(project.get_list("toolchain", "tools"))

        compress_command = project.get("compress", "command")
        if compress_command:
            values["compress_command"] = compress_command

        manifest = project.get("licenses", "manifest")
        if manifest:
            values["license_manifest"] = manifest
        listing = project.get("licenses", "listing")
        if listing:
            values["license_listing"] = listing

        bucket = project.get("publish", "bucket")
        if bucket:
            values["bucket"] = bucket
        elif "artifact_name" in values:
            values["bucket"] = values["artifact_name"]
        markers = project.get_list("publish", "prerelease_markers")
        if markers:
            values["prerelease_markers"] = tuple(markers)
        repository_url = project.get("publish", "repository_url")
        if repository_url:
            values["repository_url"] = repository_url

        return values

    @staticmethod
    def _values_from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}

        release = environ.get("RELEASE_EXPLICIT", "")
        if release.strip():
            values["version_override"] = release

        if _is_truthy(environ.get("BINFORGE_USE_LOCAL_TOOLCHAIN")):
            values["use_local_toolchain"] = True
        if _is_truthy(environ.get("BINFORGE_DEBUG")):
            values["debug"] = True
        if _is_truthy(environ.get("BINFORGE_OPTIMISE")):
            values["optimise"] = True

        for env_key, field_name in (
            ("NEXUS_BASE_URL", "repository_url"),
            ("NEXUS_USERNAME", "repository_username"),
            ("NEXUS_PASSWORD", "repository_password"),
            ("S3_ENDPOINT_URL", "s3_endpoint_url"),
        ):
            value = environ.get(env_key, "").strip()
            if value:
                values[field_name] = value

        return values
