"""Configuration modules for binforge."""

from .build_config import BuildConfig
from .project_config import PROJECT_FILE, ProjectConfig, ProjectConfigError
from .targets import (
    TARGETS,
    Target,
    TargetError,
    get_target,
    get_targets,
)

__all__ = [
    "BuildConfig",
    "ProjectConfig",
    "ProjectConfigError",
    "PROJECT_FILE",
    "Target",
    "TargetError",
    "TARGETS",
    "get_targets",
    "get_target",
]
