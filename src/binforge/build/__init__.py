"""
Build system components for binforge.

This package provides:
- The dependency-ordered task graph
- Version and provenance stamping
- Go compilation and upx compression
- License listing regeneration

The release task definitions live in binforge.build.orchestrator.
"""

from .go_executor import (
    BinaryCompressor,
    BuildError,
    CompressionError,
    GoCommandError,
    GoCompiler,
    GoExecutor,
    binary_path,
)
from .license_aggregator import extract_license_urls, regenerate_license_listing
from .provenance import (
    ProvenanceError,
    ProvenanceRecord,
    compute_provenance,
    render_ldflags,
    resolve_version,
)
from .task_graph import RunReport, Task, TaskExecutionError, TaskGraph, TaskGraphError

__all__ = [
    "BinaryCompressor",
    "BuildError",
    "CompressionError",
    "GoCommandError",
    "GoCompiler",
    "GoExecutor",
    "binary_path",
    "extract_license_urls",
    "regenerate_license_listing",
    "ProvenanceError",
    "ProvenanceRecord",
    "compute_provenance",
    "render_ldflags",
    "resolve_version",
    "RunReport",
    "Task",
    "TaskExecutionError",
    "TaskGraph",
    "TaskGraphError",
]
