"""
Release orchestration for binforge projects.

This module declares the release tasks and wires them to the components
that do the work:
- Toolchain bootstrap (pinned Go in the project cache)
- Per-target cross compilation with provenance linker flags
- Optional upx compression for targets that support it
- License listing regeneration from go.mod
- Publishing to object storage and the artifact repository
- Version dump for release tooling

Task names:
    bootstrap, install-tools, fmt, test, update-deps, regenerate-licenses,
    dump-version, build-<target>, build-all, compress-<target>, compress-all,
    publish-<target>, publish-all, clean
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Iterable, List, Optional, Sequence

from ..config.build_config import BuildConfig
from ..config.targets import Target, get_targets
from ..deploy.object_store import ObjectStore
from ..deploy.publisher import ArtifactPublisher
from ..deploy.repository import ArtifactRepository
from ..packages.cache import Cache, remove_tree
from ..packages.toolchain import GoToolchain
from .go_executor import BinaryCompressor, GoCompiler, GoExecutor, binary_path
from .license_aggregator import regenerate_license_listing
from .provenance import ProvenanceRecord, compute_provenance, resolve_version
from .task_graph import RunReport, Task, TaskGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    """Read-only state handed to every task of one run."""

    config: BuildConfig
    version: str
    provenance: Optional[ProvenanceRecord] = None

    def require_provenance(self) -> ProvenanceRecord:
        if self.provenance is None:
            raise ReleaseOrchestratorError("Provenance was not computed for this run")
        return self.provenance


class ReleaseOrchestratorError(Exception):
    """Exception raised for release orchestration errors."""

    pass


class ReleaseOrchestrator:
    """
    Builds and runs the release task graph.

    Example usage:
        config = BuildConfig.load(Path("."), os.environ)
        orchestrator = ReleaseOrchestrator(config)
        report = orchestrator.run(["build-all", "compress-all"])
    """

    def __init__(
        self,
        config: BuildConfig,
        cache: Optional[Cache] = None,
        toolchain: Optional[GoToolchain] = None,
        compressor: Optional[BinaryCompressor] = None,
        publisher: Optional[ArtifactPublisher] = None,
        targets: Optional[Sequence[Target]] = None,
        show_progress: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration for this run
            cache: Project cache (defaults to one under config.project_dir)
            toolchain: Toolchain bootstrapper shared by every build task
            compressor: upx wrapper
            publisher: Publisher (created on first publish when omitted)
            targets: Target matrix (defaults to all supported targets)
            show_progress: Whether to show download progress bars
        """
        self.config = config
        self.cache = cache or Cache(config.project_dir)
        self.toolchain = toolchain or GoToolchain(
            self.cache,
            config.go_version,
            use_local_toolchain=config.use_local_toolchain,
            show_progress=show_progress,
        )
        self.compressor = compressor or BinaryCompressor(config.project_dir, config.compress_command)
        self.targets = tuple(targets or get_targets())
        self._publisher = publisher
        self._publisher_lock = threading.Lock()
        self.graph = self._build_graph()

    def _build_graph(self) -> TaskGraph:
        graph = TaskGraph()
        target_names = [str(t) for t in self.targets]

        graph.register(
            "bootstrap",
            action=self._bootstrap,
            after=["clean"],
            description="Install the pinned Go toolchain into the project cache",
        )
        graph.register(
            "install-tools",
            ["bootstrap"],
            action=self._install_tools if self.config.go_tools else None,
            description="Install helper tools: " + (", ".join(self.config.go_tools) or "none"),
        )
        graph.register("fmt", ["bootstrap"], action=self._fmt, description="Run go fmt on the main package")
        graph.register("test", ["bootstrap"], action=self._test, description="Run go test ./...")
        graph.register(
            "update-deps",
            ["bootstrap"],
            action=self._update_deps,
            description="Upgrade module dependencies and tidy go.mod",
        )
        graph.register(
            "regenerate-licenses",
            action=self._regenerate_licenses,
            description=f"Rewrite {self.config.license_listing} from {self.config.license_manifest}",
        )
        graph.register(
            "dump-version",
            action=self._dump_version,
            after=["clean"],
            description="Write build/version.dump",
        )

        for target in self.targets:
            graph.register(
                f"build-{target}",
                ["bootstrap", "install-tools"],
                action=partial(self._build_target, target),
                after=["clean"],
                target=target,
                description=f"Compile the binary for {target}",
                requires_provenance=True,
            )
        graph.register(
            "build-all",
            [f"build-{name}" for name in target_names],
            description="Compile the binary for every target",
        )

        compressible = [t for t in self.targets if t.compression_supported]
        for target in compressible:
            graph.register(
                f"compress-{target}",
                [f"build-{target}"],
                action=partial(self._compress_target, target),
                after=["clean"],
                target=target,
                description=f"Compress the {target} binary with {self.config.compress_command}",
            )
        graph.register(
            "compress-all",
            [f"compress-{t}" for t in compressible],
            description="Compress every binary whose target supports it",
        )

        for target in self.targets:
            graph.register(
                f"publish-{target}",
                ["build-all", "dump-version"],
                action=partial(self._publish_target, target),
                after=[f"compress-{target}"] if target.compression_supported else [],
                target=target,
                description=f"Upload the {target} binary once every target has built",
                requires_provenance=True,
            )
        graph.register(
            "publish-all",
            [f"publish-{name}" for name in target_names],
            description="Publish every target",
        )

        graph.register(
            "clean",
            action=self._clean,
            description="Delete build outputs and the project toolchain cache",
        )

        graph.validate()
        return graph

    @property
    def tasks(self) -> List[Task]:
        return self.graph.tasks

    def uncompressible_targets(self) -> List[Target]:
        return [t for t in self.targets if not t.compression_supported]

    def run(
        self,
        task_names: Iterable[str],
        max_workers: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> RunReport:
        """
        Run the requested tasks.

        The version, and the provenance record when any planned task needs
        it, are computed once here and shared by every task.

        Args:
            task_names: Tasks to run (dependencies are added automatically)
            max_workers: Concurrent task limit (defaults to the number of targets)
            now: Clock reading used for version derivation

        Returns:
            RunReport of the completed tasks

        Raises:
            TaskGraphError: If a task name is unknown
            ProvenanceError: If git metadata cannot be read
            TaskExecutionError: For the first failing task
        """
        task_names = list(task_names)
        planned = self.graph.plan(task_names)

        version = resolve_version(self.config.base_version, self.config.version_override, now)
        provenance = None
        if any(task.requires_provenance for task in planned):
            provenance = compute_provenance(
                self.config.project_dir,
                version,
                self.config.artifact_name,
                self.config.binary_name,
            )

        context = RunContext(config=self.config, version=version, provenance=provenance)
        logger.info(f"Running {', '.join(t.name for t in planned)} (version {version})")
        return self.graph.run(task_names, context, max_workers or len(self.targets))

    # Task actions

    def _go(self, context: RunContext) -> GoExecutor:
        return GoExecutor(self.toolchain.ensure_toolchain(), context.config.project_dir)

    def _bootstrap(self, context: RunContext) -> None:
        self.toolchain.ensure_toolchain()

    def _install_tools(self, context: RunContext) -> None:
        self._go(context).install_tools(list(context.config.go_tools))

    def _fmt(self, context: RunContext) -> None:
        self._go(context).fmt(context.config.main_path)

    def _test(self, context: RunContext) -> None:
        output = self._go(context).test()
        if output:
            print(output)

    def _update_deps(self, context: RunContext) -> None:
        self._go(context).update_dependencies()

    def _regenerate_licenses(self, context: RunContext) -> None:
        manifest = context.config.manifest_path
        if not manifest.exists():
            logger.warning(f"Skipping license regeneration: {manifest} not found")
            return
        regenerate_license_listing(manifest, context.config.listing_path)

    def _dump_version(self, context: RunContext) -> None:
        path = context.config.version_dump_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"version={context.version}", encoding="utf-8")

    def _build_target(self, target: Target, context: RunContext) -> None:
        config = context.config
        compiler = GoCompiler(
            self._go(context),
            config.build_dir,
            config.package_path,
            config.main_path,
            debug=config.debug,
            optimise=config.optimise,
        )
        compiler.build(target, context.require_provenance())

    def _compress_target(self, target: Target, context: RunContext) -> None:
        config = context.config
        self.compressor.compress(target, binary_path(config.build_dir, target, config.binary_name))

    def _publish_target(self, target: Target, context: RunContext) -> None:
        config = context.config
        path = binary_path(config.build_dir, target, config.binary_name)
        result = self._get_publisher(config).publish(target, path, context.require_provenance())
        print(f"Published {target} ({result.channel.value}): {result.repository_url}")

    def _get_publisher(self, config: BuildConfig) -> ArtifactPublisher:
        with self._publisher_lock:
            if self._publisher is None:
                repository = None
                if config.repository_url:
                    repository = ArtifactRepository(
                        config.repository_url,
                        config.repository_username,
                        config.repository_password,
                    )
                self._publisher = ArtifactPublisher(
                    ObjectStore(config.bucket, endpoint_url=config.s3_endpoint_url),
                    repository,
                    artifact_id=config.artifact_name,
                    group_id=config.group_id,
                    prerelease_markers=config.prerelease_markers,
                )
            return self._publisher

    def _clean(self, context: RunContext) -> None:
        remove_tree(context.config.build_dir)
        self.cache.clean_toolchains()
