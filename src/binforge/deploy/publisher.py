"""
Artifact publishing.

Each target's binary goes to two places:
    - object storage at bin/<version>/<target>/<binary><ext>, whatever the channel
    - the artifact repository, in the 'alphas' repository for pre-release
      versions and in 'releases' otherwise
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from ..build.provenance import ProvenanceRecord
from ..config.targets import Target
from .object_store import ObjectStore, ObjectStoreError
from .repository import ArtifactCoordinates, ArtifactRepository, RepositoryError

logger = logging.getLogger(__name__)


class Channel(Enum):
    PRE_RELEASE = "pre-release"
    STABLE = "stable"


REPOSITORY_BY_CHANNEL = {
    Channel.PRE_RELEASE: "alphas",
    Channel.STABLE: "releases",
}


class PublishError(Exception):
    """Raised when a target cannot be published; names destination and target."""

    def __init__(self, message: str, destination: str, target: Optional[Target] = None):
        self.destination = destination
        self.target = target
        where = f" [{target}]" if target is not None else ""
        super().__init__(f"{destination}{where}: {message}")


@dataclass
class PublishResult:
    """Where a target's binary was published."""

    target: Target
    channel: Channel
    object_key: str
    repository_url: str


def classify_channel(version: str, markers: Iterable[str] = ("alpha",)) -> Channel:
    """Classify a version as pre-release if it contains any marker."""
    if any(marker in version for marker in markers):
        return Channel.PRE_RELEASE
    return Channel.STABLE


def object_key(version: str, target: Target, binary_name: str) -> str:
    return f"bin/{version}/{target}/{binary_name}{target.binary_extension}"


class ArtifactPublisher:
    """Publishes compiled binaries to object storage and the artifact repository."""

    def __init__(
        self,
        object_store: ObjectStore,
        repository: Optional[ArtifactRepository],
        artifact_id: str,
        group_id: str,
        prerelease_markers: Iterable[str] = ("alpha",),
    ):
        """Initialize the publisher.

        Args:
            object_store: Destination bucket client
            repository: Artifact repository client (None when not configured)
            artifact_id: Maven artifact id
            group_id: Maven group id
            prerelease_markers: Substrings that mark a pre-release version
        """
        self.object_store = object_store
        self.repository = repository
        self.artifact_id = artifact_id
        self.group_id = group_id
        self.prerelease_markers = tuple(prerelease_markers)

    def publish(self, target: Target, binary_path: Path, provenance: ProvenanceRecord) -> PublishResult:
        """Publish one target's binary.

        Raises:
            PublishError: If the binary is missing or either upload fails
        """
        version = provenance.version
        channel = classify_channel(version, self.prerelease_markers)

        repository_name = REPOSITORY_BY_CHANNEL[channel]
        if self.repository is None:
            raise PublishError(
                "Artifact repository is not configured (set NEXUS_BASE_URL)",
                f"repository '{repository_name}'",
                target,
            )

        if not binary_path.exists():
            raise PublishError(
                f"Binary not found: {binary_path}. Build it first.",
                self.object_store.location,
                target,
            )

        key = object_key(version, target, provenance.binary_name)
        try:
            self.object_store.upload(binary_path, key)
        except ObjectStoreError as e:
            raise PublishError(str(e), self.object_store.location, target) from e

        coordinates = ArtifactCoordinates(
            group_id=self.group_id,
            artifact_id=self.artifact_id,
            version=version,
            classifier=str(target),
            extension=target.release_extension,
        )
        try:
            url = self.repository.deploy(binary_path, coordinates, repository_name)
        except RepositoryError as e:
            raise PublishError(
                str(e), self.repository.repository_url(repository_name), target
            ) from e

        logger.info(f"Published {target} ({channel.value}) to {key} and {url}")
        return PublishResult(target=target, channel=channel, object_key=key, repository_url=url)
