"""
Publishing of release binaries.

Uploads binaries to object storage and deploys them to the artifact
repository selected by the version channel.
"""

from .object_store import ObjectStore, ObjectStoreError
from .publisher import (
    ArtifactPublisher,
    Channel,
    PublishError,
    PublishResult,
    classify_channel,
    object_key,
)
from .repository import ArtifactCoordinates, ArtifactRepository, RepositoryError

__all__ = [
    "ArtifactPublisher",
    "ArtifactCoordinates",
    "ArtifactRepository",
    "Channel",
    "ObjectStore",
    "ObjectStoreError",
    "PublishError",
    "PublishResult",
    "RepositoryError",
    "classify_channel",
    "object_key",
]
