"""Unit tests for channel routing and artifact publishing."""

from unittest.mock import Mock

import pytest

from binforge.build.provenance import ProvenanceRecord
from binforge.config.targets import get_target
from binforge.deploy.object_store import ObjectStoreError
from binforge.deploy.publisher import (
    REPOSITORY_BY_CHANNEL,
    ArtifactPublisher,
    Channel,
    PublishError,
    classify_channel,
    object_key,
)
from binforge.deploy.repository import RepositoryError


def record(version: str) -> ProvenanceRecord:
    return ProvenanceRecord(
        version=version,
        build_tag="v1",
        commit_hash="abc1234",
        build_timestamp="2026-10-19T09:05:00.000Z",
        binary_name="xl-blueprint",
    )


def make_publisher(repository=True):
    store = Mock()
    store.location = "s3://blueprint-cli"
    store.upload.side_effect = lambda path, key: key
    repo = None
    if repository:
        repo = Mock()
        repo.repository_url.side_effect = lambda name: f"https://nexus/repositories/{name}/"
        repo.deploy.side_effect = lambda path, coords, name: f"https://nexus/repositories/{name}/{coords.path}"
    return ArtifactPublisher(store, repo, artifact_id="blueprint-cli", group_id="com.xebialabs.xlclient")


@pytest.fixture
def binary(tmp_path):
    path = tmp_path / "xl-blueprint.exe"
    path.write_bytes(b"MZ")
    return path


class TestChannel:
    """Test cases for channel classification."""

    def test_alpha_is_pre_release(self):
        assert classify_channel("9.9.9-alpha.1") == Channel.PRE_RELEASE

    def test_plain_version_is_stable(self):
        assert classify_channel("9.9.9") == Channel.STABLE

    def test_derived_version_is_stable(self):
        """Test clock-derived versions carry no pre-release marker."""
        assert classify_channel("25.1.0-1019.905") == Channel.STABLE

    def test_custom_markers(self):
        assert classify_channel("9.9.9-rc1", ("alpha", "rc")) == Channel.PRE_RELEASE

    def test_destination(self):
        """Test routing to the alphas and releases repositories."""
        assert REPOSITORY_BY_CHANNEL[classify_channel("9.9.9-alpha.1")] == "alphas"
        assert REPOSITORY_BY_CHANNEL[classify_channel("9.9.9")] == "releases"


class TestObjectKey:
    def test_key_layout(self):
        assert object_key("9.9.9", get_target("windows-amd64"), "xl-blueprint") == (
            "bin/9.9.9/windows-amd64/xl-blueprint.exe"
        )
        assert object_key("9.9.9", get_target("linux-arm64"), "xl-blueprint") == (
            "bin/9.9.9/linux-arm64/xl-blueprint"
        )


class TestArtifactPublisher:
    """Test cases for ArtifactPublisher.publish."""

    def test_publish_pre_release(self, binary):
        """Test a pre-release goes to object storage and the alphas repository."""
        publisher = make_publisher()
        target = get_target("windows-amd64")

        result = publisher.publish(target, binary, record("9.9.9-alpha.1"))

        publisher.object_store.upload.assert_called_once_with(
            binary, "bin/9.9.9-alpha.1/windows-amd64/xl-blueprint.exe"
        )
        path, coordinates, repository = publisher.repository.deploy.call_args.args
        assert repository == "alphas"
        assert coordinates.classifier == "windows-amd64"
        assert coordinates.extension == "exe"
        assert coordinates.version == "9.9.9-alpha.1"
        assert result.channel == Channel.PRE_RELEASE
        assert "/repositories/alphas/" in result.repository_url

    def test_publish_stable(self, binary):
        """Test a stable version goes to the releases repository."""
        publisher = make_publisher()
        result = publisher.publish(get_target("linux-amd64"), binary, record("9.9.9"))
        assert publisher.repository.deploy.call_args.args[2] == "releases"
        assert result.channel == Channel.STABLE
        assert result.object_key == "bin/9.9.9/linux-amd64/xl-blueprint"

    def test_missing_binary(self, tmp_path):
        """Test publishing a binary that was never built."""
        publisher = make_publisher()
        with pytest.raises(PublishError, match="Build it first") as exc_info:
            publisher.publish(get_target("linux-amd64"), tmp_path / "missing", record("9.9.9"))
        assert exc_info.value.target == get_target("linux-amd64")
        publisher.object_store.upload.assert_not_called()

    def test_object_store_failure(self, binary):
        """Test upload failures name the bucket and the target."""
        publisher = make_publisher()
        publisher.object_store.upload.side_effect = ObjectStoreError("AccessDenied")

        with pytest.raises(PublishError) as exc_info:
            publisher.publish(get_target("linux-arm64"), binary, record("9.9.9"))

        error = exc_info.value
        assert error.destination == "s3://blueprint-cli"
        assert error.target == get_target("linux-arm64")
        assert "AccessDenied" in str(error)
        publisher.repository.deploy.assert_not_called()

    def test_repository_failure(self, binary):
        """Test repository failures name the repository URL."""
        publisher = make_publisher()
        publisher.repository.deploy.side_effect = RepositoryError("401 Unauthorized")

        with pytest.raises(PublishError, match="401 Unauthorized") as exc_info:
            publisher.publish(get_target("linux-amd64"), binary, record("9.9.9-alpha"))

        assert exc_info.value.destination == "https://nexus/repositories/alphas/"

    def test_repository_not_configured(self, binary):
        """Test publishing without a repository fails loudly."""
        publisher = make_publisher(repository=False)
        with pytest.raises(PublishError, match="NEXUS_BASE_URL"):
            publisher.publish(get_target("linux-amd64"), binary, record("9.9.9"))
        publisher.object_store.upload.assert_not_called()

    def test_repository_checked_before_binary(self, tmp_path):
        """Test a missing repository is reported even before the binary exists."""
        publisher = make_publisher(repository=False)
        with pytest.raises(PublishError, match="repository 'alphas'") as exc_info:
            publisher.publish(get_target("windows-amd64"), tmp_path / "missing.exe", record("9.9.9-alpha.1"))
        assert exc_info.value.target == get_target("windows-amd64")
        publisher.object_store.upload.assert_not_called()
