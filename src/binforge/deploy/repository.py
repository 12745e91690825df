"""Maven-layout artifact repository client (Nexus).

Artifacts are deployed with HTTP PUT to
    <base>/repositories/<repo>/<group path>/<artifact>/<version>/<artifact>-<version>-<classifier>.<ext>
followed by a .sha1 checksum sidecar, which is what Maven deploy clients send.
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import requests

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when deploying to the artifact repository fails."""

    pass


@dataclass(frozen=True)
class ArtifactCoordinates:
    """Maven coordinates of one published file."""

    group_id: str
    artifact_id: str
    version: str
    classifier: str
    extension: str

    @property
    def filename(self) -> str:
        return f"{self.artifact_id}-{self.version}-{self.classifier}.{self.extension}"

    @property
    def path(self) -> str:
        group_path = self.group_id.replace(".", "/")
        return f"{group_path}/{self.artifact_id}/{self.version}/{self.filename}"


def compute_sha1(path: Path) -> str:
    sha1 = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha1.update(chunk)
    return sha1.hexdigest()


class ArtifactRepository:
    """Deploys files to a Maven-layout repository over HTTP."""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 300,
    ):
        """Initialize the client.

        Args:
            base_url: Repository manager root (e.g. https://nexus.example.com/nexus/content)
            username: User for HTTP basic auth
            password: Password for HTTP basic auth
            session: requests session to reuse
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self._auth: Optional[Tuple[str, str]] = (
            (username, password or "") if username else None
        )

    def repository_url(self, repository: str) -> str:
        return f"{self.base_url}/repositories/{repository}/"

    def deploy(self, path: Path, coordinates: ArtifactCoordinates, repository: str) -> str:
        """Upload a file and its SHA-1 sidecar.

        Returns:
            URL of the deployed artifact

        Raises:
            RepositoryError: If an upload fails
        """
        url = self.repository_url(repository) + coordinates.path
        logger.info(f"Deploying {path} -> {url}")

        with open(path, "rb") as f:
            self._put(url, f)
        self._put(url + ".sha1", compute_sha1(path).encode("ascii"))
        return url

    def _put(self, url: str, data) -> None:
        try:
            response = self.session.put(url, data=data, auth=self._auth, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RepositoryError(f"Failed to upload {url}: {e}") from e
