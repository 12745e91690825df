"""S3-compatible object storage client for release binaries."""

import logging
from pathlib import Path
from typing import Any, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class ObjectStoreError(Exception):
    """Raised when an object storage operation fails."""

    pass


class ObjectStore:
    """Uploads files to a single bucket.

    Credentials are resolved by boto3 from the usual AWS environment
    variables and config files.
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        """Initialize the client.

        Args:
            bucket: Bucket receiving the binaries
            endpoint_url: Custom endpoint for S3-compatible services (e.g. MinIO)
            region: AWS region
            client: Pre-built boto3 S3 client
        """
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )

    @property
    def location(self) -> str:
        """Human-readable destination for error messages."""
        return f"s3://{self.bucket}"

    def upload(self, path: Path, key: str) -> str:
        """Upload a file.

        Returns:
            The object key

        Raises:
            ObjectStoreError: If the upload fails
        """
        logger.info(f"Uploading {path} -> {self.location}/{key}")
        try:
            self._client.upload_file(str(path), self.bucket, key)
        except (S3UploadFailedError, ClientError, BotoCoreError) as e:
            raise ObjectStoreError(f"Failed to upload {path.name} to {self.location}/{key}: {e}") from e
        return key
