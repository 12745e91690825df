"""Unit tests for the package downloader."""

import hashlib
import tarfile
import zipfile
from unittest.mock import Mock, patch

import pytest
import requests

from binforge.packages.downloader import (
    ChecksumError,
    DownloadError,
    ExtractionError,
    PackageDownloader,
)


def mock_response(payload: bytes) -> Mock:
    response = Mock()
    response.headers = {"content-length": str(len(payload))}
    response.iter_content.return_value = [payload[:4], payload[4:]]
    response.raise_for_status.return_value = None
    return response


class TestPackageDownloader:
    """Test cases for PackageDownloader."""

    def test_download(self, tmp_path):
        """Test a successful download lands at the destination."""
        dest = tmp_path / "pkg" / "go.tar.gz"
        with patch("binforge.packages.downloader.requests.get", return_value=mock_response(b"go archive")):
            result = PackageDownloader().download("https://go.dev/dl/go.tar.gz", dest, show_progress=False)

        assert result == dest
        assert dest.read_bytes() == b"go archive"
        assert not dest.with_suffix(".gz.tmp").exists()

    def test_download_checksum(self, tmp_path):
        """Test checksum verification during download."""
        payload = b"go archive"
        checksum = hashlib.sha256(payload).hexdigest()
        dest = tmp_path / "go.tar.gz"
        with patch("binforge.packages.downloader.requests.get", return_value=mock_response(payload)):
            PackageDownloader().download("https://go.dev/dl/go.tar.gz", dest, checksum=checksum, show_progress=False)
        assert dest.exists()

    def test_download_checksum_mismatch(self, tmp_path):
        """Test a checksum mismatch leaves nothing behind."""
        dest = tmp_path / "go.tar.gz"
        with patch("binforge.packages.downloader.requests.get", return_value=mock_response(b"go archive")):
            with pytest.raises(ChecksumError, match="Checksum mismatch"):
                PackageDownloader().download(
                    "https://go.dev/dl/go.tar.gz", dest, checksum="0" * 64, show_progress=False
                )
        assert list(tmp_path.iterdir()) == []

    def test_download_http_error(self, tmp_path):
        """Test network failures become DownloadError."""
        with patch(
            "binforge.packages.downloader.requests.get",
            side_effect=requests.ConnectionError("offline"),
        ):
            with pytest.raises(DownloadError, match="offline"):
                PackageDownloader().download("https://go.dev/dl/go.tar.gz", tmp_path / "go.tar.gz")

    def test_fetch_json(self):
        """Test a JSON document is fetched and decoded."""
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = [{"version": "go1.23.3", "files": []}]
        with patch("binforge.packages.downloader.requests.get", return_value=response) as get:
            releases = PackageDownloader(timeout=5).fetch_json("https://go.dev/dl/?mode=json&include=all")

        assert releases == [{"version": "go1.23.3", "files": []}]
        get.assert_called_once_with("https://go.dev/dl/?mode=json&include=all", timeout=5)

    def test_fetch_json_http_error(self):
        """Test HTTP errors while fetching JSON become DownloadError."""
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        with patch("binforge.packages.downloader.requests.get", return_value=response):
            with pytest.raises(DownloadError, match="503 Server Error"):
                PackageDownloader().fetch_json("https://go.dev/dl/?mode=json&include=all")

    def test_fetch_json_invalid_body(self):
        """Test a body that is not JSON becomes DownloadError."""
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        with patch("binforge.packages.downloader.requests.get", return_value=response):
            with pytest.raises(DownloadError, match="Expecting value"):
                PackageDownloader().fetch_json("https://go.dev/dl/?mode=json&include=all")

    def test_extract_tar(self, tmp_path):
        """Test extracting a tar.gz archive."""
        source = tmp_path / "go" / "bin" / "go"
        source.parent.mkdir(parents=True)
        source.write_text("binary")
        archive = tmp_path / "go.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            tar.add(tmp_path / "go", arcname="go")

        dest = tmp_path / "out"
        PackageDownloader().extract_archive(archive, dest)
        assert (dest / "go" / "bin" / "go").read_text() == "binary"

    def test_extract_zip(self, tmp_path):
        """Test extracting a zip archive."""
        archive = tmp_path / "go.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("go/bin/go.exe", "binary")

        dest = tmp_path / "out"
        PackageDownloader().extract_archive(archive, dest)
        assert (dest / "go" / "bin" / "go.exe").read_text() == "binary"

    def test_extract_missing_archive(self, tmp_path):
        with pytest.raises(ExtractionError, match="not found"):
            PackageDownloader().extract_archive(tmp_path / "missing.zip", tmp_path / "out")

    def test_extract_unsupported_format(self, tmp_path):
        """Test unknown archive formats are rejected."""
        archive = tmp_path / "go.rar"
        archive.write_bytes(b"rar")
        with pytest.raises(ExtractionError, match="Unsupported archive format"):
            PackageDownloader().extract_archive(archive, tmp_path / "out")

    def test_verify_checksum(self, tmp_path):
        """Test standalone checksum verification."""
        path = tmp_path / "file"
        path.write_bytes(b"content")
        downloader = PackageDownloader()
        assert downloader.verify_checksum(path, hashlib.sha256(b"content").hexdigest().upper())
        with pytest.raises(ChecksumError):
            downloader.verify_checksum(path, "0" * 64)
