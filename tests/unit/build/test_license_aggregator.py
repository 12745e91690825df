"""Unit tests for license listing regeneration."""

import pytest

from binforge.build.license_aggregator import extract_license_urls, regenerate_license_listing

GO_MOD = """module github.com/xebialabs/blueprint-cli

go 1.23

require (
\tgithub.com/example/foo v1.2.3
    github.com/spf13/cobra v1.8.0 // indirect
\tgopkg.in/yaml.v3 v3.0.1
)

require github.com/single/line v0.1.0
"""


class TestExtractLicenseUrls:
    """Test cases for extract_license_urls."""

    def test_indented_module_line(self):
        """Test the documented example line."""
        assert extract_license_urls(["    github.com/example/foo v1.2.3"]) == [
            "http://github.com/example/foo"
        ]

    def test_unindented_lines_skipped(self):
        """Test lines without leading whitespace are ignored."""
        assert extract_license_urls(["module foo", "go 1.23", "require (", ")", ""]) == []

    def test_token_stops_at_disallowed_character(self):
        """Test the token ends at the first character outside the allowed set."""
        assert extract_license_urls(["\tgolang.org/x/sys@v0.1.0"]) == ["http://golang.org/x/sys"]

    def test_whitespace_only_line_skipped(self):
        assert extract_license_urls(["   ", "\t"]) == []

    def test_non_ascii_indentation_skipped(self):
        """Test only ASCII whitespace counts as indentation."""
        assert extract_license_urls(["\u00a0github.com/example/foo v1.2.3"]) == []
        assert extract_license_urls(["\u3000github.com/example/foo v1.2.3"]) == []


class TestRegenerateLicenseListing:
    """Test cases for regenerate_license_listing."""

    def test_regenerate(self, tmp_path):
        """Test the listing contains one URL per dependency line."""
        manifest = tmp_path / "go.mod"
        manifest.write_text(GO_MOD, encoding="utf-8")
        listing = tmp_path / "licenses" / "licences.md"

        text = regenerate_license_listing(manifest, listing)

        assert text == (
            "http://github.com/example/foo\n"
            "http://github.com/spf13/cobra\n"
            "http://gopkg.in/yaml.v3\n"
        )
        assert listing.read_bytes() == text.encode("utf-8")

    def test_idempotent(self, tmp_path):
        """Test two runs on the same manifest give byte-identical listings."""
        manifest = tmp_path / "go.mod"
        manifest.write_text(GO_MOD, encoding="utf-8")
        listing = tmp_path / "licences.md"

        regenerate_license_listing(manifest, listing)
        first = listing.read_bytes()
        regenerate_license_listing(manifest, listing)
        assert listing.read_bytes() == first

    def test_old_listing_replaced(self, tmp_path):
        """Test stale content is never merged into the new listing."""
        manifest = tmp_path / "go.mod"
        manifest.write_text("require (\n\tgithub.com/new/dep v1.0.0\n)\n", encoding="utf-8")
        listing = tmp_path / "licences.md"
        listing.write_text("http://github.com/old/dep\n", encoding="utf-8")

        regenerate_license_listing(manifest, listing)
        assert listing.read_text(encoding="utf-8") == "http://github.com/new/dep\n"

    def test_missing_manifest(self, tmp_path):
        """Test a missing manifest raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            regenerate_license_listing(tmp_path / "go.mod", tmp_path / "licences.md")
