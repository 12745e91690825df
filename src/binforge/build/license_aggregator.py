"""License listing regeneration.

Reads the module requirements from go.mod and writes one source URL per
dependency. Matching rule: a line that starts with ASCII whitespace followed by a
token made of letters, digits, dots, slashes and hyphens. The token is
prefixed with 'http://'. Any other line is skipped.

Example:
    '    github.com/example/foo v1.2.3'  ->  'http://github.com/example/foo'
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)

MODULE_LINE = re.compile(r"^\s+[a-zA-Z0-9./\-]+", re.ASCII)
URL_SCHEME = "http://"


def extract_license_urls(lines: Iterable[str]) -> List[str]:
    """Extract license source URLs from manifest lines."""
    urls = []
    for line in lines:
        match = MODULE_LINE.match(line)
        if match is None:
            if line.strip():
                logger.debug(f"Skipping manifest line: {line.rstrip()}")
            continue
        urls.append(f"{URL_SCHEME}{match.group(0).strip()}")
    return urls


def regenerate_license_listing(manifest_path: Path, listing_path: Path) -> str:
    """
    Rewrite the license listing from the dependency manifest.

    The previous listing is deleted first; the output is never merged.

    Args:
        manifest_path: Path to go.mod
        listing_path: Path of the listing to write

    Returns:
        The listing text that was written

    Raises:
        FileNotFoundError: If the manifest does not exist
    """
    if listing_path.exists():
        listing_path.unlink()

    lines = manifest_path.read_text(encoding="utf-8").splitlines()
    urls = extract_license_urls(lines)
    text = "".join(f"{url}\n" for url in urls)

    listing_path.parent.mkdir(parents=True, exist_ok=True)
    listing_path.write_text(text, encoding="utf-8", newline="\n")
    logger.info(f"Wrote {len(urls)} license entries to {listing_path}")
    return text
