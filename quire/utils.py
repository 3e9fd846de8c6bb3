"""String and path helpers shared across Quire.

Posts may be named ``YYYY-MM-DD-slug.md``; the helpers here split that
prefix off, turn names into URL slugs and pull plain text out of markdown
for descriptions and reading statistics.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path

SECTION_INDEX = "_index.md"

_DATED_NAME = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})(?:-(?P<rest>.+))?$")
_CODE_FENCE = re.compile(r"```.*?```", re.DOTALL)
_HTML_TAG = re.compile(r"<[^>]+>")
_MD_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
# headings, images, leftover fences and HTML comments are not prose
_NON_PROSE = ("#", "![", "```", "<!--")


def strip_date_prefix(name: str) -> str:
    """``2024-05-12-exporting-fmus`` becomes ``exporting-fmus``; other names are unchanged."""
    match = _DATED_NAME.match(name)
    if match and match["rest"]:
        return match["rest"]
    return name


def slugify(name: str) -> str:
    """URL slug for a filename stem or a title, without any date prefix.

    Examples:
        >>> slugify("2024-05-12-Exporting FMUs from Rust")
        'exporting-fmus-from-rust'
    """
    words = re.findall(r"[a-z0-9]+", strip_date_prefix(name).lower())
    return "-".join(words) or "index"


def extract_date_from_name(name: str) -> datetime | None:
    """Date encoded in a ``YYYY-MM-DD`` filename prefix.

    Returns:
        The date at midnight, or None when the name has no valid prefix.
    """
    match = _DATED_NAME.match(name)
    if match is None:
        return None
    try:
        return datetime(int(match["year"]), int(match["month"]), int(match["day"]))
    except ValueError:
        return None


def first_paragraph(text: str, limit: int = 160) -> str:
    """First prose paragraph of a markdown body as plain text.

    Code blocks, headings, images and HTML comments are skipped. Tags and
    link syntax are stripped, whitespace is collapsed, and the result is cut
    to ``limit`` characters.
    """
    for block in re.split(r"\n\s*\n", _CODE_FENCE.sub("", text)):
        block = block.strip()
        if not block or block.startswith(_NON_PROSE):
            continue
        plain = " ".join(_MD_LINK.sub(r"\1", _HTML_TAG.sub("", block)).split())
        if plain:
            return plain[:limit]
    return ""


def count_words(text: str) -> int:
    """Count words in a markdown body, ignoring fenced code blocks."""
    return len(re.findall(r"\b\w+\b", _CODE_FENCE.sub(" ", text)))


def ensure_clean_dir(path: Path) -> None:
    """Leave ``path`` as an existing, empty directory."""
    if path.is_dir():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def is_section_index(path: Path) -> bool:
    return path.name == SECTION_INDEX


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() == ".md"
