"""Front matter parsing and metadata extractors for Quire.

Content files start with a metadata block fenced either by ``+++`` lines
(TOML) or by ``---`` lines (YAML). Everything after the closing fence is the
body, kept exactly as written.

Key classes:
- SummaryExtractor: Summary before ``<!-- more -->`` (empty without one) and description.
- ReadingExtractor: Word count and reading time.
- CompositeMetadataExtractor: Runs several extractors and merges results.
"""

from __future__ import annotations

import math
import tomllib
from pathlib import Path
from typing import Any, Literal

import yaml

from .errors import FrontmatterError
from .utils import count_words, first_paragraph

FrontmatterFormat = Literal["toml", "yaml"]

FENCES: dict[str, FrontmatterFormat] = {"+++": "toml", "---": "yaml"}
FENCE_FOR: dict[FrontmatterFormat, str] = {fmt: fence for fence, fmt in FENCES.items()}

SUMMARY_MARKER = "<!-- more -->"
WORDS_PER_MINUTE = 200


def split_frontmatter(text: str) -> tuple[FrontmatterFormat | None, str, str]:
    """Split a content file into its metadata block and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (format, raw metadata text, body). Format is None when the
        file has no metadata block, in which case the body is the whole text.

    Raises:
        FrontmatterError: If an opening fence is never closed.
    """
    lines = text.splitlines(keepends=True)
    if not lines:
        return None, "", text
    fence = lines[0].rstrip()
    fmt = FENCES.get(fence)
    if fmt is None:
        return None, "", text
    for index in range(1, len(lines)):
        if lines[index].rstrip() == fence:
            raw = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            return fmt, raw, body
    raise FrontmatterError(f"front matter opened with '{fence}' is never closed")


def load_frontmatter(raw: str, fmt: FrontmatterFormat) -> dict[str, Any]:
    """Parse a raw metadata block.

    Raises:
        FrontmatterError: On a syntax error or when the block is not a mapping.
    """
    if fmt == "toml":
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise FrontmatterError(f"invalid TOML front matter: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise FrontmatterError(f"invalid YAML front matter: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError(
            f"YAML front matter must be a mapping, got {type(data).__name__}"
        )
    return data


def parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract front matter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, body). A file without a metadata block
        yields an empty dict.

    Raises:
        FrontmatterError: If the block is unterminated or unparsable.
    """
    fmt, raw, body = split_frontmatter(text)
    if fmt is None:
        return {}, body
    return load_frontmatter(raw, fmt), body


class SummaryExtractor:
    """Summary and description.

    The summary is the markdown before a ``<!-- more -->`` marker, if there
    is one. The description comes from front matter, else the first
    paragraph truncated to 160 characters.
    """

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        summary = ""
        if SUMMARY_MARKER in body:
            summary = body.split(SUMMARY_MARKER, 1)[0].strip()
        description = frontmatter.get("description") or first_paragraph(body)
        return {"summary": summary, "description": description}


class ReadingExtractor:
    """Word count and whole-minute reading time, code fences excluded."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        words = count_words(body)
        return {
            "word_count": words,
            "reading_time": max(1, math.ceil(words / WORDS_PER_MINUTE)) if words else 0,
        }


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs all extractors on the content and merges their results. Later
    extractors can override earlier ones.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                SummaryExtractor(),
                ReadingExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        self._extractors.append(extractor)

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        """Extract all metadata from a parsed content file.

        Args:
            frontmatter: Parsed metadata block.
            body: Body text after the metadata block.
            path: Path to the source file.

        Returns:
            Dictionary with all extracted metadata.
        """
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(frontmatter, body, path))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
