"""Front matter format conversion.

Rewrites a content file's metadata block between TOML (``+++``) and YAML
(``---``). Keys keep their order, lists keep their order and length, and
the body after the block is written back exactly as it was read.
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any

import tomli_w
import yaml

from .errors import FrontmatterError
from .extractors import FENCE_FOR, FrontmatterFormat, load_frontmatter, split_frontmatter
from .utils import is_markdown

logger = logging.getLogger(__name__)


def dump_frontmatter(data: dict[str, Any], fmt: FrontmatterFormat) -> str:
    """Serialize a front matter mapping, fences excluded."""
    if fmt == "toml":
        try:
            return tomli_w.dumps(data)
        except TypeError as exc:
            raise FrontmatterError(f"value cannot be written as TOML: {exc}") from exc
    return yaml.safe_dump(
        _yaml_safe(data),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=1000,
    )


def _yaml_safe(value: Any) -> Any:
    # TOML offset date-times carry tzinfo that safe_dump cannot represent.
    if isinstance(value, dt.datetime) and value.tzinfo is not None:
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _yaml_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_yaml_safe(item) for item in value]
    return value


def convert_frontmatter(text: str, target: FrontmatterFormat) -> str:
    """Re-emit a file's front matter in another format.

    Args:
        text: Raw file content.
        target: ``"toml"`` or ``"yaml"``.

    Returns:
        The converted file. Unchanged if it is already in the target format.

    Raises:
        FrontmatterError: If the file has no metadata block or it is invalid.
    """
    fmt, raw, body = split_frontmatter(text)
    if fmt is None:
        raise FrontmatterError("missing front matter block")
    if fmt == target:
        return text
    data = load_frontmatter(raw, fmt)
    fence = FENCE_FOR[target]
    dumped = dump_frontmatter(data, target) if data else ""
    if dumped and not dumped.endswith("\n"):
        dumped += "\n"
    return f"{fence}\n{dumped}{fence}\n{body}"


def convert_tree(content_dir: Path, target: FrontmatterFormat) -> list[Path]:
    """Convert every markdown file under ``content_dir`` in place.

    Args:
        content_dir: Directory to walk.
        target: ``"toml"`` or ``"yaml"``.

    Returns:
        Paths of files that were rewritten.

    Raises:
        FrontmatterError: If any file cannot be converted. Files are only
            written after all of them converted cleanly.
    """
    pending: list[tuple[Path, str]] = []
    for path in sorted(content_dir.rglob("*.md")):
        if not is_markdown(path):
            continue
        # bytes in, bytes out: line endings in the body must survive
        try:
            text = path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrontmatterError(
                f"not valid UTF-8: {exc.reason} at byte {exc.start}", path
            ) from exc
        try:
            converted = convert_frontmatter(text, target)
        except FrontmatterError as exc:
            raise FrontmatterError(exc.message, path) from exc
        if converted != text:
            pending.append((path, converted))

    for path, converted in pending:
        path.write_bytes(converted.encode("utf-8"))
        logger.info("Converted %s to %s front matter", path.name, target)
    return [path for path, _ in pending]
