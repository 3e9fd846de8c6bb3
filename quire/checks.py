"""Content validation for Quire.

``check_site`` reads every content file the same way a build would, but
collects problems instead of stopping at the first one, so an author can fix
everything in one pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .content import DefaultPageBuilder, FileContentLoader
from .errors import FrontmatterError, SchemaError
from .utils import slugify

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class Issue:
    """One problem found in a content file.

    Attributes:
        path: File the problem is in.
        message: Human-readable description.
        severity: "error" or "warning".
    """

    path: Path
    message: str
    severity: str = ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR


def check_site(project_root: Path) -> list[Issue]:
    """Validate every content file of a project.

    Checks that each metadata block parses, that each record matches its
    schema, that the root site record exists, and that no two posts in a
    section share a slug.

    Args:
        project_root: Root directory of the project.

    Returns:
        All issues found, in file order. An empty list means the site is valid.
    """
    content_dir = project_root / "content"
    if not content_dir.exists():
        return [Issue(content_dir, "content directory does not exist")]

    builder = DefaultPageBuilder(content_dir)
    issues: list[Issue] = []
    seen_slugs: dict[tuple[str, str], Path] = {}

    files = FileContentLoader(content_dir).iter_files()
    if not (content_dir / "_index.md").exists():
        issues.append(Issue(content_dir / "_index.md", "site record (_index.md) is missing"))

    for path in files:
        try:
            kind, _, body, record = builder.read(path)
        except FrontmatterError as exc:
            issues.append(Issue(path, exc.message))
            continue
        except SchemaError as exc:
            issues.extend(Issue(path, problem) for problem in exc.problems)
            continue

        if kind == "post":
            section = path.parent.relative_to(content_dir).as_posix()
            key = (section, slugify(record.slug or path.stem))
            if key in seen_slugs:
                issues.append(
                    Issue(path, f"slug '{key[1]}' is already used by {seen_slugs[key].name}")
                )
            else:
                seen_slugs[key] = path
        if not body.strip():
            issues.append(Issue(path, "body is empty", WARNING))

    logger.debug("Checked %d files, %d issues", len(files), len(issues))
    return issues
