"""Turns ``content/`` into Page objects.

Each markdown file is split into front matter and body, the front matter is
validated against its record schema and the body is rendered to HTML.

``_index.md`` files are sections; the one at the content root is the site
record (the about page). Every other markdown file is a post.

Key classes:
- Page: One rendered section or post.
- FileContentLoader: Discovers content files.
- UrlDeriver: Derives URL paths from file locations.
- TemplateResolver: Picks the template a page renders with.
- DefaultPageBuilder: Builds a Page from one source file.
- ContentProcessor: Facade that loads every page of a site.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .errors import BuildError, FrontmatterError, SchemaError
from .extractors import (
    CompositeMetadataExtractor,
    default_metadata_extractor,
    load_frontmatter,
    split_frontmatter,
)
from .renderers import Heading, MarkdownRenderer
from .schema import RecordKind, validate_record
from .utils import extract_date_from_name, is_markdown, is_section_index, slugify

logger = logging.getLogger(__name__)

ROOT_TEMPLATE = "index.html"
SECTION_TEMPLATE = "section.html"
PAGE_TEMPLATE = "page.html"


@dataclass
class Page:
    """A section or post, ready for its template.

    Attributes:
        title: Title from the front matter.
        body: Raw body text after the front matter, unmodified.
        content: Body rendered to HTML.
        summary: Rendered HTML of the text before ``<!-- more -->``, if any.
        description: Short plain-text description.
        url: Root-relative URL ending in a slash.
        slug: URL-friendly slug.
        date: Publication date (posts only).
        draft: Whether this is a draft post.
        kind: "section" or "page".
        template: Template file the page renders with.
        section: Directory of the page relative to content/ ("" for root).
        path: Source markdown file.
        record: Validated front matter model.
    """

    title: str
    body: str
    content: str
    summary: str
    description: str
    url: str
    slug: str
    date: dt.date | None
    draft: bool
    kind: str  # "section" | "page"
    template: str
    section: str
    path: Path
    record: BaseModel
    frontmatter: dict[str, Any] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)
    word_count: int = 0
    reading_time: int = 0

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def is_section(self) -> bool:
        return self.kind == "section"

    @property
    def is_root(self) -> bool:
        return self.is_section and self.section == ""

    @property
    def extra(self) -> Any:
        return getattr(self.record, "extra", {})

    @property
    def tags(self) -> list[str]:
        return list(getattr(self.record, "tags", []))


class FileContentLoader:
    """Discovers markdown files under a content directory.

    Attributes:
        content_dir: Directory containing content.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self) -> list[Path]:
        """List every markdown file, section indexes first, then by path."""
        files = [p for p in self.content_dir.rglob("*.md") if p.is_file() and is_markdown(p)]
        return sorted(
            files,
            key=lambda p: (not is_section_index(p), p.relative_to(self.content_dir).as_posix()),
        )


def section_of(rel: Path) -> str:
    """Directory of a content file relative to content/, "" for the root."""
    return "" if rel.parent == Path(".") else rel.parent.as_posix()


def record_kind(rel: Path) -> RecordKind:
    """Record kind for a path relative to content/."""
    if is_section_index(rel):
        return "site" if rel.parent == Path(".") else "section"
    return "post"


class UrlDeriver:
    """Derives URLs for pages from their location under content/."""

    def derive(self, rel: Path, slug: str) -> str:
        """``notes/_index.md`` maps to ``/notes/`` and ``notes/x.md`` to ``/notes/<slug>/``."""
        segments = [p for p in rel.parent.parts if p and p != "."]
        if not is_section_index(rel):
            segments.append(slug)
        path = "/".join(segments)
        return f"/{path}/" if path else "/"


class TemplateResolver:
    """Resolves the template for a page.

    Posts use, in order: their own ``template``, the ``page_template`` of
    the nearest enclosing section that sets one, then ``page.html``.
    Sections use their ``template``, else ``index.html`` for the root and
    ``section.html`` below it.
    """

    def __init__(self, sections: dict[str, BaseModel] | None = None):
        self.sections = sections if sections is not None else {}

    def resolve(self, section: str, kind: RecordKind, record: BaseModel) -> str:
        own = getattr(record, "template", None)
        if own:
            return own
        if kind == "site":
            return ROOT_TEMPLATE
        if kind == "section":
            return SECTION_TEMPLATE

        current: str | None = section
        while current is not None:
            parent_record = self.sections.get(current)
            page_template = getattr(parent_record, "page_template", None)
            if page_template:
                return page_template
            current = self._parent(current)
        return PAGE_TEMPLATE

    @staticmethod
    def _parent(section: str) -> str | None:
        if not section:
            return None
        parent = Path(section).parent
        return "" if parent == Path(".") else parent.as_posix()


class DefaultPageBuilder:
    """Reads, validates and renders one content file at a time.

    Section records are remembered as they are built so later posts can
    inherit a ``page_template``; build sections before their posts.
    """

    def __init__(
        self,
        content_dir: Path,
        renderer: MarkdownRenderer | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.content_dir = content_dir
        self.renderer = renderer or MarkdownRenderer()
        self.metadata_extractor = metadata_extractor or default_metadata_extractor
        self.template_resolver = TemplateResolver()
        self.url_deriver = UrlDeriver()

    def read(self, path: Path) -> tuple[RecordKind, dict[str, Any], str, BaseModel]:
        """Parse and validate one content file without rendering it.

        Returns:
            Tuple of (record kind, raw front matter, body, validated record).

        Raises:
            FrontmatterError: If the metadata block is missing or unparsable.
            SchemaError: If the metadata does not match the record schema.
        """
        rel = path.relative_to(self.content_dir)
        kind = record_kind(rel)
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise FrontmatterError(
                f"not valid UTF-8: {exc.reason} at byte {exc.start}", path
            ) from exc
        try:
            fmt, raw, body = split_frontmatter(text)
            if fmt is None:
                raise FrontmatterError("missing front matter block")
            frontmatter = load_frontmatter(raw, fmt)
        except FrontmatterError as exc:
            raise FrontmatterError(exc.message, path) from exc

        candidate = dict(frontmatter)
        if kind == "post" and candidate.get("date") is None:
            # Dated filenames stand in for a missing date key.
            filename_date = extract_date_from_name(path.stem)
            if filename_date is not None:
                candidate["date"] = filename_date.date()
        try:
            record = validate_record(candidate, kind)
        except SchemaError as exc:
            raise SchemaError(exc.problems, path) from exc
        return kind, frontmatter, body, record

    def build(self, path: Path) -> Page:
        rel = path.relative_to(self.content_dir)
        section = section_of(rel)
        kind, frontmatter, body, record = self.read(path)

        if kind != "post":
            self.template_resolver.sections[section] = record

        metadata = self.metadata_extractor.extract(frontmatter, body, path)
        content, toc = self.renderer.render(body)
        summary = metadata.get("summary", "")
        summary_html = self.renderer.render(summary)[0] if summary else ""

        if kind == "post":
            slug = slugify(record.slug or path.stem)
        else:
            slug = slugify(Path(section).name) if section else "index"
        url = self.url_deriver.derive(rel, slug)

        return Page(
            title=record.title,
            body=body,
            content=content,
            summary=summary_html,
            description=getattr(record, "description", None) or metadata.get("description", ""),
            url=url,
            slug=slug,
            date=getattr(record, "date", None),
            draft=bool(getattr(record, "draft", False)),
            kind="page" if kind == "post" else "section",
            template=self.template_resolver.resolve(section, kind, record),
            section=section,
            path=path,
            record=record,
            frontmatter=frontmatter,
            toc=toc,
            word_count=metadata.get("word_count", 0),
            reading_time=metadata.get("reading_time", 0),
        )


class ContentProcessor:
    """Loads every page under a content directory."""

    def __init__(
        self,
        content_dir: Path,
        content_loader: FileContentLoader | None = None,
        page_builder: DefaultPageBuilder | None = None,
    ):
        self.content_dir = content_dir
        self._content_loader = content_loader or FileContentLoader(content_dir)
        self._page_builder = page_builder or DefaultPageBuilder(content_dir)

    def load(self, include_drafts: bool = False) -> list[Page]:
        """Build every page, sections first, leaving drafts out unless asked.

        Raises:
            BuildError: A file has unparsable or invalid front matter.
        """
        pages: list[Page] = []
        for path in self._content_loader.iter_files():
            try:
                page = self._page_builder.build(path)
            except (FrontmatterError, SchemaError) as exc:
                raise BuildError(path, exc.message, exc) from exc
            if page.draft and not include_drafts:
                logger.debug("Skipping draft %s", path.name)
                continue
            pages.append(page)
        return pages
