"""Jinja2 rendering for Quire.

``TemplateEngine`` owns the Jinja2 environment over ``templates/``. Every
template sees ``config``, ``site`` (the root section), ``pages`` and
``sections`` plus a few helpers; a page template also gets ``page`` and its
rendered ``content``, and a section template gets ``section`` and the
published posts it lists as ``section_pages``.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup
from pygments.formatters import HtmlFormatter

from .collections import PageCollection
from .content import Page
from .html_utils import escape_html, join_root_url

__all__ = ["TemplateEngine", "render_toc"]

logger = logging.getLogger(__name__)


def render_toc(page: Page) -> Markup:
    """Nested ``<ul>`` of links to the page's headings, empty when it has none.

    A deeper heading opens a list inside the previous item; a shallower one
    closes lists until its level is reached.
    """
    parts: list[str] = []
    open_levels: list[int] = []
    for heading in page.toc:
        while open_levels and heading.level < open_levels[-1]:
            parts.append("</li></ul>")
            open_levels.pop()
        if open_levels and heading.level == open_levels[-1]:
            parts.append("</li>")
        else:
            parts.append("<ul>")
            open_levels.append(heading.level)
        parts.append(f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>')
    parts.extend("</li></ul>" for _ in open_levels)
    return Markup("".join(parts))


class TemplateEngine:
    """Renders pages through their Jinja2 templates.

    Attributes:
        templates_dir: Directory holding the templates.
        config: Site configuration, exposed as ``config``.
        base_url: Root URL used by ``url_for``; empty for root-relative links.
        env: The Jinja2 environment.
        pages: Every page of the site, exposed as ``pages``.
        site: The root section page, exposed as ``site``.
    """

    def __init__(
        self,
        templates_dir: Path,
        config: dict[str, Any],
        base_url: str | None = None,
    ):
        self.templates_dir = templates_dir
        self.config = config
        self.base_url = (base_url if base_url is not None else config.get("base_url")) or ""
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.pages: PageCollection = PageCollection([])
        self.site: Page | None = None
        self.env.globals.update(
            config=self.config,
            pages=self.pages,
            sections=self.pages.sections(),
            site=self.site,
            url_for=self._url_for,
            pygments_css=self._pygments_css,
            render_toc=render_toc,
            now=dt.datetime.now,
        )

    def _pygments_css(self) -> Markup:
        """Return Pygments CSS for the ``.highlight`` class in the configured style."""
        style = self.config.get("highlight_style", "default")
        return Markup(HtmlFormatter(style=style).get_style_defs(".highlight"))

    def update_collections(self, pages: Iterable[Page]) -> None:
        """Expose the site's pages, sections and root section to templates."""
        self.pages = PageCollection(pages)
        self.site = next((p for p in self.pages if p.is_root), None)
        self.env.globals.update(pages=self.pages, sections=self.pages.sections(), site=self.site)

    def _url_for(self, path: str) -> str:
        # absolute and mailto links pass through untouched
        if path.startswith(("http://", "https://", "//", "mailto:")):
            return path
        if self.base_url:
            return join_root_url(self.base_url, path)
        return path if path.startswith("/") else f"/{path}"

    def render_page(self, page: Page) -> str:
        """Render ``page`` through its template.

        A missing template is logged and the page body is rendered on its
        own, so one absent layout does not stop the build.
        """
        context: dict[str, Any] = {
            "page": page,
            "content": Markup(page.content),
            "config": self.config,
        }
        if page.is_section:
            context["section"] = page
            context["section_pages"] = self._section_pages(page)
        try:
            template = self.env.get_template(page.template)
        except TemplateNotFound:
            logger.warning(
                "Template %s not found for %s, rendering the body only",
                page.template,
                page.path.name,
            )
            template = self.env.from_string("{{ content }}")
        return template.render(**context)

    def _section_pages(self, section: Page) -> PageCollection:
        posts = self.pages.in_section(section.section).published()
        sort_by = getattr(section.record, "sort_by", "date")
        if sort_by == "none":
            return posts
        return posts.sorted(by=sort_by, reverse=sort_by == "date")

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        return self.env.from_string(template).render(**context)
