"""Sitemap and RSS output for Quire.

Each feed is a ``FeedGenerator`` registered on a ``FeedRegistry``; the build
asks the registry to write every enabled feed once pages are rendered. Feeds
need absolute links, so nothing is written without a ``base_url``.
"""

from __future__ import annotations

import datetime as dt
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from email.utils import format_datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any
from xml.etree import ElementTree as ET

if TYPE_CHECKING:
    from .content import Page

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"


def _serialize(root: ET.Element) -> str:
    ET.indent(root)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"


def _midnight_utc(day: dt.date) -> dt.datetime:
    return dt.datetime(day.year, day.month, day.day, tzinfo=dt.timezone.utc)


class FeedGenerator(ABC):
    """One XML file derived from the site's pages."""

    filename: str

    @abstractmethod
    def render(self, pages: Sequence[Page], site_root: str, config: dict[str, Any]) -> str:
        """Serialize the feed.

        Args:
            pages: Published pages.
            site_root: ``base_url`` without its trailing slash.
            config: Site configuration.
        """

    def generate(self, pages: Iterable[Page], config: dict[str, Any]) -> str | None:
        """Feed text, or None when there is no ``base_url`` to build links from."""
        site_root = str(config.get("base_url") or "").rstrip("/")
        if not site_root:
            return None
        return self.render(list(pages), site_root, config)

    def write(self, output_dir: Path, pages: Iterable[Page], config: dict[str, Any]) -> bool:
        text = self.generate(pages, config)
        if text is None:
            logger.debug("No base_url, not writing %s", self.filename)
            return False
        (output_dir / self.filename).write_text(text, encoding="utf-8")
        return True


class SitemapGenerator(FeedGenerator):
    """``sitemap.xml`` listing every page; dated pages carry ``lastmod``."""

    filename = "sitemap.xml"

    def render(self, pages: Sequence[Page], site_root: str, config: dict[str, Any]) -> str:
        urlset = ET.Element("urlset", xmlns=SITEMAP_NAMESPACE)
        for page in pages:
            entry = ET.SubElement(urlset, "url")
            ET.SubElement(entry, "loc").text = site_root + page.url
            if page.date is not None:
                ET.SubElement(entry, "lastmod").text = page.date.isoformat()
        return _serialize(urlset)


class RSSGenerator(FeedGenerator):
    """RSS 2.0 ``rss.xml`` of dated posts, newest first.

    The channel takes ``title`` and ``description`` from config. An item's
    description is the post's rendered summary, else its plain-text
    description, else its title.
    """

    filename = "rss.xml"

    def render(self, pages: Sequence[Page], site_root: str, config: dict[str, Any]) -> str:
        title = config.get("title") or "Quire Feed"
        rss = ET.Element("rss", version="2.0")
        channel = ET.SubElement(rss, "channel")
        ET.SubElement(channel, "title").text = title
        ET.SubElement(channel, "link").text = f"{site_root}/"
        ET.SubElement(channel, "description").text = config.get("description") or title
        ET.SubElement(channel, "lastBuildDate").text = format_datetime(
            dt.datetime.now(dt.timezone.utc)
        )

        posts = [p for p in pages if not p.is_section and p.date is not None]
        for post in sorted(posts, key=lambda p: p.date, reverse=True):
            link = site_root + post.url
            item = ET.SubElement(channel, "item")
            ET.SubElement(item, "title").text = post.title
            ET.SubElement(item, "link").text = link
            ET.SubElement(item, "guid").text = link
            summary = post.summary or post.description or post.title
            ET.SubElement(item, "description").text = summary
            ET.SubElement(item, "pubDate").text = format_datetime(_midnight_utc(post.date))
        return _serialize(rss)


class FeedRegistry:
    """Ordered set of feed generators."""

    def __init__(self, generators: Iterable[FeedGenerator] = ()):
        self.generators = list(generators)

    def register(self, generator: FeedGenerator) -> None:
        self.generators.append(generator)

    def generate_all(
        self, output_dir: Path, pages: Iterable[Page], config: dict[str, Any]
    ) -> list[str]:
        """Write every feed that can be produced and return the filenames written."""
        pages = list(pages)
        return [g.filename for g in self.generators if g.write(output_dir, pages, config)]


def create_default_feed_registry(config: dict[str, Any] | None = None) -> FeedRegistry:
    """Registry holding the feeds enabled by ``generate_sitemap`` and ``generate_rss``."""
    config = config or {}
    registry = FeedRegistry()
    if config.get("generate_sitemap", True):
        registry.register(SitemapGenerator())
    if config.get("generate_rss", True):
        registry.register(RSSGenerator())
    return registry
