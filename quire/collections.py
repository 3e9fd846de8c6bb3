from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Iterator, Sequence

from .content import Page


class PageCollection(Sequence[Page]):
    """Lightweight helper for working with lists of Pages in templates and code."""

    def __init__(self, pages: Iterable[Page]):
        self._pages = list(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        return self._pages[item]

    def posts(self) -> PageCollection:
        return PageCollection(p for p in self._pages if not p.is_section)

    def sections(self) -> PageCollection:
        return PageCollection(p for p in self._pages if p.is_section)

    def in_section(self, section: str) -> PageCollection:
        """Posts whose file sits directly in ``section`` ("" for the content root)."""
        return PageCollection(
            p for p in self._pages if not p.is_section and p.section == section.strip("/")
        )

    def with_tag(self, tag: str) -> PageCollection:
        return PageCollection(p for p in self._pages if tag in p.tags)

    def drafts(self) -> PageCollection:
        return PageCollection(p for p in self._pages if p.draft)

    def published(self) -> PageCollection:
        return PageCollection(p for p in self._pages if not p.draft)

    def sorted(self, by: str = "date", reverse: bool = True) -> PageCollection:
        """Sort pages by date (newest first by default) or by title.

        Pages without a date sort as the oldest. Ties fall back to the
        title so the order is stable across builds.

        Args:
            by: "date" or "title".
            reverse: If True (default), newest/last first.

        Returns:
            A new PageCollection with sorted pages.
        """
        if by == "title":
            return PageCollection(
                sorted(self._pages, key=lambda p: p.title.lower(), reverse=reverse)
            )
        if by != "date":
            raise ValueError(f"Cannot sort pages by {by!r}")
        return PageCollection(
            sorted(
                self._pages,
                key=lambda p: (p.date or dt.date.min, p.title.lower()),
                reverse=reverse,
            )
        )

    def latest(self, count: int = 5) -> PageCollection:
        return PageCollection(self.posts().sorted()[:count])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({len(self._pages)} pages)"
