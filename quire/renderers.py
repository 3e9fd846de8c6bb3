"""Markdown to HTML with mistune.

Fenced code with a known language is highlighted by Pygments into
``<div class="highlight">``; an unknown language falls back to an escaped
``<pre><code class="language-...">``. Every heading gets an ``id`` anchor,
and the headings are handed back alongside the HTML so templates can build
a table of contents.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from html import unescape

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html

logger = logging.getLogger(__name__)

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]

_TAG = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class Heading:
    """A rendered heading: anchor id, plain text and level 1-6."""

    id: str
    text: str
    level: int


def generate_heading_id(text: str) -> str:
    """Anchor id for a heading's inline HTML.

    Examples:
        >>> generate_heading_id("Exporting <em>FMUs</em> from Rust")
        'exporting-fmus-from-rust'
    """
    words = re.sub(r"[^\w\s-]", "", _TAG.sub("", text).lower())
    return re.sub(r"[-\s]+", "-", words).strip("-") or "section"


class _HighlightRenderer(mistune.HTMLRenderer):
    def __init__(self, highlight_code: bool = True):
        super().__init__(escape=False)
        self.highlight_code = highlight_code
        self.headings: list[Heading] = []
        self._issued: set[str] = set()

    def heading(self, text: str, level: int, **attrs) -> str:
        anchor = anchor_id = generate_heading_id(text)
        # repeats take the first free -1, -2 suffix
        suffix = 0
        while anchor_id in self._issued:
            suffix += 1
            anchor_id = f"{anchor}-{suffix}"
        self._issued.add(anchor_id)
        self.headings.append(Heading(anchor_id, unescape(_TAG.sub("", text)), level))
        return f'<h{level} id="{anchor_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = (info or "").split()[0] if (info or "").strip() else ""
        if lang and self.highlight_code:
            try:
                lexer = get_lexer_by_name(lang)
            except ClassNotFound:
                logger.debug("Unknown code language %r, leaving it unhighlighted", lang)
            else:
                return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        css = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{css}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Turns a markdown body into ``(html, headings)``.

    Each call builds its own mistune parser, so heading ids start fresh on
    every page.
    """

    def __init__(self, highlight_code: bool = True):
        self.highlight_code = highlight_code

    def render(self, content: str) -> tuple[str, list[Heading]]:
        renderer = _HighlightRenderer(self.highlight_code)
        to_html = mistune.create_markdown(renderer=renderer, plugins=MARKDOWN_PLUGINS)
        return to_html(content), renderer.headings
