"""HTML string helpers: escaping, and turning site-relative links into absolute ones."""

from __future__ import annotations

import html
import re

# href/src/action values that start with exactly one slash
_ROOT_RELATIVE_ATTR = re.compile(r"""\b(href|src|action)=(["'])(/(?!/)[^"']*)\2""")


def escape_html(text: str) -> str:
    """Escape ``&``, ``<``, ``>`` and quotes for HTML text and attribute values.

    Examples:
        >>> escape_html('<modelDescription fmiVersion="3.0">')
        '&lt;modelDescription fmiVersion=&quot;3.0&quot;&gt;'
    """
    return html.escape(text, quote=True)


def join_root_url(root_url: str, path: str) -> str:
    """Join a site root URL and a path with exactly one slash between them.

    Examples:
        >>> join_root_url("https://example.com/", "about")
        'https://example.com/about'
    """
    if not root_url:
        return path
    return f"{root_url.rstrip('/')}/{path.lstrip('/')}"


def absolutize_html_urls(markup: str, root_url: str) -> str:
    """Prefix root-relative ``href``, ``src`` and ``action`` values with ``root_url``.

    Only values starting with a single ``/`` change. External and
    protocol-relative URLs, anchors, ``mailto:`` links and document-relative
    paths are left alone.
    """
    if not root_url:
        return markup
    return _ROOT_RELATIVE_ATTR.sub(
        lambda m: f"{m.group(1)}={m.group(2)}{join_root_url(root_url, m.group(3))}{m.group(2)}",
        markup,
    )
