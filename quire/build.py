"""One full build of a Quire project.

``build_site`` reads ``quire.yaml``, loads and renders every page under
``content/``, writes each one to ``<output>/<url>/index.html``, copies
``static/`` and finishes with the sitemap and RSS feed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateError, TemplateSyntaxError, UndefinedError

from .assets import AssetPipeline
from .content import ContentProcessor, DefaultPageBuilder, Page
from .errors import BuildError, ConfigError
from .feeds import create_default_feed_registry
from .html_utils import absolutize_html_urls
from .renderers import MarkdownRenderer
from .templates import TemplateEngine
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "quire.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "output_dir": "public",
    "port": 4000,
    "base_url": "",
    "title": "",
    "description": "",
    "generate_rss": True,
    "generate_sitemap": True,
    "highlight_code": True,
    "highlight_style": "default",
}


@dataclass
class BuildResult:
    """What a build produced.

    Attributes:
        pages: Every page written, sections included.
        output_dir: Where the site was written.
        config: Effective site configuration.
        feeds: Feed files that were written.
    """

    pages: list[Page]
    output_dir: Path
    config: dict[str, Any]
    feeds: list[str]


def load_config(project_root: Path) -> dict[str, Any]:
    """``quire.yaml`` merged over ``DEFAULT_CONFIG``; defaults alone when the file is absent.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    config_path = project_root / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    if not config_path.exists():
        return config
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(config_path, f"invalid YAML: {exc}") from exc
    if loaded is None:
        return config
    if not isinstance(loaded, dict):
        raise ConfigError(config_path, "configuration must be a mapping")
    config.update(loaded)
    return config


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    base_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the site under ``project_root``.

    Args:
        project_root: Directory holding quire.yaml and content/.
        include_drafts: Render posts marked ``draft``.
        base_url: Replaces the configured ``base_url`` for this build.
        clean_output: Empty the output directory first.
        output_dir_override: Write here instead of the configured ``output_dir``.

    Raises:
        ConfigError: If quire.yaml is invalid.
        BuildError: If a content file or template fails.
    """
    config = load_config(project_root)
    if base_url is not None:
        config["base_url"] = base_url
    content_dir = project_root / "content"
    if not content_dir.exists():
        raise FileNotFoundError(f"Expected content directory at {content_dir}")

    output_dir = output_dir_override or (project_root / config["output_dir"])
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    builder = DefaultPageBuilder(
        content_dir, renderer=MarkdownRenderer(bool(config.get("highlight_code", True)))
    )
    pages = ContentProcessor(content_dir, page_builder=builder).load(
        include_drafts=include_drafts
    )
    site = next((p for p in pages if p.is_root), None)
    if site is not None and not config.get("title"):
        config["title"] = site.title

    resolved_base = str(config.get("base_url") or "")
    engine = TemplateEngine(project_root / "templates", config, base_url=resolved_base)
    engine.update_collections(pages)
    for page in pages:
        try:
            rendered = engine.render_page(page)
        except TemplateSyntaxError as exc:
            raise BuildError(
                page.path,
                f"Template syntax error in {exc.name or page.template} on line {exc.lineno}: {exc.message}",
                exc,
            ) from exc
        except TemplateError as exc:
            raise BuildError(page.path, _format_error_message(exc), exc) from exc
        if resolved_base:
            rendered = absolutize_html_urls(rendered, resolved_base)
        _write_page(output_dir, page, rendered)
        logger.debug("Wrote %s -> %s", page.path.name, page.url)

    AssetPipeline(project_root, output_dir).run()
    feeds = create_default_feed_registry(config).generate_all(
        output_dir, [p for p in pages if not p.draft], config
    )
    logger.info("Built %d pages into %s", len(pages), output_dir)
    return BuildResult(pages=pages, output_dir=output_dir, config=config, feeds=feeds)


def _format_error_message(exc: TemplateError) -> str:
    if isinstance(exc, UndefinedError):
        return f"Undefined variable: {exc}"
    return f"{type(exc).__name__}: {exc}"


def _write_page(output_dir: Path, page: Page, rendered: str) -> None:
    """Write a rendered page to ``<output_dir>/<url>/index.html``."""
    target_dir = output_dir / page.url.strip("/")
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / "index.html").write_text(rendered, encoding="utf-8")
