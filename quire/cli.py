"""The ``quire`` command.

Subcommands run against the project in the current directory, except
``new``, which creates one:

- new: Copy the starter blog into an empty directory.
- build: Render the site into the output directory.
- serve: Preview the site with rebuild and browser reload on change.
- check: Validate front matter of every content file.
- convert: Rewrite front matter as TOML or YAML.
- post: Create a new post interactively.
"""

from __future__ import annotations

import logging
import shutil
from datetime import date
from pathlib import Path

import click
import questionary
import tomli_w

from . import __version__
from .errors import BuildError, ConfigError, FrontmatterError, QuireError
from .extractors import parse_frontmatter
from .utils import is_markdown, is_section_index, slugify

logger = logging.getLogger(__name__)

# starter blog copied by `quire new`
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"


@click.group()
@click.version_option(version=__version__, prog_name="quire")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Quire static blog generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Quire blog."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"{target} is non-empty; choose a new or empty directory"
        )
    _scaffold(target)
    click.echo(f"New Quire blog created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option("--base-url", required=False, help="Base URL (overrides quire.yaml)")
def build(drafts: bool, base_url: str | None):
    """Render the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(project_root, include_drafts=drafts, base_url=base_url)
    except (BuildError, ConfigError) as exc:
        _report_failure("Build failed:", project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides quire.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides quire.yaml ws_port)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Preview the site locally, rebuilding on change."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start(include_drafts=drafts)
    except (BuildError, ConfigError) as exc:
        _report_failure("Serve failed:", project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None


@cli.command()
def check():
    """Validate front matter of every content file."""
    project_root = Path.cwd()
    from .checks import check_site

    issues = check_site(project_root)
    for issue in issues:
        color = "red" if issue.is_error else "yellow"
        click.echo(
            click.style(f"{issue.severity}: ", fg=color, bold=True)
            + f"{_relative(project_root, issue.path)}: {issue.message}",
            err=True,
        )
    errors = sum(1 for issue in issues if issue.is_error)
    if errors:
        click.echo(click.style(f"{errors} error(s) found", fg="red"), err=True)
        raise SystemExit(1)
    click.echo("All content files are valid")


@cli.command()
@click.option(
    "--to",
    "target",
    type=click.Choice(["toml", "yaml"]),
    required=True,
    help="Front matter format to write",
)
def convert(target: str):
    """Rewrite front matter of every content file as TOML or YAML."""
    project_root = Path.cwd()
    from .convert import convert_tree

    content_dir = project_root / "content"
    if not content_dir.exists():
        raise click.ClickException("No content/ directory found. Run this from a Quire project root.")
    try:
        converted = convert_tree(content_dir, target)
    except FrontmatterError as exc:
        _report_failure("Convert failed:", project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None
    for path in converted:
        click.echo(f"Converted {_relative(project_root, path)}")
    click.echo(f"{len(converted)} file(s) converted to {target}")


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    content_dir = project_root / "content"

    if not content_dir.exists():
        raise click.ClickException(
            "No content/ directory found. Run this command from a Quire project root."
        )

    folder = questionary.select(
        "Select section:",
        choices=_get_sections(content_dir),
        style=_questionary_style(),
    ).ask()
    if folder is None:
        raise click.Abort()

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    draft = questionary.confirm(
        "Mark as draft?",
        default=False,
        style=_questionary_style(),
    ).ask()
    if draft is None:
        raise click.Abort()

    target_dir = content_dir if folder == ". (root)" else content_dir / folder
    target_path = _create_post(target_dir, title, date.today(), draft)
    click.echo(f"Created {_relative(project_root, target_path)}")


def _create_post(target_dir: Path, title: str, day: date, draft: bool = False) -> Path:
    """Write a new dated post with TOML front matter.

    Raises:
        click.ClickException: If a post with the same slug already exists.
    """
    slug = slugify(title)
    existing = _get_existing_slugs(target_dir)
    if slug in existing:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {existing[slug].name}"
        )
    frontmatter = {"title": title, "date": day}
    if draft:
        frontmatter["draft"] = True
    target_dir.mkdir(parents=True, exist_ok=True)
    target_path = target_dir / f"{day.isoformat()}-{slug}.md"
    target_path.write_text(
        f"+++\n{tomli_w.dumps(frontmatter)}+++\n\n", encoding="utf-8"
    )
    return target_path


def _get_sections(content_dir: Path) -> list[str]:
    """List section folders (those holding an _index.md), root first."""
    sections = sorted(
        p.parent.relative_to(content_dir).as_posix()
        for p in content_dir.rglob("_index.md")
        if p.parent != content_dir
    )
    return [". (root)", *sections]


def _get_existing_slugs(folder: Path) -> dict[str, Path]:
    """Map slug to file for every post directly in a folder.

    A front matter ``slug`` wins over the filename, as it does for URLs.
    """
    slugs: dict[str, Path] = {}
    if not folder.exists():
        return slugs
    for f in sorted(folder.iterdir()):
        if not f.is_file() or not is_markdown(f) or is_section_index(f):
            continue
        try:
            frontmatter, _ = parse_frontmatter(f.read_text(encoding="utf-8"))
        except (FrontmatterError, UnicodeDecodeError) as exc:
            logger.debug("Using the filename slug for %s: %s", f.name, exc)
            frontmatter = {}
        slugs[slugify(str(frontmatter.get("slug") or f.stem))] = f
    return slugs


def _questionary_style():
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def _relative(project_root: Path, path: Path | None) -> str:
    if path is None:
        return "<unknown>"
    try:
        return str(path.relative_to(project_root))
    except ValueError:
        return str(path)


def _report_failure(headline: str, project_root: Path, path: Path | None, message: str) -> None:
    click.echo(click.style(headline, fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {_relative(project_root, path)}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {message}", fg="white"), err=True)


def main():
    try:
        cli()
    except QuireError as exc:
        click.echo(click.style(f"Error: {exc}", fg="red"), err=True)
        raise SystemExit(1) from None


def _scaffold(root: Path) -> None:
    for source in _SCAFFOLD_DIR.rglob("*"):
        if source.is_file():
            dest = root / source.relative_to(_SCAFFOLD_DIR)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest)
