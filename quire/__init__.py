"""Quire static blog generator.

Quire turns a small tree of markdown files with TOML or YAML front matter
into a static blog. The root ``content/_index.md`` is the site record: the
about page with the author's interests, education and profile links. Every
other markdown file is a post.

The main entry point is the CLI module, which provides commands for
scaffolding a blog, validating and converting front matter, building the
site and running the development server.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
