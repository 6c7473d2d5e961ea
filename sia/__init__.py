"""Sia static site generator.

This package turns a tree of Markdown files with YAML front matter into a static
site. Content is loaded into typed items, grouped into collections, tagged and
paginated, then rendered through Jinja2 templates into HTML, RSS and a sitemap.
A development server rebuilds on change and live-reloads the browser.

The build core (content, collections, tags, pagination, site_data) only reads
the filesystem; writing output is left to the build module.
"""

__all__ = ["__version__"]
__version__ = "2.1.0"
