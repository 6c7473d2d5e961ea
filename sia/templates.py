"""Template rendering engine for Sia.

This module uses Jinja2 to render content items into their layouts and
listing pages from the theme. Templates are looked up in the user's layouts
and includes directories first, then in the theme's ``layouts/``,
``includes/`` and ``pages/`` directories, so a user file overrides the theme
file of the same name.

Key class:
- TemplateEngine: Jinja2 environment with Sia's filters and globals.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape
from markupsafe import Markup

from .collections import field_value, sort_items
from .config import SiteConfig
from .content import ContentItem
from .html_utils import prefix_base_path
from .themes import ThemeResolution, resolve_theme
from .utils import parse_date, slugify, truncate_words

__all__ = ["TemplateEngine", "TemplateNotFound"]

TEMPLATE_SUFFIXES = (".html", ".jinja", ".html.jinja", ".xml")
FALLBACK_LAYOUT = "page"
WORDS_PER_MINUTE = 200

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")


def _as_datetime(value: Any) -> datetime | None:
    if value == "now":
        return datetime.now()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        return None


def _hour12(value: datetime) -> str:
    return f"{value.hour % 12 or 12}:{value:%M} {value:%p}"


def date_filter(value: Any, fmt: str = "long") -> str:
    """Format a date in one of the named formats used by themes.

    Formats: short, long, iso, rss, year, month, time, full, full_time.
    Unknown formats fall back to "long"; unparseable values give "".

    Examples:
        >>> date_filter(datetime(2024, 3, 5), "short")
        'Mar 5, 2024'
    """
    when = _as_datetime(value)
    if when is None:
        return ""
    if fmt == "iso":
        return when.strftime("%Y-%m-%d")
    if fmt == "rss":
        if when.tzinfo is not None:
            when = when.astimezone(timezone.utc)
        return when.strftime("%a, %d %b %Y %H:%M:%S +0000")
    if fmt == "short":
        return f"{when:%b} {when.day}, {when.year}"
    if fmt == "year":
        return str(when.year)
    if fmt == "month":
        return f"{when:%B} {when.year}"
    if fmt == "time":
        return _hour12(when)
    if fmt == "full":
        return f"{when:%A}, {when:%B} {when.day}, {when.year}"
    if fmt == "full_time":
        return f"{when:%a}, {when:%b} {when.day}, {when.year}, {_hour12(when)}"
    return f"{when:%B} {when.day}, {when.year}"


def strip_tags(html: Any) -> str:
    return _TAG_RE.sub("", str(html or ""))


def excerpt_filter(content: Any, length: int = 200) -> str:
    """Plain-text excerpt of HTML content, cut at a word boundary."""
    text = strip_tags(content).strip()
    if not text:
        return ""
    return truncate_words(text, length)


def limit_filter(items: Any, count: int) -> Any:
    if not isinstance(items, Sequence) or isinstance(items, str):
        return items
    return list(items)[:count]


def skip_filter(items: Any, count: int) -> Any:
    if not isinstance(items, Sequence) or isinstance(items, str):
        return items
    return list(items)[count:]


def word_count(content: Any) -> int:
    return len(strip_tags(content).split())


def reading_time(content: Any, words_per_minute: int = WORDS_PER_MINUTE) -> str:
    """Estimated reading time, e.g. "3 min read"."""
    minutes = math.ceil(word_count(content) / words_per_minute)
    return f"{minutes} min read"


def group_by(items: Iterable[Any], key: str) -> dict[Any, list[Any]]:
    groups: dict[Any, list[Any]] = {}
    for item in items or ():
        groups.setdefault(field_value(item, key), []).append(item)
    return groups


def sort_by_filter(items: Iterable[Any], key: str, order: str = "asc") -> list[Any]:
    return sort_items(items or (), key, order)


def where_filter(items: Iterable[Any], key: str, value: Any) -> list[Any]:
    return [item for item in items or () if field_value(item, key) == value]


def with_tag(items: Iterable[Any], tag: str) -> list[Any]:
    """Items carrying ``tag``, compared case-insensitively."""
    wanted = str(tag).lower()
    return [
        item
        for item in items or ()
        if any(str(t).lower() == wanted for t in (field_value(item, "tags") or ()))
    ]


def json_filter(value: Any, indent: int = 2) -> Markup:
    return Markup(json.dumps(value, indent=indent, default=str))


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Resolved site configuration.
        theme: Theme the templates come from.
        env: Jinja2 environment.
    """

    def __init__(self, config: SiteConfig, theme: ThemeResolution | None = None):
        self.config = config
        self.theme = theme or resolve_theme(config.theme.name)
        self.env = Environment(
            loader=FileSystemLoader([str(path) for path in self.search_paths()]),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            enable_async=False,
        )
        self._install_filters()
        self._install_globals()

    def search_paths(self) -> list[Path]:
        """Template directories in lookup order; missing user dirs are skipped."""
        paths = [
            path
            for path in (self.config.layouts_dir, self.config.includes_dir)
            if path.is_dir()
        ]
        paths.extend([self.theme.layouts_dir, self.theme.includes_dir, self.theme.pages_dir])
        return paths

    def _install_filters(self) -> None:
        base_path = self.config.site.base_path
        self.env.filters.update(
            {
                "date": date_filter,
                "slug": slugify,
                "excerpt": excerpt_filter,
                "limit": limit_filter,
                "skip": skip_filter,
                "word_count": word_count,
                "reading_time": reading_time,
                "group_by": group_by,
                "sort_by": sort_by_filter,
                "where": where_filter,
                "with_tag": with_tag,
                "json": json_filter,
                "url": lambda path: prefix_base_path(path, base_path),
            }
        )

    def _install_globals(self) -> None:
        self.env.globals["pygments_css"] = self._pygments_css

    @staticmethod
    def _pygments_css() -> Markup:
        """Return Pygments CSS styles for the .highlight class."""
        from pygments.formatters import HtmlFormatter

        return Markup(HtmlFormatter().get_style_defs(".highlight"))

    def get_template(self, name: str) -> Template:
        """Find a template by name, with or without its extension.

        Raises:
            TemplateNotFound: If no candidate exists.
        """
        candidates = [name] if Path(name).suffix else []
        candidates.extend(f"{name}{suffix}" for suffix in TEMPLATE_SUFFIXES)
        return self.env.select_template(candidates)

    def has_template(self, name: str) -> bool:
        try:
            self.get_template(name)
        except TemplateNotFound:
            return False
        return True

    def render(self, name: str, context: dict[str, Any]) -> str:
        """Render a named template, e.g. "blog" or "tags.html"."""
        return self.get_template(name).render(**context)

    def render_item(self, item: ContentItem, context: dict[str, Any]) -> str:
        """Render a content item inside its layout.

        The item is exposed as ``page`` and its HTML as ``content``. A missing
        layout falls back to the "page" layout.
        """
        layout = item.layout or FALLBACK_LAYOUT
        try:
            template = self.get_template(layout)
        except TemplateNotFound:
            if layout == FALLBACK_LAYOUT:
                raise
            logger.warning(
                'Layout "%s" not found for %s, using "%s"', layout, item.path, FALLBACK_LAYOUT
            )
            template = self.get_template(FALLBACK_LAYOUT)
        return template.render({**context, "page": item, "content": Markup(item.content)})

    def render_string(self, source: str, context: dict[str, Any]) -> str:
        """Render a template string.

        Args:
            source: Template source.
            context: Variables to make available in the template.

        Returns:
            Rendered string.
        """
        return self.env.from_string(source).render(**context)
