"""Utility functions for Sia.

This module contains the small string, date and path helpers shared by the
content loader, the collection builder and the templates.

Key functions:
    slugify: Convert arbitrary text to a URL slug.
    slug_from_filename: Derive a slug from a content file name.
    extract_date_from_name: Extract date from a YYYY-MM-DD filename prefix.
    parse_date: Coerce a front matter date value to a datetime.
    make_excerpt: Derive a plain-text excerpt from a markdown body.
    truncate_words: Cut text at a word boundary and append an ellipsis.
    normalize_tags: Normalize front matter tags into a list of strings.
    titleize: Convert filenames to human-readable titles.
    is_markdown: Check if a path is a Markdown file.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:-(?P<rest>.+))?$")
HEADING_LINE_RE = re.compile(r"^#{1,6}\s+.*(?:\n|$)")
PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n")

MARKDOWN_SUFFIXES = (".md", ".markdown")
EXCERPT_LIMIT = 200
ELLIPSIS = "..."


def slugify(value: str) -> str:
    """Convert text to a URL-friendly slug.

    Lowercases, drops anything that is not an ASCII word character,
    whitespace or hyphen, collapses whitespace/underscore/hyphen runs into
    one hyphen and trims hyphens from both ends. Applying it twice gives the
    same result.

    Args:
        value: Text to slugify.

    Returns:
        URL-friendly slug, possibly empty.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'

        >>> slugify("  snake_case -- Title ")
        'snake-case-title'
    """
    slug = str(value).lower()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"[\s_-]+", "-", slug, flags=re.ASCII)
    return slug.strip("-")


def strip_date_prefix(stem: str) -> str:
    """Remove a leading YYYY-MM-DD- prefix from a filename stem."""
    match = DATE_PREFIX_RE.match(stem)
    if match and match.group("rest"):
        return match.group("rest")
    return stem


def slug_from_filename(path: Path | str) -> str:
    """Derive a slug from a content file name.

    Args:
        path: Path or filename of the content file.

    Returns:
        Slug with any date prefix removed, "index" when nothing usable remains.

    Examples:
        >>> slug_from_filename("2024-03-05-my-post.md")
        'my-post'
    """
    stem = Path(path).stem
    return slugify(strip_date_prefix(stem)) or "index"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        datetime object if a valid date prefix is found, None otherwise.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime.datetime(2024, 1, 15, 0, 0)

        >>> extract_date_from_name("hello-world") is None
        True
    """
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_date(value: Any) -> datetime:
    """Coerce a front matter date value to a naive datetime.

    PyYAML already turns unquoted dates into ``date``/``datetime`` objects;
    quoted values arrive as strings. Timezone-aware values are normalized to
    naive UTC so that every item of a build can be compared.

    Args:
        value: A datetime, date or ISO 8601 string.

    Returns:
        Naive datetime.

    Raises:
        ValueError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported date value: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def truncate_words(text: str, limit: int = EXCERPT_LIMIT) -> str:
    """Truncate text to at most ``limit`` characters at a word boundary.

    When truncation happens the result ends with an ellipsis and the ellipsis
    is counted in the limit. A single word longer than the limit is cut hard.

    Args:
        text: Whitespace-collapsed text.
        limit: Maximum length of the result.

    Returns:
        The original text or its truncated form.
    """
    if len(text) <= limit:
        return text
    budget = limit - len(ELLIPSIS)
    # One character of lookahead so a space right at the budget still counts
    window = text[: budget + 1]
    boundary = window.rfind(" ")
    cut = text[:boundary] if boundary > 0 else text[:budget]
    return cut.rstrip() + ELLIPSIS


def make_excerpt(body: str, limit: int = EXCERPT_LIMIT) -> str:
    """Derive an excerpt from the first paragraph of a markdown body.

    The first paragraph is the text before the first blank line. A leading
    heading line is dropped; when a block holds nothing but a heading the
    next block is used instead.

    Args:
        body: Markdown body without front matter.
        limit: Maximum length of the excerpt.

    Returns:
        Plain-text excerpt, empty when the body has no text.
    """
    for block in PARAGRAPH_SPLIT_RE.split(body.strip()):
        text = HEADING_LINE_RE.sub("", block.strip(), count=1).strip()
        if text:
            return truncate_words(" ".join(text.split()), limit)
    return ""


def normalize_tags(value: Any) -> list[str]:
    """Normalize a front matter ``tags`` value.

    Args:
        value: None, a comma-separated string, a list, or a scalar.

    Returns:
        List of tag strings in their original order.

    Examples:
        >>> normalize_tags("python, web ,")
        ['python', 'web']
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(tag) for tag in value if tag is not None]
    return [str(value)]


def parse_bool(value: Any) -> bool:
    """Interpret a front matter flag such as ``draft``."""
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "on"}
    return bool(value)


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Args:
        filename: Filename with or without extension.

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (.md or .markdown)."""
    return path.suffix.lower() in MARKDOWN_SUFFIXES


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)
