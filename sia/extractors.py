"""Front matter parsing and metadata extractors for Sia.

Each extractor derives one piece of item metadata from the parsed front matter,
the markdown body and the source path. ``CompositeMetadataExtractor`` runs them
in order and merges the results.

Key classes:
- ParseError: Raised for malformed front matter or unreadable files.
- TitleExtractor: Title from front matter, first heading, or filename.
- SlugExtractor: Slug from front matter or filename.
- DateExtractor: Date from front matter, filename prefix, or build time.
- ExcerptExtractor: Explicit excerpt or first paragraph.
- TagExtractor: Normalized tag list.
- DraftExtractor: Draft flag.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .utils import (
    extract_date_from_name,
    make_excerpt,
    normalize_tags,
    parse_bool,
    parse_date,
    slug_from_filename,
    slugify,
    titleize,
)

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)
FRONTMATTER_OPEN_RE = re.compile(r"\A---[ \t]*\r?\n")


class ParseError(Exception):
    """Error raised when a content file cannot be parsed.

    Attributes:
        message: Human-readable reason.
        source_path: Path of the offending file, when known.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.message = message
        self.source_path = source_path
        super().__init__(f"{source_path}: {message}" if source_path else message)


def parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a content file into YAML front matter and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (front matter mapping, body). Files without a front matter
        block yield an empty mapping and the full text as body.

    Raises:
        ParseError: If the block is unterminated, is not valid YAML, or is not
            a mapping.
    """
    text = text.lstrip("\ufeff")
    match = FRONTMATTER_RE.match(text)
    if not match:
        if FRONTMATTER_OPEN_RE.match(text):
            raise ParseError("front matter block is not terminated by '---'")
        return {}, text
    try:
        data = yaml.safe_load(match.group("yaml"))
    except yaml.YAMLError as exc:
        raise ParseError(f"invalid front matter: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError(
            f"front matter must be a mapping, got {type(data).__name__}"
        )
    return {str(key): value for key, value in data.items()}, text[match.end() :]


class TitleExtractor:
    """Extracts the title.

    Uses front matter ``title``, then the first level-1 heading of the body,
    then the titleized filename.
    """

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        if frontmatter.get("title"):
            return {"title": str(frontmatter["title"])}
        for line in body.splitlines():
            stripped = line.strip()
            if stripped.startswith("# "):
                return {"title": stripped[2:].strip()}
        return {"title": titleize(path.name)}


class SlugExtractor:
    """Extracts the slug from front matter or the file name."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        explicit = frontmatter.get("slug")
        if explicit:
            slug = slugify(str(explicit))
            if slug:
                return {"slug": slug}
        return {"slug": slug_from_filename(path)}


class DateExtractor:
    """Extracts the date.

    Looks for front matter ``date``, then a YYYY-MM-DD filename prefix,
    falling back to the time of the build.
    """

    def __init__(self, now: datetime | None = None):
        self._now = now

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        value = frontmatter.get("date")
        if value:
            try:
                return {"date": parse_date(value)}
            except ValueError as exc:
                raise ParseError(f"invalid date {value!r}", path) from exc
        date = extract_date_from_name(path.stem)
        if date is None:
            date = self._now or datetime.now()
        return {"date": date}


class ExcerptExtractor:
    """Extracts the excerpt: explicit front matter value or first paragraph."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        explicit = frontmatter.get("excerpt")
        if explicit:
            return {"excerpt": str(explicit).strip()}
        return {"excerpt": make_excerpt(body)}


class TagExtractor:
    """Normalizes front matter tags into a list."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        return {"tags": normalize_tags(frontmatter.get("tags"))}


class DraftExtractor:
    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        return {"draft": parse_bool(frontmatter.get("draft", False))}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs every registered extractor and merges their results; later
    extractors can override earlier ones.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                TitleExtractor(),
                SlugExtractor(),
                DateExtractor(),
                ExcerptExtractor(),
                TagExtractor(),
                DraftExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        """Add an extractor to the composite."""
        self._extractors.append(extractor)

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        """Extract all metadata for one file.

        Args:
            frontmatter: Parsed front matter.
            body: Markdown body.
            path: Path to the source file.

        Returns:
            Dictionary with all extracted metadata.
        """
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(frontmatter, body, path))
        return result
