"""Content loading for Sia.

This module turns one markdown file into a ``ContentItem``: it parses the
front matter, renders the body to HTML and derives slug, date, excerpt, tags
and the draft flag. Location fields (permalink, url, output path) are filled
in later by the collection builder.

Key classes:
- ContentItem: Dataclass representing one parsed content file.
- ContentLoader: Builds a ContentItem from a file path.
- FileContentLoader: Discovers markdown files under a directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .extractors import CompositeMetadataExtractor, ParseError, parse_frontmatter
from .protocols import ContentRenderer, MetadataExtractor
from .renderers import default_markdown_renderer
from .utils import is_markdown


@dataclass
class ContentItem:
    """One parsed content file.

    Attributes:
        title: Human-readable title.
        slug: URL-friendly slug.
        date: Publication date.
        raw_body: Markdown source without front matter.
        content: Rendered HTML.
        excerpt: Plain-text excerpt, at most 200 characters when derived.
        tags: Tags in front matter order.
        draft: Whether the item is a draft.
        path: Path to the source file.
        collection: Name of the owning collection.
        layout: Layout template name.
        permalink: Resolved permalink, e.g. "/blog/my-post/".
        url: Base path + permalink.
        output_path: Output file path.
        frontmatter: All front matter fields, for pass-through access.
    """

    title: str
    slug: str
    date: datetime
    raw_body: str
    content: str
    excerpt: str
    tags: list[str]
    draft: bool
    path: Path
    collection: str = ""
    layout: str = ""
    permalink: str = ""
    url: str = ""
    output_path: Path | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict)

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes that are not fields: expose front matter
        if name.startswith("_"):
            raise AttributeError(name)
        frontmatter = self.__dict__.get("frontmatter") or {}
        if name in frontmatter:
            return frontmatter[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def get(self, name: str, default: Any = None) -> Any:
        """Return a field or front matter value by name."""
        try:
            return getattr(self, name)
        except AttributeError:
            return default


class FileContentLoader:
    """Discovers markdown files under a directory.

    Files are returned in sorted path order so that every build sees the
    same sequence. Dot-files (editor swap files and the like) are skipped.
    """

    def iter_files(self, directory: Path) -> list[Path]:
        """List markdown files below ``directory``.

        Args:
            directory: Collection directory.

        Returns:
            Sorted list of paths; empty when the directory does not exist.
        """
        if not directory.is_dir():
            return []
        files: list[Path] = []
        for path in sorted(directory.rglob("*")):
            if path.is_dir() or not is_markdown(path):
                continue
            rel = path.relative_to(directory)
            if any(part.startswith(".") for part in rel.parts):
                continue
            files.append(path)
        return files


class ContentLoader:
    """Builds ContentItem objects from markdown files.

    Attributes:
        markdown_renderer: Collaborator turning markdown into HTML.
        metadata_extractor: Composite metadata extractor.
    """

    def __init__(
        self,
        markdown_renderer: ContentRenderer | None = None,
        metadata_extractor: MetadataExtractor | None = None,
    ):
        self.markdown_renderer = markdown_renderer or default_markdown_renderer
        self.metadata_extractor = metadata_extractor or CompositeMetadataExtractor()

    def load(self, path: Path) -> ContentItem:
        """Load one content file.

        Args:
            path: Path to the markdown file.

        Returns:
            ContentItem without location fields.

        Raises:
            ParseError: If the file cannot be read or its front matter is
                malformed.
        """
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError(f"could not read file: {exc}", path) from exc
        try:
            frontmatter, body = parse_frontmatter(raw)
        except ParseError as exc:
            raise ParseError(exc.message, path) from exc

        metadata = self.metadata_extractor.extract(frontmatter, body, path)
        return ContentItem(
            title=metadata["title"],
            slug=metadata["slug"],
            date=metadata["date"],
            raw_body=body,
            content=self.markdown_renderer.render(body),
            excerpt=metadata["excerpt"],
            tags=metadata["tags"],
            draft=metadata["draft"],
            path=path,
            layout=str(frontmatter.get("layout") or ""),
            frontmatter=frontmatter,
        )
