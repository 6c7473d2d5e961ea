"""Protocol definitions for Sia.

The content pipeline depends on these interfaces rather than on concrete
classes, so tests and plugins can swap in their own collaborators.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import ContentItem


@runtime_checkable
class ContentRenderer(Protocol):
    """Turns a markdown body into HTML."""

    @abstractmethod
    def render(self, markdown: str) -> str:
        """Render a markdown body.

        Args:
            markdown: Body without front matter.

        Returns:
            HTML. The same body must always give the same HTML.
        """
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Derives metadata fields (title, slug, date, ...) for one file."""

    @abstractmethod
    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        """Extract metadata.

        Args:
            frontmatter: Parsed front matter mapping.
            body: Markdown body.
            path: Path to the source file.

        Returns:
            Dictionary of extracted fields.
        """
        ...


@runtime_checkable
class ContentSource(Protocol):
    """Lists the content files of a collection directory."""

    @abstractmethod
    def iter_files(self, directory: Path) -> list[Path]:
        """Files below ``directory``, in a stable order."""
        ...


@runtime_checkable
class TemplateRenderer(Protocol):
    """Renders named templates and content items."""

    @abstractmethod
    def render(self, name: str, context: dict[str, Any]) -> str:
        ...

    @abstractmethod
    def render_item(self, item: ContentItem, context: dict[str, Any]) -> str:
        ...

    @abstractmethod
    def has_template(self, name: str) -> bool:
        ...
