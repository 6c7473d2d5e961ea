"""Collection building for Sia.

A collection is a named directory of content files sharing a default layout,
a permalink pattern and a sort rule. ``CollectionBuilder`` loads every file of
a collection, resolves its location, filters drafts and sorts the result into
an ``ItemCollection``.

Key classes:
- ItemCollection: Read-only sequence of ContentItems with template helpers.
- CollectionBuilder: Builds one collection from configuration.
- ConsistencyWarning: Record of a non-fatal oddity found while building.
"""

from __future__ import annotations

import functools
import locale
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .config import CollectionConfig, ConfigurationError, SiteConfig
from .content import ContentItem, ContentLoader, FileContentLoader
from .extractors import ParseError
from .protocols import ContentSource

logger = logging.getLogger(__name__)

DEFAULT_PERMALINK = "/:slug/"
INDEX_FILENAME = "index.html"


class ConsistencyWarning(UserWarning):
    """A non-fatal oddity: duplicate slugs, tag case clashes, and the like.

    Instances are logged and collected on the builder; they are never raised.

    Attributes:
        message: Human-readable description.
        source_path: File the warning is about, when there is one.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.message = message
        self.source_path = source_path
        super().__init__(message)


def record_warning(
    warnings: list[ConsistencyWarning] | None,
    message: str,
    source_path: Path | None = None,
) -> ConsistencyWarning:
    """Log a consistency warning and append it to ``warnings`` if given."""
    warning = ConsistencyWarning(message, source_path)
    logger.warning(message)
    if warnings is not None:
        warnings.append(warning)
    return warning


class ItemCollection(Sequence[ContentItem]):
    """Lightweight helper for working with lists of items in templates and code."""

    def __init__(self, items: Iterable[ContentItem] = ()):
        self._items = list(items)

    def __iter__(self) -> Iterator[ContentItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ItemCollection(self._items[index])
        return self._items[index]

    def with_tag(self, tag: str) -> ItemCollection:
        wanted = str(tag).lower()
        return ItemCollection(
            item for item in self._items if any(t.lower() == wanted for t in item.tags)
        )

    def drafts(self) -> ItemCollection:
        return ItemCollection(item for item in self._items if item.draft)

    def published(self) -> ItemCollection:
        return ItemCollection(item for item in self._items if not item.draft)

    def latest(self, count: int = 5) -> ItemCollection:
        return ItemCollection(sort_items(self._items, "date", "desc")[:count])

    def sorted_by(self, field: str = "date", order: str = "desc") -> ItemCollection:
        return ItemCollection(sort_items(self._items, field, order))

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"ItemCollection({len(self._items)} items)"


def field_value(item: Any, name: str) -> Any:
    """Read a field from a ContentItem, a mapping or any object."""
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _compare_values(a: Any, b: Any) -> int:
    """Compare two sort values; unrelated or missing types compare equal."""
    if isinstance(a, date) and not isinstance(a, datetime):
        a = datetime(a.year, a.month, a.day)
    if isinstance(b, date) and not isinstance(b, datetime):
        b = datetime(b.year, b.month, b.day)
    if isinstance(a, datetime) and isinstance(b, datetime):
        return (a > b) - (a < b)
    if isinstance(a, str) and isinstance(b, str):
        key_a = (locale.strxfrm(a.casefold()), locale.strxfrm(a))
        key_b = (locale.strxfrm(b.casefold()), locale.strxfrm(b))
        return (key_a > key_b) - (key_a < key_b)
    numeric = (int, float)
    if (
        isinstance(a, numeric)
        and isinstance(b, numeric)
        and not isinstance(a, bool)
        and not isinstance(b, bool)
    ):
        return (a > b) - (a < b)
    return 0


def sort_items(
    items: Iterable[ContentItem], sort_by: str = "date", sort_order: str = "desc"
) -> list[ContentItem]:
    """Stable sort of items by a field.

    Args:
        items: Items to sort.
        sort_by: Field or front matter key to sort by.
        sort_order: "asc" for ascending; anything else sorts descending.

    Returns:
        New sorted list. Items whose values cannot be compared keep their
        relative order.
    """
    sign = 1 if str(sort_order).lower() == "asc" else -1

    def compare(a: ContentItem, b: ContentItem) -> int:
        return sign * _compare_values(field_value(a, sort_by), field_value(b, sort_by))

    return sorted(items, key=functools.cmp_to_key(compare))


def resolve_permalink(pattern: str, slug: str, when: datetime) -> str:
    """Resolve a permalink pattern for one item.

    Args:
        pattern: Pattern with :slug, :year, :month and :day placeholders.
        slug: Item slug.
        when: Item date.

    Returns:
        Permalink that always starts with "/".

    Examples:
        >>> resolve_permalink("/:year/:month/:slug/", "hi", datetime(2024, 3, 5))
        '/2024/03/hi/'
    """
    permalink = (
        pattern.replace(":slug", slug)
        .replace(":year", f"{when.year:04d}")
        .replace(":month", f"{when.month:02d}")
        .replace(":day", f"{when.day:02d}")
    )
    if not permalink.startswith("/"):
        permalink = f"/{permalink}"
    return permalink


def output_path_for(output_dir: Path, permalink: str) -> Path:
    """Map a permalink to a file below ``output_dir``.

    Directory-style permalinks ("/blog/post/") get an index.html; a permalink
    whose last segment has an extension ("/feed.xml") is used as a file name.
    """
    parts = [part for part in permalink.split("/") if part not in ("", ".", "..")]
    if not parts or permalink.endswith("/") or "." not in parts[-1]:
        return output_dir.joinpath(*parts, INDEX_FILENAME)
    return output_dir.joinpath(*parts)


class CollectionBuilder:
    """Builds collections from configuration.

    Attributes:
        config: Resolved site configuration.
        output_dir: Directory output paths are computed against.
        warnings: Consistency warnings collected while building.
    """

    def __init__(
        self,
        config: SiteConfig,
        content_loader: ContentLoader | None = None,
        file_loader: ContentSource | None = None,
        output_dir: Path | None = None,
    ):
        self.config = config
        self.output_dir = output_dir or config.output_dir
        self._content_loader = content_loader or ContentLoader()
        self._file_loader = file_loader or FileContentLoader()
        self.warnings: list[ConsistencyWarning] = []

    def collection_config(self, name: str) -> CollectionConfig:
        """Return the configuration of a collection.

        Raises:
            ConfigurationError: If the collection is unknown or invalid.
        """
        if name not in self.config.collections:
            raise ConfigurationError(f'Collection "{name}" not found in config')
        collection = self.config.collections[name]
        if collection is None:
            raise ConfigurationError(f'Collection "{name}" has an invalid definition')
        return collection

    def build(
        self,
        name: str,
        show_drafts: bool = False,
        warnings: list[ConsistencyWarning] | None = None,
    ) -> ItemCollection:
        """Load, locate, filter and sort the items of one collection.

        Args:
            name: Collection name.
            show_drafts: Include items marked ``draft: true``. Only the dev
                server passes True.
            warnings: List consistency warnings are appended to; defaults to
                the builder's own ``warnings``.

        Returns:
            Sorted ItemCollection; empty for unknown collections or missing
            directories.
        """
        try:
            collection = self.collection_config(name)
        except ConfigurationError as exc:
            logger.warning("%s", exc)
            return ItemCollection()

        if warnings is None:
            warnings = self.warnings
        directory = self.config.input_dir / collection.path
        items: list[ContentItem] = []
        for path in self._file_loader.iter_files(directory):
            try:
                item = self._content_loader.load(path)
            except ParseError as exc:
                logger.error("Error parsing %s: %s", path, exc.message)
                continue
            except Exception:
                logger.exception("Error loading %s", path)
                continue
            if item.draft and not show_drafts:
                continue
            items.append(self.locate(item, name, collection))

        if ":slug" not in collection.permalink:
            record_warning(
                warnings,
                f'Permalink pattern "{collection.permalink}" of collection "{name}" '
                "has no :slug placeholder; items may overwrite each other",
            )
        self._check_duplicates(name, items, warnings)
        return ItemCollection(sort_items(items, collection.sort_by, collection.sort_order))

    def locate(
        self, item: ContentItem, name: str, collection: CollectionConfig
    ) -> ContentItem:
        """Return a copy of ``item`` with collection and location fields set."""
        pattern = str(
            item.frontmatter.get("permalink") or collection.permalink or DEFAULT_PERMALINK
        )
        permalink = resolve_permalink(pattern, item.slug, item.date)
        return replace(
            item,
            collection=name,
            layout=item.layout or collection.layout,
            permalink=permalink,
            url=f"{self.config.site.base_path}{permalink}",
            output_path=output_path_for(self.output_dir, permalink),
        )

    def _check_duplicates(
        self, name: str, items: list[ContentItem], warnings: list[ConsistencyWarning]
    ) -> None:
        seen: dict[Path, ContentItem] = {}
        for item in items:
            if item.output_path in seen:
                record_warning(
                    warnings,
                    f'Duplicate output path {item.output_path} in collection "{name}": '
                    f"{seen[item.output_path].path} and {item.path}",
                    item.path,
                )
            seen[item.output_path] = item


def check_output_paths(
    collections: Mapping[str, Sequence[ContentItem]],
    warnings: list[ConsistencyWarning] | None = None,
) -> None:
    """Warn about items of different collections sharing an output path.

    Collections are scanned in mapping order, which is also the order they
    are written in, so the item named second is the one that ends up on disk.
    Duplicates inside one collection are reported by the builder.
    """
    seen: dict[Path, tuple[str, ContentItem]] = {}
    for name, items in collections.items():
        for item in items:
            if item.output_path is None:
                continue
            previous = seen.get(item.output_path)
            if previous is not None and previous[0] != name:
                record_warning(
                    warnings,
                    f"Duplicate output path {item.output_path}: "
                    f'{previous[1].path} ("{previous[0]}") is overwritten by '
                    f'{item.path} ("{name}")',
                    item.path,
                )
            seen[item.output_path] = (name, item)
