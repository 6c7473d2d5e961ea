"""Site data assembly for Sia.

``assemble_site_data`` runs the whole read side of a build in one pass: it
builds every configured collection, aggregates tags across them and returns a
``SiteData`` object that templates consume unmodified. Pagination is exposed
as a capability on SiteData because each listing page paginates a different
subset with its own URL.

The assembler only reads the filesystem and holds no resources after it
returns, so the dev server can call it on every change.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .collections import (
    CollectionBuilder,
    ConsistencyWarning,
    ItemCollection,
    check_output_paths,
)
from .config import SiteConfig
from .hooks import HookRegistry
from .pagination import Page, PaginationUrls, get_pagination_urls, paginate, paginate_with_urls
from .tags import Tag, aggregate_tags, sorted_tags

logger = logging.getLogger(__name__)


@dataclass
class SiteData:
    """Aggregate of everything a build renders.

    Attributes:
        site: Site metadata mapping (title, url, base_path, ...).
        config: Resolved configuration.
        collections: Collection name to items, in configuration order.
        tags: Tag slug to Tag, in order of first appearance.
        all_tags: Tags sorted by count, then name.
        build_date: When the data was assembled.
        warnings: Consistency warnings found while assembling.
    """

    site: dict[str, Any]
    config: SiteConfig
    collections: dict[str, ItemCollection]
    tags: dict[str, Tag]
    all_tags: list[Tag]
    build_date: datetime
    warnings: list[ConsistencyWarning] = field(default_factory=list)

    @property
    def base_path(self) -> str:
        return self.config.site.base_path

    def collection(self, name: str) -> ItemCollection:
        """Items of a collection, empty when it does not exist."""
        return self.collections.get(name) or ItemCollection()

    def paginate(self, items: Sequence[Any], size: int | None = None) -> list[Page]:
        """Paginate items with the configured page size unless one is given."""
        if size is None:
            size = self.config.pagination.size
        return paginate(items, size)

    def pagination_urls(self, base_url: str, page: Page) -> PaginationUrls:
        """Previous/next URLs of a page, prefixed with the site base path."""
        return get_pagination_urls(base_url, page, self.base_path)

    def paginate_listing(
        self, items: Sequence[Any], base_url: str, size: int | None = None
    ) -> list[Page]:
        """Paginate items and attach URLs for a listing at ``base_url``."""
        if size is None:
            size = self.config.pagination.size
        return paginate_with_urls(items, size, base_url, self.base_path)

    def as_context(self) -> dict[str, Any]:
        """Template context shared by every render call of a build."""
        return {
            "site": self.site,
            "config": self.config,
            "collections": self.collections,
            "tags": self.tags,
            "allTags": self.all_tags,
            "all_tags": self.all_tags,
            "buildDate": self.build_date,
            "build_date": self.build_date,
            "paginate": self.paginate,
            "pagination_urls": self.pagination_urls,
        }


def _build_collections(
    builder: CollectionBuilder,
    names: list[str],
    show_drafts: bool,
    max_workers: int | None,
) -> tuple[dict[str, ItemCollection], list[ConsistencyWarning]]:
    def load(name: str) -> tuple[ItemCollection, list[ConsistencyWarning]]:
        # each collection gets its own list so pool threads never share one
        found: list[ConsistencyWarning] = []
        try:
            return builder.build(name, show_drafts=show_drafts, warnings=found), found
        except Exception:
            logger.exception('Failed to load collection "%s"', name)
            return ItemCollection(), found

    if max_workers and max_workers > 1 and len(names) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            # map() yields in input order, whichever build finishes first
            results = list(pool.map(load, names))
    else:
        results = [load(name) for name in names]
    collections: dict[str, ItemCollection] = {}
    warnings: list[ConsistencyWarning] = []
    for name, (items, found) in zip(names, results):
        logger.info('Loaded %d items from "%s" collection', len(items), name)
        collections[name] = items
        warnings.extend(found)
    return collections, warnings


def assemble_site_data(
    config: SiteConfig,
    hooks: HookRegistry | None = None,
    show_drafts: bool = False,
    output_dir: Path | None = None,
    max_workers: int | None = None,
    now: datetime | None = None,
) -> SiteData:
    """Build the SiteData for a configuration.

    Args:
        config: Resolved configuration.
        hooks: Hook registry; an empty one is used when omitted.
        show_drafts: Include draft items.
        output_dir: Directory output paths are computed against (defaults to
            the configured output directory).
        max_workers: Build collections on a thread pool of this size.
        now: Build timestamp, mainly for tests.

    Returns:
        SiteData. Calling this twice on unchanged input gives the same slugs,
        orders and counts.

    Raises:
        FileNotFoundError: If the input directory does not exist.
    """
    hooks = hooks or HookRegistry()
    if not config.input_dir.is_dir():
        raise FileNotFoundError(f"Expected content directory at {config.input_dir}")

    hooks.run("before_collections", config)
    builder = CollectionBuilder(config, output_dir=output_dir)
    collections, warnings = _build_collections(
        builder, list(config.collections), show_drafts, max_workers
    )
    collections = hooks.run_with_result("collections_loaded", collections)

    check_output_paths(collections, warnings)
    tags = aggregate_tags(collections, warnings)
    site_data = SiteData(
        site=config.site.as_dict(),
        config=config,
        collections=collections,
        tags=tags,
        all_tags=sorted_tags(tags),
        build_date=now or datetime.now(),
        warnings=warnings,
    )
    return hooks.run_with_result("site_data_ready", site_data)
