"""Pagination for Sia listing pages.

``paginate`` splits an ordered sequence into pages; ``get_pagination_urls``
computes the previous/next links of a page. The first page of a listing
lives at the listing URL itself, later pages at ``<listing>/page/<n>/``;
there is never a ``/page/1/``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any, NamedTuple


@dataclass
class Page:
    """One page of a paginated sequence.

    Attributes:
        page_number: 1-based page number.
        items: Items on this page.
        total_pages: Number of pages in the listing.
        total_items: Number of items in the whole sequence.
        page_size: Configured page size.
        url: URL of this page, once URLs are attached.
        previous_url: URL of the previous page, None on the first page.
        next_url: URL of the next page, None on the last page.
    """

    page_number: int
    items: list[Any] = field(default_factory=list)
    total_pages: int = 1
    total_items: int = 0
    page_size: int = 1
    url: str | None = None
    previous_url: str | None = None
    next_url: str | None = None

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages

    def as_context(self) -> dict[str, Any]:
        """Template-facing mapping, with the camelCase names themes use."""
        return {
            "pageNumber": self.page_number,
            "page_number": self.page_number,
            "totalPages": self.total_pages,
            "total_pages": self.total_pages,
            "totalItems": self.total_items,
            "items": self.items,
            "url": self.url,
            "previousUrl": self.previous_url,
            "previous_url": self.previous_url,
            "nextUrl": self.next_url,
            "next_url": self.next_url,
        }


class PaginationUrls(NamedTuple):
    url: str
    previous_url: str | None
    next_url: str | None


def paginate(items: Sequence[Any], page_size: int) -> list[Page]:
    """Split items into pages of at most ``page_size``.

    Args:
        items: Ordered items.
        page_size: Positive page size.

    Returns:
        Pages in order; exactly one empty page when ``items`` is empty.

    Raises:
        ValueError: If ``page_size`` is not a positive integer.
    """
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise ValueError(f"page_size must be a positive integer, got {page_size!r}")
    sequence = list(items)
    total_items = len(sequence)
    total_pages = max(1, math.ceil(total_items / page_size))
    return [
        Page(
            page_number=number,
            items=sequence[(number - 1) * page_size : number * page_size],
            total_pages=total_pages,
            total_items=total_items,
            page_size=page_size,
        )
        for number in range(1, total_pages + 1)
    ]


def page_url(base_url: str, page_number: int, base_path: str = "") -> str:
    """URL of a page of a listing.

    Examples:
        >>> page_url("/blog/", 1, "/site")
        '/site/blog/'
        >>> page_url("/blog/", 3)
        '/blog/page/3/'
    """
    base = base_url if base_url.endswith("/") else f"{base_url}/"
    if page_number <= 1:
        return f"{base_path}{base}"
    return f"{base_path}{base}page/{page_number}/"


def get_pagination_urls(base_url: str, page: Page, base_path: str = "") -> PaginationUrls:
    """Compute the URL and previous/next links for a page.

    Args:
        base_url: Listing URL without base path, e.g. "/blog/".
        page: Page to compute links for.
        base_path: Site base path prefix.

    Returns:
        PaginationUrls; previous is None on page 1 and next is None on the
        last page.
    """
    previous_url = (
        page_url(base_url, page.page_number - 1, base_path) if page.has_previous else None
    )
    next_url = page_url(base_url, page.page_number + 1, base_path) if page.has_next else None
    return PaginationUrls(page_url(base_url, page.page_number, base_path), previous_url, next_url)


def paginate_with_urls(
    items: Sequence[Any], page_size: int, base_url: str, base_path: str = ""
) -> list[Page]:
    """Paginate and attach URLs to every page."""
    pages = []
    for page in paginate(items, page_size):
        urls = get_pagination_urls(base_url, page, base_path)
        pages.append(
            replace(page, url=urls.url, previous_url=urls.previous_url, next_url=urls.next_url)
        )
    return pages
