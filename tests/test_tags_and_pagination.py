import logging
import math
from datetime import datetime
from pathlib import Path

import pytest

from sia.collections import ConsistencyWarning
from sia.content import ContentItem
from sia.pagination import get_pagination_urls, page_url, paginate, paginate_with_urls
from sia.tags import aggregate_tags, sorted_tags


def make_item(slug: str, tags: list[str]) -> ContentItem:
    return ContentItem(
        title=slug,
        slug=slug,
        date=datetime(2024, 1, 1),
        raw_body="",
        content="",
        excerpt="",
        tags=tags,
        draft=False,
        path=Path(f"{slug}.md"),
    )


def test_tags_merge_by_slug_and_keep_first_spelling(caplog):
    first = make_item("first", ["JavaScript", "web"])
    second = make_item("second", ["javascript", "JavaScript"])
    note = make_item("note", ["Web", "javascript"])
    warnings: list[ConsistencyWarning] = []

    with caplog.at_level(logging.WARNING):
        tags = aggregate_tags({"posts": [first, second], "notes": [note]}, warnings)

    assert list(tags) == ["javascript", "web"]
    javascript = tags["javascript"]
    assert javascript.name == "JavaScript"
    # each item at most once, in discovery order across collections
    assert [item.slug for item in javascript.items] == ["first", "second", "note"]
    assert javascript.count == 3
    assert tags["web"].name == "web"
    assert [item.slug for item in tags["web"].items] == ["first", "note"]

    # one warning per (slug, spelling)
    merged = [w.message for w in warnings if "merged into" in w.message]
    assert len(merged) == 2
    assert "merged into" in caplog.text


def test_tags_without_usable_slug_are_skipped():
    warnings: list[ConsistencyWarning] = []
    tags = aggregate_tags({"posts": [make_item("a", ["!!!", "ok"])]}, warnings)
    assert list(tags) == ["ok"]
    assert len(warnings) == 1


def test_sorted_tags_by_count_then_name():
    items = [
        make_item("a", ["zeta", "Alpha"]),
        make_item("b", ["zeta", "beta"]),
        make_item("c", ["alpha-two"]),
    ]
    ordered = sorted_tags(aggregate_tags({"posts": items}))
    assert [tag.slug for tag in ordered] == ["zeta", "alpha", "alpha-two", "beta"]


@pytest.mark.parametrize("size", [1, 2, 3, 7])
@pytest.mark.parametrize("count", [0, 1, 5, 14])
def test_paginate_counts_and_concatenation(size, count):
    items = list(range(count))
    pages = paginate(items, size)
    assert len(pages) == max(1, math.ceil(count / size))
    assert [x for page in pages for x in page.items] == items
    assert all(len(page.items) <= size for page in pages)
    assert [page.page_number for page in pages] == list(range(1, len(pages) + 1))
    assert all(page.total_pages == len(pages) and page.total_items == count for page in pages)


@pytest.mark.parametrize("size", [0, -1, 2.5, True, "3"])
def test_paginate_rejects_invalid_size(size):
    with pytest.raises(ValueError):
        paginate([1, 2], size)


def test_empty_input_gives_one_empty_page():
    pages = paginate([], 10)
    assert len(pages) == 1
    assert pages[0].items == []
    assert not pages[0].has_previous
    assert not pages[0].has_next


def test_page_urls_never_include_page_one():
    assert page_url("/blog/", 1) == "/blog/"
    assert page_url("/blog", 2) == "/blog/page/2/"
    assert page_url("/blog/", 3, "/site") == "/site/blog/page/3/"

    pages = paginate(list(range(5)), 2)
    first = get_pagination_urls("/blog/", pages[0], "/site")
    assert first.url == "/site/blog/"
    assert first.previous_url is None
    assert first.next_url == "/site/blog/page/2/"

    second = get_pagination_urls("/blog/", pages[1], "/site")
    assert second.previous_url == "/site/blog/"
    assert second.next_url == "/site/blog/page/3/"

    last = get_pagination_urls("/blog/", pages[2])
    assert last.previous_url == "/blog/page/2/"
    assert last.next_url is None


def test_paginate_with_urls_attaches_links():
    pages = paginate_with_urls(["a", "b", "c"], 2, "/tags/python/")
    assert [page.url for page in pages] == ["/tags/python/", "/tags/python/page/2/"]
    assert pages[0].next_url == "/tags/python/page/2/"
    assert pages[1].previous_url == "/tags/python/"
    context = pages[1].as_context()
    assert context["pageNumber"] == 2
    assert context["totalPages"] == 2
    assert context["nextUrl"] is None
