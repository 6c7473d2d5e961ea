"""Tag aggregation for Sia.

Tags are collected across every collection. Spellings that differ only in
case (or punctuation) share a slug and merge into one ``Tag``, displayed with
the first spelling seen.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .collections import ConsistencyWarning, record_warning
from .content import ContentItem
from .utils import slugify


@dataclass
class Tag:
    """A tag and the items carrying it.

    Attributes:
        name: Display name (first spelling seen).
        slug: URL slug, also the grouping key.
        items: Items in discovery order, each at most once.
    """

    name: str
    slug: str
    items: list[ContentItem] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


def aggregate_tags(
    collections: Mapping[str, Iterable[ContentItem]],
    warnings: list[ConsistencyWarning] | None = None,
) -> dict[str, Tag]:
    """Group items of all collections by tag.

    Collections are visited in mapping order and items in collection order,
    which fixes the order of each tag's items.

    Args:
        collections: Mapping of collection name to items.
        warnings: Optional list collecting consistency warnings.

    Returns:
        Mapping of tag slug to Tag, in order of first appearance.
    """
    tags: dict[str, Tag] = {}
    members: dict[str, set[int]] = {}
    reported: set[tuple[str, str]] = set()
    for items in collections.values():
        for item in items:
            for raw in item.tags:
                name = str(raw).strip()
                slug = slugify(name)
                if not slug:
                    record_warning(
                        warnings, f"Tag {name!r} on {item.path} has no usable slug", item.path
                    )
                    continue
                tag = tags.get(slug)
                if tag is None:
                    tag = tags[slug] = Tag(name=name, slug=slug)
                    members[slug] = set()
                elif name != tag.name and (slug, name) not in reported:
                    reported.add((slug, name))
                    record_warning(
                        warnings,
                        f'Tag "{name}" in {item.path} merged into "{tag.name}"',
                        item.path,
                    )
                if id(item) in members[slug]:
                    continue
                members[slug].add(id(item))
                tag.items.append(item)
    return tags


def sorted_tags(tags: Mapping[str, Tag]) -> list[Tag]:
    """Tags ordered by item count (descending), then name."""
    return sorted(tags.values(), key=lambda tag: (-tag.count, tag.name.lower(), tag.slug))
