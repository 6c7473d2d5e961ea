"""Feed generation for Sia.

Feeds are generated from the assembled ``SiteData`` after pages are written.
Each generator produces one file; new formats are added by registering
another ``FeedGenerator`` on a ``FeedRegistry``.

Classes:
    FeedGenerator: Base class for feed generators.
    RSSGenerator: RSS 2.0 feed of the newest posts (feed.xml).
    SitemapGenerator: sitemaps.org sitemap of every item (sitemap.xml).
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape

from .collections import sort_items
from .html_utils import absolute_url

if TYPE_CHECKING:
    from .content import ContentItem
    from .site_data import SiteData

RFC822_FORMAT = "%a, %d %b %Y %H:%M:%S +0000"
FEED_ITEM_LIMIT = 20


def cdata(text: str) -> str:
    """Wrap text in a CDATA section, splitting any embedded terminator."""
    return "<![CDATA[" + str(text).replace("]]>", "]]]]><![CDATA[>") + "]]>"


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Output filename, e.g. 'feed.xml'."""
        ...

    @abstractmethod
    def generate(self, site_data: SiteData) -> str | None:
        """Generate feed content.

        Returns:
            Feed content, or None when the feed cannot be generated (no site
            URL configured).
        """
        ...

    def write(self, output_dir: Path, site_data: SiteData) -> bool:
        """Generate and write the feed.

        Returns:
            True if the feed was written, False if skipped.
        """
        content = self.generate(site_data)
        if content is None:
            return False
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / self.filename).write_text(content, encoding="utf-8")
        return True

    @staticmethod
    def link(site_data: SiteData, item: ContentItem) -> str:
        return absolute_url(str(site_data.site.get("url", "")), item.url, site_data.base_path)


class RSSGenerator(FeedGenerator):
    """RSS 2.0 feed of the newest items of one collection.

    Attributes:
        collection: Collection the feed is built from.
        limit: Maximum number of items.
    """

    def __init__(self, collection: str = "posts", limit: int = FEED_ITEM_LIMIT):
        self.collection = collection
        self.limit = limit

    @property
    def filename(self) -> str:
        return "feed.xml"

    def generate(self, site_data: SiteData) -> str | None:
        site = site_data.site
        site_url = str(site.get("url", "")).rstrip("/")
        if not site_url:
            return None

        newest = sort_items(site_data.collection(self.collection), "date", "desc")
        items = []
        for item in newest[: self.limit]:
            link = escape(self.link(site_data, item))
            categories = "".join(
                f"<category>{escape(str(tag))}</category>" for tag in item.tags
            )
            items.append(
                "<item>"
                f"<title>{escape(item.title)}</title>"
                f"<link>{link}</link>"
                f'<guid isPermaLink="true">{link}</guid>'
                f"<pubDate>{item.date.strftime(RFC822_FORMAT)}</pubDate>"
                f"{categories}"
                f"<description>{escape(item.excerpt)}</description>"
                f"<content:encoded>{cdata(item.content)}</content:encoded>"
                "</item>"
            )

        feed_url = escape(f"{site_url}/feed.xml")
        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom" '
            'xmlns:content="http://purl.org/rss/1.0/modules/content/"><channel>',
            f"<title>{escape(str(site.get('title', '')))}</title>",
            f"<description>{escape(str(site.get('description', '')))}</description>",
            f"<link>{escape(site_url)}</link>",
            f'<atom:link href="{feed_url}" rel="self" type="application/rss+xml"/>',
            "<language>en-us</language>",
            f"<lastBuildDate>{site_data.build_date.strftime(RFC822_FORMAT)}</lastBuildDate>",
            "<generator>Sia</generator>",
        ]
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss)


class SitemapGenerator(FeedGenerator):
    """Sitemap of the home page and every item of every collection."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, site_data: SiteData) -> str | None:
        site_url = str(site_data.site.get("url", "")).rstrip("/")
        if not site_url:
            return None

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            f"  <url><loc>{escape(site_url)}/</loc></url>",
        ]
        for items in site_data.collections.values():
            for item in items:
                lastmod = item.date.strftime("%Y-%m-%d")
                lines.append(
                    f"  <url><loc>{escape(self.link(site_data, item))}</loc>"
                    f"<lastmod>{lastmod}</lastmod></url>"
                )
        lines.append("</urlset>")
        return "\n".join(lines)


class FeedRegistry:
    """Registry for managing feed generators."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(self, output_dir: Path, site_data: SiteData) -> list[str]:
        """Generate all registered feeds.

        Returns:
            Filenames that were generated.
        """
        return [
            generator.filename
            for generator in self._generators
            if generator.write(output_dir, site_data)
        ]


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the RSS and sitemap generators."""
    registry = FeedRegistry()
    registry.register(RSSGenerator())
    registry.register(SitemapGenerator())
    return registry
