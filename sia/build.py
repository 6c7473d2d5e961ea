"""Site building for Sia.

This module turns a project directory into a static site: it loads the
configuration, assembles the site data, renders every content item and the
theme's listing pages, writes feeds and copies assets.

Key functions:
- build_site: Build the entire site and return a BuildResult.
- prepare_hooks: Apply the plugin configuration to a hook registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import TemplateNotFound, TemplateSyntaxError

from .assets import AssetPipeline
from .collections import output_path_for, sort_items
from .config import CONFIG_FILENAMES, ConfigurationError, SiteConfig, load_config
from .content import ContentItem
from .feeds import FeedRegistry, create_default_feed_registry
from .hooks import HookRegistry
from .pagination import page_url
from .protocols import TemplateRenderer
from .site_data import SiteData, assemble_site_data
from .templates import TemplateEngine
from .themes import resolve_theme
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)

HOME_TEMPLATE = "index"
NOT_FOUND_TEMPLATE = "404"
TAGS_URL = "/tags/"

# Listing pages rendered per collection: (collection, template, url, variable)
COLLECTION_LISTINGS = (
    ("posts", "blog", "/blog/", "posts"),
    ("notes", "notes", "/notes/", "notes"),
)


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file or template that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        site_data: The assembled site data.
        output_dir: Directory where the site was built.
        pages_written: Number of HTML pages written.
    """

    site_data: SiteData
    output_dir: Path
    pages_written: int


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    if isinstance(exc, TemplateSyntaxError):
        return f"Template syntax error on line {exc.lineno}: {exc.message}"
    if isinstance(exc, TemplateNotFound):
        return f"Template not found: {exc.name}"
    error_type = type(exc).__name__
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    return f"{error_type}: {exc}"


def prepare_hooks(config: SiteConfig, hooks: HookRegistry | None = None) -> HookRegistry:
    """Return the registry a build should use.

    Plugins disabled in the configuration give an empty registry; otherwise
    strict mode and handler order are taken from ``plugins``.
    """
    if not config.plugins.enabled:
        logger.debug("Plugins are disabled")
        return HookRegistry()
    hooks = hooks or HookRegistry()
    hooks.strict = hooks.strict or config.plugins.strict_mode
    if config.plugins.order:
        hooks.reorder(config.plugins.order)
    return hooks


def _write_output(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class _SiteWriter:
    """Renders and writes the pages of one build."""

    def __init__(self, site_data: SiteData, engine: TemplateRenderer, output_dir: Path):
        self.site_data = site_data
        self.engine = engine
        self.output_dir = output_dir
        self.context = site_data.as_context()
        self.pages_written = 0

    def _render(self, source: Path, render, *args: Any) -> str:
        try:
            return render(*args)
        except BuildError:
            raise
        except Exception as exc:
            raise BuildError(source, _format_error_message(exc), exc) from exc

    def write_item(self, item: ContentItem) -> None:
        html = self._render(item.path, self.engine.render_item, item, self.context)
        _write_output(item.output_path or output_path_for(self.output_dir, item.permalink), html)
        self.pages_written += 1

    def write_page(self, template: str, url: str, extra: dict[str, Any] | None = None) -> None:
        context = {**self.context, **(extra or {})}
        html = self._render(Path(template), self.engine.render, template, context)
        _write_output(output_path_for(self.output_dir, url), html)
        self.pages_written += 1

    def write_listing(self, template: str, base_url: str, items, name: str, **extra: Any) -> None:
        """Write every page of a paginated listing."""
        for page in self.site_data.paginate_listing(items, base_url):
            self.write_page(
                template,
                page_url(base_url, page.page_number),
                {"pagination": page.as_context(), name: page.items, "items": page.items, **extra},
            )

    def write_all(self) -> None:
        for items in self.site_data.collections.values():
            for item in items:
                self.write_item(item)

        has = self.engine.has_template
        if has(HOME_TEMPLATE):
            self.write_page(HOME_TEMPLATE, "/")
        for collection, template, url, name in COLLECTION_LISTINGS:
            if collection in self.site_data.collections and has(template):
                self.write_listing(template, url, self.site_data.collection(collection), name)
        if has("tags"):
            self.write_page("tags", TAGS_URL)
        if has("tag"):
            for tag in self.site_data.tags.values():
                self.write_listing(
                    "tag",
                    f"{TAGS_URL}{tag.slug}/",
                    sort_items(tag.items, "date", "desc"),
                    "posts",
                    tag=tag,
                )
        if has(NOT_FOUND_TEMPLATE):
            self.write_page(NOT_FOUND_TEMPLATE, "/404.html")


def build_site(
    root_dir: Path,
    show_drafts: bool = False,
    clean: bool = True,
    output_dir_override: Path | None = None,
    hooks: HookRegistry | None = None,
    max_workers: int | None = None,
    feeds: FeedRegistry | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        root_dir: Root directory of the project.
        show_drafts: Whether to include draft items.
        clean: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead
            of the configured output directory.
        hooks: Hook registry with plugin handlers.
        max_workers: Build collections on a thread pool of this size.
        feeds: Feed registry; defaults to RSS and sitemap.

    Returns:
        BuildResult with the site data, output directory and page count.

    Raises:
        BuildError: If the configuration, content root or a template is
            broken. The error names the offending file.
    """
    try:
        config = load_config(root_dir)
    except ConfigurationError as exc:
        raise BuildError(root_dir / CONFIG_FILENAMES[0], str(exc), exc) from exc

    hooks = prepare_hooks(config, hooks)
    output_dir = output_dir_override or config.output_dir
    if clean:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    hooks.run("before_build", config)
    try:
        site_data = assemble_site_data(
            config,
            hooks=hooks,
            show_drafts=show_drafts,
            output_dir=output_dir,
            max_workers=max_workers,
        )
    except FileNotFoundError as exc:
        raise BuildError(config.input_dir, str(exc), exc) from exc

    theme = resolve_theme(config.theme.name)
    writer = _SiteWriter(site_data, TemplateEngine(config, theme), output_dir)
    writer.write_all()

    (feeds or create_default_feed_registry()).generate_all(output_dir, site_data)
    AssetPipeline(config, theme, output_dir).run()

    result = BuildResult(
        site_data=site_data, output_dir=output_dir, pages_written=writer.pages_written
    )
    hooks.run("after_build", result)
    logger.info("Wrote %d pages to %s", result.pages_written, output_dir)
    return result
