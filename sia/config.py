"""Site configuration for Sia.

Configuration is read from ``_config.yml`` (or ``_config.yaml`` /
``_config.json``) in the project root, deep-merged over ``DEFAULT_CONFIG`` and
turned into the typed ``SiteConfig`` schema the rest of the build consumes.

Keys may be written in snake_case or camelCase (``sortBy``, ``showDrafts``);
they are normalized before merging.

Key functions:
- load_config: Load and resolve configuration for a project root.
- config_from_dict: Build a SiteConfig from a plain mapping.
- deep_merge: Structural merge of two plain mappings.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("_config.yml", "_config.yaml", "_config.json")

DEFAULT_CONFIG: dict[str, Any] = {
    "site": {
        "title": "My Site",
        "description": "A static site built with Sia",
        "url": "http://localhost:3000",
        "author": "Anonymous",
    },
    "theme": {"name": "main"},
    "input": "src",
    "output": "dist",
    "layouts": "_layouts",
    "includes": "_includes",
    "collections": {
        "posts": {
            "path": "posts",
            "layout": "post",
            "permalink": "/blog/:slug/",
            "sort_by": "date",
            "sort_order": "desc",
        },
        "pages": {
            "path": "pages",
            "layout": "page",
            "permalink": "/:slug/",
        },
        "notes": {
            "path": "notes",
            "layout": "note",
            "permalink": "/notes/:slug/",
            "sort_by": "date",
            "sort_order": "desc",
        },
    },
    "pagination": {"size": 10},
    "server": {"port": 3000, "show_drafts": False},
    "assets": {"css": [], "js": []},
    "plugins": {
        "enabled": True,
        "strict_mode": False,
        "order": [],
        "config": {},
    },
}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_NESTED_SECTIONS = ("site", "theme", "pagination", "server", "assets", "plugins")


class ConfigurationError(Exception):
    """Raised when the site configuration is invalid or incomplete."""


@dataclass
class SiteMeta:
    """Site metadata exposed to templates as ``site``."""

    title: str = "My Site"
    description: str = ""
    url: str = ""
    author: str = ""
    base_path: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            title=self.title,
            description=self.description,
            url=self.url,
            author=self.author,
            base_path=self.base_path,
            basePath=self.base_path,
        )
        return data


@dataclass
class ThemeConfig:
    name: str = "main"


@dataclass
class CollectionConfig:
    """Configuration of one named collection.

    Attributes:
        path: Directory of the collection, relative to the input directory.
        layout: Default layout for items of the collection.
        permalink: Permalink pattern with :slug/:year/:month/:day placeholders.
        sort_by: Item field to sort by.
        sort_order: "asc" or "desc".
    """

    path: str
    layout: str = "page"
    permalink: str = "/:slug/"
    sort_by: str = "date"
    sort_order: str = "desc"


@dataclass
class PaginationConfig:
    size: int = 10


@dataclass
class ServerConfig:
    port: int = 3000
    show_drafts: bool = False


@dataclass
class AssetsConfig:
    css: list[str] = field(default_factory=list)
    js: list[str] = field(default_factory=list)


@dataclass
class PluginsConfig:
    enabled: bool = True
    strict_mode: bool = False
    order: list[str] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class SiteConfig:
    """Resolved configuration for one build.

    ``collections`` keeps configuration order; an entry is ``None`` when its
    definition in the config file was invalid.
    """

    site: SiteMeta = field(default_factory=SiteMeta)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    input: str = "src"
    output: str = "dist"
    layouts: str = "_layouts"
    includes: str = "_includes"
    collections: dict[str, CollectionConfig | None] = field(default_factory=dict)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    assets: AssetsConfig = field(default_factory=AssetsConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    root_dir: Path = field(default_factory=Path)

    @property
    def input_dir(self) -> Path:
        return self.root_dir / self.input

    @property
    def output_dir(self) -> Path:
        return self.root_dir / self.output

    @property
    def layouts_dir(self) -> Path:
        return self.root_dir / self.layouts

    @property
    def includes_dir(self) -> Path:
        return self.root_dir / self.includes

    def as_dict(self) -> dict[str, Any]:
        """Plain mapping of the configuration, for templates and debugging."""
        data = asdict(self)
        data["root_dir"] = str(self.root_dir)
        data["site"] = self.site.as_dict()
        return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested mappings are merged recursively; every other value (lists
    included) from ``override`` replaces the one in ``base``.

    Args:
        base: Default values.
        override: User supplied values.

    Returns:
        A new merged mapping; neither argument is modified.
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _snake(key: Any) -> str:
    return _CAMEL_RE.sub("_", str(key)).lower()


def _snake_keys(mapping: dict[str, Any]) -> dict[str, Any]:
    return {_snake(key): value for key, value in mapping.items()}


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize camelCase keys of a user config to snake_case.

    Collection names are left alone; only the settings inside each collection
    and inside the known sections are renamed.
    """
    normalized = _snake_keys(data)
    for section in _NESTED_SECTIONS:
        if isinstance(normalized.get(section), dict):
            normalized[section] = _snake_keys(normalized[section])
    collections = normalized.get("collections")
    if isinstance(collections, dict):
        normalized["collections"] = {
            name: _snake_keys(value) if isinstance(value, dict) else value
            for name, value in collections.items()
        }
    return normalized


def derive_base_path(url: str) -> str:
    """Derive the site base path from its URL.

    Examples:
        >>> derive_base_path("https://example.org/blog/")
        '/blog'
        >>> derive_base_path("https://example.org")
        ''
    """
    try:
        parts = urlsplit(str(url or ""))
    except ValueError:
        return ""
    if not parts.scheme or not parts.netloc:
        return ""
    return parts.path.rstrip("/")


def _collection_from_dict(name: str, value: Any) -> CollectionConfig | None:
    if not isinstance(value, dict):
        logger.warning(
            "Collection %r is not a mapping in the configuration; it will be empty",
            name,
        )
        return None
    return CollectionConfig(
        path=str(value.get("path") or name),
        layout=str(value.get("layout") or "page"),
        permalink=str(value.get("permalink") or "/:slug/"),
        sort_by=str(value.get("sort_by") or "date"),
        sort_order=str(value.get("sort_order") or "desc").lower(),
    )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def config_from_dict(data: dict[str, Any], root_dir: Path | None = None) -> SiteConfig:
    """Build a SiteConfig from a mapping merged over the defaults.

    Args:
        data: User configuration (may be partial, snake_case or camelCase).
        root_dir: Project root; paths are resolved relative to it.

    Returns:
        Typed configuration.

    Raises:
        ConfigurationError: If a section has the wrong shape or the page size
            is not a positive integer.
    """
    merged = deep_merge(DEFAULT_CONFIG, normalize_keys(data))

    site = _section(merged, "site")
    known = {"title", "description", "url", "author", "base_path"}
    url = str(site.get("url") or "")
    explicit_base = site.get("base_path")
    base_path = (
        "/" + str(explicit_base).strip("/") if explicit_base else derive_base_path(url)
    )
    if base_path == "/":
        base_path = ""
    site_meta = SiteMeta(
        title=str(site.get("title") or ""),
        description=str(site.get("description") or ""),
        url=url.rstrip("/"),
        author=str(site.get("author") or ""),
        base_path=base_path,
        extra={k: v for k, v in site.items() if k not in known},
    )

    theme_value = merged.get("theme")
    if isinstance(theme_value, str):
        theme = ThemeConfig(name=theme_value)
    else:
        theme = ThemeConfig(name=str(_section(merged, "theme").get("name") or "main"))

    collections = {
        str(name): _collection_from_dict(str(name), value)
        for name, value in _section(merged, "collections").items()
    }

    pagination = _section(merged, "pagination")
    size = pagination.get("size", 10)
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise ConfigurationError(f"pagination.size must be a positive integer, got {size!r}")

    server = _section(merged, "server")
    assets = _section(merged, "assets")
    plugins = _section(merged, "plugins")

    return SiteConfig(
        site=site_meta,
        theme=theme,
        input=str(merged.get("input") or "src"),
        output=str(merged.get("output") or "dist"),
        layouts=str(merged.get("layouts") or "_layouts"),
        includes=str(merged.get("includes") or "_includes"),
        collections=collections,
        pagination=PaginationConfig(size=size),
        server=ServerConfig(
            port=int(server.get("port") or 3000),
            show_drafts=bool(server.get("show_drafts", False)),
        ),
        assets=AssetsConfig(
            css=list(assets.get("css") or []),
            js=list(assets.get("js") or []),
        ),
        plugins=PluginsConfig(
            enabled=bool(plugins.get("enabled", True)),
            strict_mode=bool(plugins.get("strict_mode", False)),
            order=[str(name) for name in plugins.get("order") or []],
            config=dict(plugins.get("config") or {}),
        ),
        root_dir=root_dir or Path.cwd(),
    )


def read_config_file(root_dir: Path) -> dict[str, Any]:
    """Read the raw user configuration from the project root.

    Args:
        root_dir: Root directory of the project.

    Returns:
        The parsed mapping, or an empty mapping when no file exists.

    Raises:
        ConfigurationError: If the file cannot be parsed or is not a mapping.
    """
    for filename in CONFIG_FILENAMES:
        path = root_dir / filename
        if not path.exists():
            continue
        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix == ".json":
                    loaded = json.load(f)
                else:
                    loaded = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError, OSError) as exc:
            raise ConfigurationError(f"Could not parse {path}: {exc}") from exc
        loaded = loaded or {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{path} must contain a mapping")
        logger.info("Loaded configuration from %s", filename)
        return loaded
    logger.info("No config file found in %s, using defaults", root_dir)
    return {}


def load_config(root_dir: Path, overrides: dict[str, Any] | None = None) -> SiteConfig:
    """Load site configuration for a project.

    Args:
        root_dir: Root directory of the project.
        overrides: Optional values merged over the file contents (used by the
            CLI and the dev server).

    Returns:
        Resolved SiteConfig.
    """
    data = read_config_file(root_dir)
    if overrides:
        data = deep_merge(normalize_keys(data), normalize_keys(overrides))
    return config_from_dict(data, root_dir=root_dir)
