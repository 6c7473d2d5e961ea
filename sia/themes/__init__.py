"""Theme resolution for Sia.

A theme is a directory with ``layouts/``, ``includes/``, ``pages/`` and
optionally ``styles/``. Themes are looked up in this order:

1. Built-in themes shipped next to this module, in ``sia/themes/<name>/``.
2. An installed Python package named ``sia_theme_<name>``; the theme is the
   package directory.
3. The built-in ``main`` theme.
"""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)

BUILTIN_THEMES_DIR = Path(__file__).parent
DEFAULT_THEME = "main"
EXTERNAL_PREFIX = "sia_theme_"

ThemeKind = Literal["builtin", "external", "fallback"]


@dataclass(frozen=True)
class ThemeResolution:
    """Where a theme was found.

    Attributes:
        name: Name of the theme actually used.
        kind: "builtin", "external" or "fallback".
        directory: Theme directory.
    """

    name: str
    kind: ThemeKind
    directory: Path

    @property
    def layouts_dir(self) -> Path:
        return self.directory / "layouts"

    @property
    def includes_dir(self) -> Path:
        return self.directory / "includes"

    @property
    def pages_dir(self) -> Path:
        return self.directory / "pages"

    @property
    def styles_dir(self) -> Path:
        return self.directory / "styles"


def is_theme_directory(path: Path) -> bool:
    """A theme needs at least layouts and pages."""
    return (path / "layouts").is_dir() and (path / "pages").is_dir()


def builtin_themes() -> list[str]:
    """Names of the themes shipped with Sia."""
    if not BUILTIN_THEMES_DIR.is_dir():
        return []
    return sorted(
        path.name
        for path in BUILTIN_THEMES_DIR.iterdir()
        if path.is_dir() and not path.name.startswith("_") and is_theme_directory(path)
    )


def find_external_theme(name: str) -> Path | None:
    """Directory of an installed ``sia_theme_<name>`` package, if any."""
    module_name = EXTERNAL_PREFIX + name.replace("-", "_")
    try:
        spec = importlib.util.find_spec(module_name)
    except (ImportError, ValueError):
        return None
    if spec is None or not spec.submodule_search_locations:
        return None
    for location in spec.submodule_search_locations:
        candidate = Path(location)
        if is_theme_directory(candidate):
            return candidate
    return None


def resolve_theme(name: str | None = None) -> ThemeResolution:
    """Resolve a theme name to a directory.

    Args:
        name: Theme name from the configuration; defaults to "main".

    Returns:
        ThemeResolution. Unknown themes resolve to the built-in "main" theme
        with kind "fallback".
    """
    name = name or DEFAULT_THEME
    builtin = BUILTIN_THEMES_DIR / name
    if not name.startswith("_") and is_theme_directory(builtin):
        return ThemeResolution(name, "builtin", builtin)

    external = find_external_theme(name)
    if external is not None:
        logger.info("Using external theme package %s%s", EXTERNAL_PREFIX, name)
        return ThemeResolution(name, "external", external)

    logger.warning('Theme "%s" not found, falling back to "%s" theme', name, DEFAULT_THEME)
    return ThemeResolution(DEFAULT_THEME, "fallback", BUILTIN_THEMES_DIR / DEFAULT_THEME)
