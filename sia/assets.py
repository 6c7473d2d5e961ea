"""Static asset copying for Sia.

``AssetPipeline`` copies everything a built site needs besides rendered
pages:

- asset files (images, css, js, fonts, ...) found in the input directory;
- the theme's ``styles/``, or the project's own ``styles/`` when it has css;
- the project's ``assets/``, ``static/`` and ``public/`` directories and a
  root ``favicon.ico``;
- files listed under ``assets.css`` / ``assets.js`` in the configuration.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .config import SiteConfig
from .themes import ThemeResolution

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".ico", ".avif")
STATIC_EXTENSIONS = (
    ".css",
    ".js",
    ".json",
    ".xml",
    ".txt",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
)
ASSET_EXTENSIONS = IMAGE_EXTENSIONS + STATIC_EXTENSIONS
STATIC_DIRS = ("assets", "static", "public")


def is_asset(path: Path) -> bool:
    return path.suffix.lower() in ASSET_EXTENSIONS


def copy_file(source: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, dest)


def copy_assets(source_dir: Path, dest_dir: Path) -> list[Path]:
    """Copy asset files below ``source_dir`` into ``dest_dir``.

    Hidden files and directories are skipped.

    Returns:
        Copied paths, relative to ``source_dir``.
    """
    if not source_dir.is_dir():
        return []
    copied = []
    for item in sorted(source_dir.rglob("*")):
        rel = item.relative_to(source_dir)
        if item.is_dir() or any(part.startswith(".") for part in rel.parts):
            continue
        if not is_asset(item):
            continue
        copy_file(item, dest_dir / rel)
        copied.append(rel)
    return copied


def _has_css(directory: Path) -> bool:
    return directory.is_dir() and any(directory.rglob("*.css"))


class AssetPipeline:
    """Copies static assets of a site into the output directory.

    Attributes:
        config: Resolved site configuration.
        theme: Theme whose styles are used when the project has none.
        output_dir: Directory assets are written to.
    """

    def __init__(self, config: SiteConfig, theme: ThemeResolution, output_dir: Path | None = None):
        self.config = config
        self.theme = theme
        self.output_dir = output_dir or config.output_dir

    def run(self) -> list[Path]:
        """Copy every asset.

        Returns:
            Output paths written, relative to the output directory.
        """
        written: list[Path] = []
        written.extend(copy_assets(self.config.input_dir, self.output_dir))
        written.extend(self._copy_styles())
        written.extend(self._copy_static_dirs())
        written.extend(self._copy_configured())
        logger.info("Copied %d asset files", len(written))
        return written

    def _copy_styles(self) -> list[Path]:
        user_styles = self.config.root_dir / "styles"
        source = user_styles if _has_css(user_styles) else self.theme.styles_dir
        copied = copy_assets(source, self.output_dir / "styles")
        if not copied:
            logger.warning("No styles found")
        return [Path("styles") / rel for rel in copied]

    def _copy_static_dirs(self) -> list[Path]:
        written = []
        for name in STATIC_DIRS:
            copied = copy_assets(self.config.root_dir / name, self.output_dir / name)
            written.extend(Path(name) / rel for rel in copied)
        favicon = self.config.root_dir / "favicon.ico"
        if favicon.is_file():
            copy_file(favicon, self.output_dir / favicon.name)
            written.append(Path(favicon.name))
        return written

    def _copy_configured(self) -> list[Path]:
        written = []
        for entry in [*self.config.assets.css, *self.config.assets.js]:
            if entry.startswith(("http://", "https://", "//")):
                continue
            rel = Path(entry.lstrip("/"))
            source = self.config.root_dir / rel
            if not source.is_file():
                logger.warning("Configured asset %s not found", source)
                continue
            copy_file(source, self.output_dir / rel)
            written.append(rel)
        return written
