"""Markdown rendering for Sia.

The content loader only needs ``render(markdown) -> html``. This module
provides that through mistune, with:

- heading ids for anchor links,
- Pygments syntax highlighting for fenced code blocks,
- ``:shortcode:`` emoji substitution,
- YouTube and Giphy links turned into responsive iframe embeds.

A new mistune instance is created for every call so that the output depends
only on the input text.
"""

from __future__ import annotations

import re

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html

EMOJIS = {
    "smile": "😄",
    "grinning": "😀",
    "joy": "😂",
    "heart": "❤️",
    "thumbsup": "👍",
    "thumbsdown": "👎",
    "clap": "👏",
    "fire": "🔥",
    "rocket": "🚀",
    "star": "⭐",
    "sparkles": "✨",
    "check": "✅",
    "x": "❌",
    "warning": "⚠️",
    "bulb": "💡",
    "memo": "📝",
    "book": "📖",
    "link": "🔗",
    "eyes": "👀",
    "thinking": "🤔",
    "wave": "👋",
    "pray": "🙏",
    "muscle": "💪",
    "tada": "🎉",
    "party": "🥳",
    "coffee": "☕",
    "bug": "🐛",
    "wrench": "🔧",
    "hammer": "🔨",
    "gear": "⚙️",
    "lock": "🔒",
    "key": "🔑",
    "zap": "⚡",
    "bomb": "💣",
    "gem": "💎",
    "trophy": "🏆",
    "crown": "👑",
    "sun": "☀️",
    "moon": "🌙",
    "snow": "❄️",
    "earth": "🌍",
    "tree": "🌳",
    "cat": "🐱",
    "dog": "🐶",
    "snake": "🐍",
    "crab": "🦀",
    "100": "💯",
    "+1": "👍",
    "-1": "👎",
}

EMOJI_RE = re.compile(r":([a-z0-9_+\-]+):")

YOUTUBE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
YOUTUBE_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/.*[?&]v=([a-zA-Z0-9_-]{11})"),
)
GIPHY_PATTERNS = (
    re.compile(r"giphy\.com/gifs/(?:[a-zA-Z0-9-]*-)?([a-zA-Z0-9]+)$"),
    re.compile(r"giphy\.com/embed/([a-zA-Z0-9]+)"),
    re.compile(r"gph\.is/g/([a-zA-Z0-9]+)"),
    re.compile(r"media\.giphy\.com/media/([a-zA-Z0-9]+)/"),
)
ANCHOR_RE = re.compile(
    r"<a\s+[^>]*href=[\"']([^\"']*(?:youtube|youtu\.be|giphy|gph\.is)[^\"']*)[\"'][^>]*>[^<]*</a>",
    re.IGNORECASE,
)


def extract_youtube_id(url: str) -> str | None:
    """Return the 11-character video id of a YouTube URL (or bare id)."""
    if not url:
        return None
    if YOUTUBE_ID_RE.match(url):
        return url
    for pattern in YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def extract_giphy_id(url: str) -> str | None:
    """Return the GIF id of a Giphy URL."""
    if not url or ("giphy" not in url and "gph.is" not in url):
        return None
    for pattern in GIPHY_PATTERNS:
        match = pattern.search(url.split("?")[0].rstrip("/"))
        if match:
            return match.group(1)
    return None


def youtube_embed(video_id: str) -> str:
    return (
        '<div class="youtube-embed"><iframe '
        f'src="https://www.youtube.com/embed/{video_id}" frameborder="0" '
        'allow="accelerometer; autoplay; clipboard-write; encrypted-media; '
        'gyroscope; picture-in-picture" allowfullscreen></iframe></div>'
    )


def giphy_embed(gif_id: str) -> str:
    return (
        '<div class="giphy-embed"><iframe '
        f'src="https://giphy.com/embed/{gif_id}" frameborder="0" '
        'class="giphy-embed" allowfullscreen></iframe></div>'
    )


def embed_for_url(url: str) -> str | None:
    """Return embed markup for a recognized YouTube or Giphy URL, or None."""
    if "youtube" in url or "youtu.be" in url:
        video_id = extract_youtube_id(url)
        if video_id:
            return youtube_embed(video_id)
    gif_id = extract_giphy_id(url)
    if gif_id:
        return giphy_embed(gif_id)
    return None


def embed_media_links(html: str) -> str:
    """Replace anchors pointing at YouTube or Giphy with iframe embeds."""

    def repl(match: re.Match) -> str:
        return embed_for_url(match.group(1)) or match.group(0)

    return ANCHOR_RE.sub(repl, html)


def replace_emoji(text: str) -> str:
    """Substitute known ``:shortcode:`` sequences with emoji characters."""
    return EMOJI_RE.sub(lambda m: EMOJIS.get(m.group(1), m.group(0)), text)


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text."""
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"[-\s]+", "-", slug, flags=re.ASCII)
    return slug.strip("-")


class _SiaHTMLRenderer(mistune.HTMLRenderer):
    """mistune renderer with heading ids, highlighting, emoji and embeds."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def text(self, text: str) -> str:
        return replace_emoji(super().text(text))

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text) or "section"
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def link(self, text: str, url: str, title: str | None = None) -> str:
        embed = embed_for_url(url)
        if embed:
            return embed
        return super().link(text, url, title)

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders a markdown body to HTML.

    Instances hold no state between calls; the same body always yields the
    same HTML.
    """

    plugins = ("strikethrough", "footnotes", "table", "url", "task_lists")

    def render(self, markdown: str) -> str:
        """Render Markdown content to HTML.

        Args:
            markdown: Markdown body without front matter.

        Returns:
            Rendered HTML.
        """
        parser = mistune.create_markdown(
            renderer=_SiaHTMLRenderer(), plugins=list(self.plugins)
        )
        html = parser(markdown)
        return embed_media_links(html)


default_markdown_renderer = MarkdownRenderer()
