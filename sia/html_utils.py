"""HTML and URL helpers for Sia.

Functions:
    escape_html: Escape special HTML characters in a string.
    join_root_url: Join a base URL with a path.
    prefix_base_path: Prefix a site-relative path with the site base path.
    absolute_url: Absolute URL of a site path for feeds and sitemaps.
"""

from __future__ import annotations

_ABSOLUTE_PREFIXES = ("http://", "https://", "//", "mailto:", "tel:", "#")


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Examples:
        >>> join_root_url('https://example.com/', 'about')
        'https://example.com/about'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def prefix_base_path(path: str | None, base_path: str = "") -> str:
    """Prefix a site-relative path with the base path.

    Absolute URLs, anchors and mailto/tel links are returned unchanged.

    Examples:
        >>> prefix_base_path("styles/main.css", "/blog")
        '/blog/styles/main.css'
        >>> prefix_base_path("https://cdn.example.com/x.js", "/blog")
        'https://cdn.example.com/x.js'
    """
    if not path:
        return base_path or "/"
    if path.startswith(_ABSOLUTE_PREFIXES):
        return path
    normalized = path if path.startswith("/") else f"/{path}"
    return f"{base_path}{normalized}"


def absolute_url(site_url: str, path: str, base_path: str = "") -> str:
    """Absolute URL of a site path that already carries the base path.

    Examples:
        >>> absolute_url("https://example.com/blog", "/blog/post/", "/blog")
        'https://example.com/blog/post/'
    """
    root = site_url.rstrip("/")
    if base_path and root.endswith(base_path):
        root = root[: -len(base_path)]
    return join_root_url(root, path)
