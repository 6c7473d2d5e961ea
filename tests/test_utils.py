from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from sia.html_utils import absolute_url, escape_html, join_root_url, prefix_base_path
from sia.utils import (
    ensure_clean_dir,
    extract_date_from_name,
    is_markdown,
    make_excerpt,
    normalize_tags,
    parse_bool,
    parse_date,
    slug_from_filename,
    slugify,
    titleize,
    truncate_words,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Hello, World!", "hello-world"),
        ("  snake_case -- Title ", "snake-case-title"),
        ("Already-a-slug", "already-a-slug"),
        ("C++ & Rust", "c-rust"),
        ("---", ""),
        ("Crème brûlée", "crme-brle"),
        ("Café Déjà vu", "caf-dj-vu"),
    ],
)
def test_slugify(value, expected):
    assert slugify(value) == expected


@pytest.mark.parametrize("value", ["Hello World", "a__b--c", " -x- ", "Ünïcode Tëxt!", ""])
def test_slugify_is_idempotent(value):
    once = slugify(value)
    assert slugify(once) == once


def test_slug_and_date_from_filename():
    assert slug_from_filename("2024-03-05-my-post.md") == "my-post"
    assert slug_from_filename(Path("posts/About Me.md")) == "about-me"
    # a bare date keeps the date as the slug
    assert slug_from_filename("2024-03-05.md") == "2024-03-05"
    assert extract_date_from_name("2024-01-15-hello-world") == datetime(2024, 1, 15)
    assert extract_date_from_name("2024-02-30-impossible") is None
    assert extract_date_from_name("hello-world") is None


def test_parse_date_variants():
    assert parse_date(date(2024, 1, 2)) == datetime(2024, 1, 2)
    assert parse_date("2024-01-02") == datetime(2024, 1, 2)
    assert parse_date("2024-01-02T10:30:00Z") == datetime(2024, 1, 2, 10, 30)
    aware = datetime(2024, 1, 2, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert parse_date(aware) == datetime(2024, 1, 2, 10, 0)
    with pytest.raises(ValueError):
        parse_date("not a date")
    with pytest.raises(ValueError):
        parse_date(42)


def test_truncate_words_respects_limit_and_boundaries():
    text = "word " * 60
    result = truncate_words(" ".join(text.split()), 200)
    assert len(result) <= 200
    assert result.endswith("...")
    assert not result[:-3].endswith(" ")
    assert result[:-3].split()[-1] == "word"

    assert truncate_words("short text", 200) == "short text"
    assert truncate_words("x" * 300, 10) == "xxxxxxx..."


def test_make_excerpt_skips_heading_only_block():
    body = "# Title\n\nFirst   paragraph\nspans lines.\n\nSecond paragraph."
    assert make_excerpt(body) == "First paragraph spans lines."
    assert make_excerpt("## Heading\nText under heading") == "Text under heading"
    assert make_excerpt("") == ""


def test_make_excerpt_truncates_long_paragraph():
    body = " ".join(f"word{i}" for i in range(100))
    excerpt = make_excerpt(body)
    assert len(excerpt) <= 200
    assert excerpt.endswith("...")
    assert excerpt[:-3] in body
    assert body.startswith(excerpt[:-3] + " ")


def test_normalize_tags_and_flags():
    assert normalize_tags(None) == []
    assert normalize_tags("python, web ,") == ["python", "web"]
    assert normalize_tags(["a", 2, None]) == ["a", "2"]
    assert normalize_tags(7) == ["7"]
    assert parse_bool("yes") is True
    assert parse_bool("false") is False
    assert parse_bool(1) is True


def test_titleize_and_markdown_detection():
    assert titleize("2024-01-15-hello-world.md") == "Hello World"
    assert titleize("my_page.md") == "My Page"
    assert is_markdown(Path("a.md"))
    assert is_markdown(Path("a.MARKDOWN"))
    assert not is_markdown(Path("a.txt"))


def test_ensure_clean_dir(tmp_path):
    target = tmp_path / "out"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "old.html").write_text("x", encoding="utf-8")
    ensure_clean_dir(target)
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_url_helpers():
    assert escape_html('<a href="x">&</a>') == "&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;"
    assert join_root_url("https://example.com/", "about") == "https://example.com/about"
    assert join_root_url("", "/about") == "/about"
    assert prefix_base_path("/styles/main.css", "/blog") == "/blog/styles/main.css"
    assert prefix_base_path("https://cdn.example.com/x.js", "/blog") == "https://cdn.example.com/x.js"
    assert prefix_base_path("", "") == "/"
    assert absolute_url("https://example.com/blog", "/blog/post/", "/blog") == (
        "https://example.com/blog/post/"
    )
    assert absolute_url("https://example.com", "/post/") == "https://example.com/post/"
