from sia.renderers import (
    MarkdownRenderer,
    embed_media_links,
    extract_giphy_id,
    extract_youtube_id,
    replace_emoji,
)


def render(text: str) -> str:
    return MarkdownRenderer().render(text)


def test_headings_get_unique_ids():
    html = render("# Intro\n\n## Intro\n\n## Setup and Run!")
    assert '<h1 id="intro">Intro</h1>' in html
    assert '<h2 id="intro-1">Intro</h2>' in html
    assert 'id="setup-and-run"' in html


def test_heading_ids_are_ascii():
    assert '<h2 id="caf-dj-vu">Café Déjà vu</h2>' in render("## Café Déjà vu")


def test_rendering_is_deterministic():
    text = "# Same\n\n# Same\n\nBody :rocket:"
    assert render(text) == render(text)


def test_code_blocks_are_highlighted():
    html = render("```python\nprint('hi')\n```\n")
    assert 'class="highlight"' in html

    unknown = render("```nosuchlang\n<tag>\n```\n")
    assert 'class="language-nosuchlang"' in unknown
    assert "&lt;tag&gt;" in unknown


def test_gfm_plugins():
    html = render("~~gone~~\n\n| a | b |\n|---|---|\n| 1 | 2 |\n\n- [x] done\n")
    assert "<del>gone</del>" in html
    assert "<table>" in html
    assert "checkbox" in html


def test_emoji_shortcodes():
    assert replace_emoji("Launch :rocket: now :unknown:") == "Launch 🚀 now :unknown:"
    assert "🎉" in render("Party :tada:")


def test_media_ids():
    assert extract_youtube_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_youtube_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_youtube_id("https://example.com") is None
    assert extract_giphy_id("https://giphy.com/gifs/funny-cat-abc123XYZ") == "abc123XYZ"
    assert extract_giphy_id("https://media.giphy.com/media/abc123/giphy.gif") == "abc123"
    assert extract_giphy_id("https://example.com/gifs/x") is None


def test_media_links_become_embeds():
    html = render("[Watch](https://www.youtube.com/watch?v=dQw4w9WgXcQ)")
    assert 'class="youtube-embed"' in html
    assert "https://www.youtube.com/embed/dQw4w9WgXcQ" in html

    autolinked = render("See https://youtu.be/dQw4w9WgXcQ here")
    assert 'class="youtube-embed"' in autolinked

    gif = embed_media_links('<a href="https://giphy.com/gifs/abc123">gif</a>')
    assert "https://giphy.com/embed/abc123" in gif

    plain = render("[Docs](https://example.com/docs)")
    assert '<a href="https://example.com/docs">Docs</a>' in plain
