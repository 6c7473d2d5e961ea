import logging
from pathlib import Path

import pytest
from jinja2 import TemplateSyntaxError

from sia.assets import AssetPipeline, copy_assets, is_asset
from sia.build import BuildError, _format_error_message, build_site
from sia.config import load_config
from sia.hooks import HookRegistry
from sia.themes import resolve_theme


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def create_project(tmp_path: Path, posts: int = 3) -> Path:
    project = tmp_path
    (project / "_config.yml").write_text(
        "site:\n"
        "  title: Test Site\n"
        "  url: https://example.com\n"
        "pagination:\n"
        "  size: 2\n",
        encoding="utf-8",
    )
    src = project / "src"
    for day in range(1, posts + 1):
        write(
            src / "posts" / f"2024-01-0{day}-post-{day}.md",
            f"---\ntitle: Post {day}\ntags: [Python]\n---\nBody of post {day}.\n",
        )
    write(src / "pages" / "about.md", "---\ntitle: About\n---\nAbout the site.\n")
    write(src / "notes" / "2024-02-01-thought.md", "---\ntags: [misc]\n---\nA short note.\n")
    write(src / "posts" / "2024-01-09-draft.md", "---\ntitle: Draft\ndraft: true\n---\nWIP\n")
    (src / "images").mkdir()
    (src / "images" / "logo.png").write_bytes(b"\x89PNG")
    return project


def test_build_site_writes_pages_listings_and_feeds(tmp_path):
    project = create_project(tmp_path)
    result = build_site(project)
    out = project / "dist"

    assert result.output_dir == out
    for rel in [
        "index.html",
        "blog/index.html",
        "blog/page/2/index.html",
        "blog/post-1/index.html",
        "about/index.html",
        "notes/index.html",
        "notes/thought/index.html",
        "tags/index.html",
        "tags/python/index.html",
        "tags/python/page/2/index.html",
        "tags/misc/index.html",
        "404.html",
        "feed.xml",
        "sitemap.xml",
        "styles/main.css",
        "images/logo.png",
    ]:
        assert (out / rel).exists(), rel

    assert not (out / "blog" / "page" / "1").exists()
    assert not (out / "blog" / "draft").exists()
    # 5 items + home + 2 blog pages + notes + tags + 3 tag pages + 404
    assert result.pages_written == 14

    blog = (out / "blog" / "index.html").read_text(encoding="utf-8")
    assert blog.index("Post 3") < blog.index("Post 2")
    assert "Post 1" not in blog
    assert 'href="/blog/page/2/"' in blog

    post = (out / "blog" / "post-1" / "index.html").read_text(encoding="utf-8")
    assert "<p>Body of post 1.</p>" in post

    feed = (out / "feed.xml").read_text(encoding="utf-8")
    assert "<link>https://example.com/blog/post-3/</link>" in feed
    assert "Draft" not in feed


def test_build_site_includes_drafts_when_asked(tmp_path):
    project = create_project(tmp_path)
    build_site(project, show_drafts=True)
    assert (project / "dist" / "blog" / "draft" / "index.html").exists()


def test_build_cleans_output_unless_disabled(tmp_path):
    project = create_project(tmp_path)
    stale = write(project / "dist" / "stale.html", "old")
    build_site(project, clean=False)
    assert stale.exists()
    build_site(project)
    assert not stale.exists()


def test_build_into_override_dir(tmp_path):
    project = create_project(tmp_path)
    target = tmp_path / "elsewhere"
    result = build_site(project, output_dir_override=target)
    assert result.output_dir == target
    assert (target / "index.html").exists()
    assert not (project / "dist").exists()


def test_template_error_names_item(tmp_path):
    project = create_project(tmp_path)
    write(project / "_layouts" / "post.html", "{{ page.title | nosuchfilter }}")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert "nosuchfilter" in excinfo.value.message

    write(project / "_layouts" / "post.html", "{% for x in %}")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path.name.startswith("2024-01-0")
    assert excinfo.value.message.startswith("Template syntax error")


def test_undefined_in_listing_names_template(tmp_path):
    project = create_project(tmp_path)
    write(project / "_layouts" / "blog.html", "{{ missing.attribute }}")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path == Path("blog")
    assert excinfo.value.message.startswith("Undefined variable")


def test_config_and_input_errors_become_build_errors(tmp_path):
    (tmp_path / "_config.yml").write_text("pagination:\n  size: -1\n", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(tmp_path)
    assert excinfo.value.source_path == tmp_path / "_config.yml"

    (tmp_path / "_config.yml").write_text("site:\n  title: x\n", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(tmp_path)
    assert excinfo.value.source_path == tmp_path / "src"


def test_format_error_message():
    exc = TemplateSyntaxError("unexpected end", lineno=3)
    assert _format_error_message(exc) == "Template syntax error on line 3: unexpected end"
    assert _format_error_message(ValueError("bad")) == "ValueError: bad"


def test_build_hooks_run_and_respect_disabled_plugins(tmp_path):
    project = create_project(tmp_path)
    events = []
    hooks = HookRegistry()
    hooks.register("before_build", lambda config: events.append("before"))
    hooks.register("after_build", lambda result: events.append(result.pages_written))
    build_site(project, hooks=hooks)
    assert events == ["before", 14]

    with open(project / "_config.yml", "a", encoding="utf-8") as f:
        f.write("plugins:\n  enabled: false\n")
    events.clear()
    build_site(project, hooks=hooks)
    assert events == []


def test_parallel_build_matches_serial(tmp_path):
    project = create_project(tmp_path)
    serial = build_site(project, output_dir_override=tmp_path / "a")
    parallel = build_site(project, output_dir_override=tmp_path / "b", max_workers=3)
    assert serial.pages_written == parallel.pages_written
    assert (tmp_path / "a" / "blog" / "index.html").read_text(encoding="utf-8") == (
        tmp_path / "b" / "blog" / "index.html"
    ).read_text(encoding="utf-8")


def test_asset_pipeline_copies_and_overrides_styles(tmp_path, caplog):
    project = create_project(tmp_path)
    write(project / "src" / "posts" / "diagram.svg", "<svg/>")
    write(project / "src" / "posts" / ".hidden.png", "x")
    write(project / "styles" / "custom.css", "body{}")
    write(project / "static" / "robots.txt", "User-agent: *")
    write(project / "vendor" / "extra.js", "1")
    (project / "favicon.ico").write_bytes(b"\x00")
    with open(project / "_config.yml", "a", encoding="utf-8") as f:
        f.write("assets:\n  js: [vendor/extra.js, 'https://cdn.example.com/x.js', missing.js]\n")

    config = load_config(project)
    out = tmp_path / "out"
    with caplog.at_level(logging.WARNING):
        written = AssetPipeline(config, resolve_theme("main"), out).run()

    assert Path("posts/diagram.svg") in written
    assert (out / "images" / "logo.png").exists()
    assert not (out / "posts" / ".hidden.png").exists()
    assert not (out / "posts" / "2024-01-01-post-1.md").exists()
    # user styles replace the theme's
    assert (out / "styles" / "custom.css").exists()
    assert not (out / "styles" / "main.css").exists()
    assert (out / "static" / "robots.txt").exists()
    assert (out / "favicon.ico").exists()
    assert (out / "vendor" / "extra.js").exists()
    assert "missing.js" in caplog.text


def test_copy_assets_helpers(tmp_path):
    assert is_asset(Path("a.WOFF2"))
    assert not is_asset(Path("a.md"))
    assert copy_assets(tmp_path / "missing", tmp_path / "out") == []
