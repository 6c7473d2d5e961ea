from datetime import datetime
from pathlib import Path

import pytest

from sia.content import ContentItem, ContentLoader, FileContentLoader
from sia.extractors import (
    CompositeMetadataExtractor,
    DateExtractor,
    ParseError,
    SlugExtractor,
    TitleExtractor,
    parse_frontmatter,
)
from sia.protocols import ContentRenderer, ContentSource, MetadataExtractor, TemplateRenderer
from sia.renderers import MarkdownRenderer


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_frontmatter_splits_metadata_and_body():
    meta, body = parse_frontmatter("---\ntitle: Hi\ntags: [a, b]\n---\nBody text\n")
    assert meta == {"title": "Hi", "tags": ["a", "b"]}
    assert body == "Body text\n"

    meta, body = parse_frontmatter("No front matter here")
    assert meta == {}
    assert body == "No front matter here"

    meta, body = parse_frontmatter("---\n---\nEmpty block")
    assert meta == {}
    assert body == "Empty block"


@pytest.mark.parametrize(
    "text",
    [
        "---\ntitle: [unclosed\n---\nbody",
        "---\n- just\n- a list\n---\nbody",
        "---\ntitle: never closed\nbody",
    ],
)
def test_parse_frontmatter_rejects_malformed_blocks(text):
    with pytest.raises(ParseError):
        parse_frontmatter(text)


def test_loader_reads_all_fields(tmp_path):
    path = write(
        tmp_path / "posts" / "2024-03-05-hello-world.md",
        "---\ntitle: Hello World\ntags: python, web\nauthor: Ada\n---\n"
        "# Heading\n\nFirst paragraph of the post.\n\nMore text.\n",
    )
    item = ContentLoader().load(path)
    assert item.title == "Hello World"
    assert item.slug == "hello-world"
    assert item.date == datetime(2024, 3, 5)
    assert item.tags == ["python", "web"]
    assert item.draft is False
    assert item.excerpt == "First paragraph of the post."
    assert '<h1 id="heading">Heading</h1>' in item.content
    assert item.raw_body.startswith("# Heading")
    # unknown front matter keys are reachable as attributes and via get()
    assert item.author == "Ada"
    assert item.get("missing", "fallback") == "fallback"
    with pytest.raises(AttributeError):
        item.missing


def test_loader_front_matter_overrides(tmp_path):
    path = write(
        tmp_path / "2024-01-01-ignored-name.md",
        "---\nslug: Custom Slug!\ndate: 2023-06-07\nexcerpt: Given excerpt\ndraft: 'yes'\n"
        "layout: special\n---\nBody\n",
    )
    item = ContentLoader().load(path)
    assert item.slug == "custom-slug"
    assert item.date == datetime(2023, 6, 7)
    assert item.excerpt == "Given excerpt"
    assert item.draft is True
    assert item.layout == "special"
    assert item.title == "Ignored Name"


def test_loader_falls_back_to_now_for_undated_file(tmp_path):
    path = write(tmp_path / "about.md", "About page body")
    extractor = CompositeMetadataExtractor(
        [TitleExtractor(), SlugExtractor(), DateExtractor(now=datetime(2030, 1, 1))]
    )
    metadata = extractor.extract({}, "About page body", path)
    assert metadata == {"title": "About", "slug": "about", "date": datetime(2030, 1, 1)}


def test_title_from_first_heading(tmp_path):
    path = write(tmp_path / "page.md", "Intro line\n\n# Real Title\n\ntext")
    assert ContentLoader().load(path).title == "Real Title"


def test_loader_raises_parse_error_with_path(tmp_path):
    bad_date = write(tmp_path / "bad-date.md", "---\ndate: tomorrow-ish\n---\nx")
    with pytest.raises(ParseError) as excinfo:
        ContentLoader().load(bad_date)
    assert excinfo.value.source_path == bad_date

    bad_yaml = write(tmp_path / "bad-yaml.md", "---\ntitle: [x\n---\nx")
    with pytest.raises(ParseError) as excinfo:
        ContentLoader().load(bad_yaml)
    assert excinfo.value.source_path == bad_yaml

    binary = tmp_path / "binary.md"
    binary.write_bytes(b"\xff\xfe\x00bad")
    with pytest.raises(ParseError):
        ContentLoader().load(binary)


def test_loader_uses_injected_collaborators(tmp_path):
    class UpperRenderer:
        def render(self, markdown):
            return markdown.upper()

    class FixedExtractor:
        def extract(self, frontmatter, body, path):
            return {
                "title": "T",
                "slug": "s",
                "date": datetime(2020, 1, 1),
                "excerpt": "",
                "tags": [],
                "draft": False,
            }

    path = write(tmp_path / "x.md", "hello")
    item = ContentLoader(UpperRenderer(), FixedExtractor()).load(path)
    assert item.content == "HELLO"
    assert item.slug == "s"


def test_file_content_loader_lists_sorted_markdown(tmp_path):
    write(tmp_path / "b.md", "b")
    write(tmp_path / "a.markdown", "a")
    write(tmp_path / "nested" / "c.md", "c")
    write(tmp_path / "notes.txt", "skip")
    write(tmp_path / ".hidden" / "d.md", "skip")
    write(tmp_path / ".swap.md", "skip")
    files = FileContentLoader().iter_files(tmp_path)
    assert [p.relative_to(tmp_path).as_posix() for p in files] == [
        "a.markdown",
        "b.md",
        "nested/c.md",
    ]
    assert FileContentLoader().iter_files(tmp_path / "missing") == []


def test_protocols_are_satisfied():
    from sia.templates import TemplateEngine

    assert isinstance(MarkdownRenderer(), ContentRenderer)
    assert isinstance(CompositeMetadataExtractor(), MetadataExtractor)
    assert isinstance(FileContentLoader(), ContentSource)
    assert issubclass(TemplateEngine, TemplateRenderer)
    assert not isinstance(object(), ContentRenderer)


def test_content_item_dataclass_defaults():
    item = ContentItem(
        title="t",
        slug="t",
        date=datetime(2024, 1, 1),
        raw_body="",
        content="",
        excerpt="",
        tags=[],
        draft=False,
        path=Path("t.md"),
    )
    assert item.url == ""
    assert item.output_path is None
    assert item.frontmatter == {}
