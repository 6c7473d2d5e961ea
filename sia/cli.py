"""Command-line interface for Sia.

This module defines the CLI commands using Click framework.
It provides commands for creating new sites and content, building sites,
and running the development server.

Commands:
- init: Scaffold a new Sia site.
- build: Build the site into the output directory.
- dev: Run development server with live reload.
- new: Create a new post, page or note.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import click
import questionary
import yaml

from . import __version__
from .config import load_config
from .utils import slugify

CONTENT_TYPES = {"post": "posts", "page": "pages", "note": "notes"}
DATED_TYPES = ("post", "note")
SCAFFOLD_DIRS = (
    "src/posts",
    "src/pages",
    "src/notes",
    "src/images",
    "_layouts",
    "_includes",
    "styles",
)

INIT_DEFAULTS = {
    "description": "A personal blog",
    "author": "Anonymous",
    "url": "http://localhost:3000",
}

GITIGNORE = """\
node_modules/
dist/
dist.staging/
dist.previous/
.DS_Store
__pycache__/
"""


@click.group()
@click.version_option(version=__version__, prog_name="sia")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Sia static site generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


@cli.command()
@click.argument("directory", required=False, default=".")
@click.option("--yes", "-y", is_flag=True, help="Skip prompts and use defaults")
def init(directory: str, yes: bool):
    """Create a new Sia site."""
    target = Path(directory).resolve()
    name = "my-site" if directory == "." else Path(directory).name

    if directory != "." and target.exists() and any(target.iterdir()) and not yes:
        proceed = questionary.confirm(
            f'Directory "{directory}" already exists. Continue anyway?',
            default=False,
            style=_questionary_style(),
        ).ask()
        if not proceed:
            raise click.Abort()

    answers = _init_defaults(name) if yes else _ask_init_questions(name)
    written = init_site(target, answers)
    for path in written:
        click.echo(f"  created {path.relative_to(target)}")
    click.echo(f"New Sia site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option("--no-clean", is_flag=True, help="Keep existing files in the output directory")
@click.option("--workers", type=int, default=None, help="Load collections in parallel")
def build(drafts: bool, no_clean: bool, workers: int | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    try:
        result = build_site(
            project_root, show_drafts=drafts, clean=not no_clean, max_workers=workers
        )
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        rel_path = _relative(exc.source_path, project_root)
        click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(f"Built {result.pages_written} pages into {result.output_dir}")
    if result.site_data.warnings:
        click.echo(
            click.style(f"{len(result.site_data.warnings)} warnings, see log above", fg="yellow")
        )


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
@click.option(
    "--port",
    "-p",
    type=int,
    required=False,
    help="Port to run the dev server (overrides _config.yml)",
)
def dev(drafts: bool, port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    server = DevServer(project_root, http_port=port, show_drafts=True if drafts else None)
    server.start()


@cli.command()
@click.argument(
    "content_type", metavar="TYPE", required=False, type=click.Choice(list(CONTENT_TYPES))
)
@click.argument("title", required=False)
@click.option("--tags", "-t", default=None, help="Comma-separated tags")
@click.option("--draft", "-d", is_flag=True, help="Save as draft")
@click.option("--quick", "-q", is_flag=True, help="Skip prompts and use defaults")
def new(content_type: str | None, title: str | None, tags: str | None, draft: bool, quick: bool):
    """Create new content (post, page, note)."""
    project_root = Path.cwd()

    if content_type is None:
        if quick:
            content_type = "post"
        else:
            content_type = questionary.select(
                "What would you like to create?",
                choices=list(CONTENT_TYPES),
                style=_questionary_style(),
            ).ask()
            if content_type is None:
                raise click.Abort()

    if title is None and not quick and content_type != "note":
        title = questionary.text(
            "Title:",
            validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
            style=_questionary_style(),
        ).ask()
        if title is None:
            raise click.Abort()

    if tags is None and not quick and content_type in DATED_TYPES:
        tags = questionary.text("Tags (comma-separated):", style=_questionary_style()).ask()
        if tags is None:
            raise click.Abort()

    path = create_content(
        project_root,
        content_type,
        title=title,
        tags=[t.strip() for t in (tags or "").split(",") if t.strip()],
        draft=draft,
    )
    click.echo(f"Created {_relative(path, project_root)}")


def _relative(path: Path, root: Path) -> Path:
    try:
        return path.resolve().relative_to(root.resolve())
    except ValueError:
        return path


def _init_defaults(name: str) -> dict[str, Any]:
    return {"title": name, "sample": True, **INIT_DEFAULTS}


def _ask_init_questions(name: str) -> dict[str, Any]:
    style = _questionary_style()
    answers = questionary.form(
        title=questionary.text(
            "Site title:", default=name.replace("-", " ").capitalize(), style=style
        ),
        description=questionary.text(
            "Site description:", default=INIT_DEFAULTS["description"], style=style
        ),
        author=questionary.text("Author name:", default=INIT_DEFAULTS["author"], style=style),
        url=questionary.text(
            "Site URL (for production):", default=INIT_DEFAULTS["url"], style=style
        ),
        sample=questionary.confirm("Include sample content?", default=True, style=style),
    ).ask()
    if not answers or not answers.get("title"):
        raise click.Abort()
    return answers


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def _frontmatter(data: dict[str, Any]) -> str:
    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=None)
    return f"---\n{dumped}---\n"


def _site_config(answers: dict[str, Any]) -> dict[str, Any]:
    return {
        "site": {
            "title": answers["title"],
            "description": answers["description"],
            "url": answers["url"],
            "author": answers["author"],
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
                "sortBy": "date",
                "sortOrder": "desc",
            },
            "pages": {"path": "pages", "layout": "page", "permalink": "/:slug/"},
            "notes": {
                "path": "notes",
                "layout": "note",
                "permalink": "/notes/:slug/",
                "sortBy": "date",
                "sortOrder": "desc",
            },
        },
        "pagination": {"size": 10},
        "server": {"port": 3000},
    }


def _sample_files(answers: dict[str, Any], today: str) -> dict[str, str]:
    post = _frontmatter(
        {"title": "Hello World", "date": today, "tags": ["welcome", "first-post"]}
    ) + (
        "\nWelcome to my new blog! This is my first post.\n\n"
        "## What's Next?\n\n"
        '- Write more posts using `sia new post "My Post Title"`\n'
        "- Customize the theme by adding files to `_layouts/` and `_includes/`\n"
        "- Deploy the `dist/` folder to your favorite static host\n\n"
        "Happy writing! :rocket:\n"
    )
    about = _frontmatter({"title": "About", "layout": "page"}) + (
        f"\nHello! I'm {answers['author']}. Welcome to my corner of the internet.\n\n"
        "This site supports markdown with front matter, posts, pages and notes,\n"
        "tags, pagination and an RSS feed.\n"
    )
    note = _frontmatter({"date": today, "tags": ["notes"]}) + (
        "\nNotes are short thoughts and quick updates. :sparkles:\n"
    )
    return {
        f"src/posts/{today}-hello-world.md": post,
        "src/pages/about.md": about,
        f"src/notes/{today}-first-note.md": note,
    }


def init_site(root: Path, answers: dict[str, Any], today: str | None = None) -> list[Path]:
    """Create the directory structure and files for a new Sia site.

    Args:
        root: Root directory for the new site.
        answers: Site title, description, author, url and whether to add
            sample content.
        today: Date used for sample content, as YYYY-MM-DD.

    Returns:
        Files written.
    """
    today = today or datetime.now().strftime("%Y-%m-%d")
    for folder in SCAFFOLD_DIRS:
        (root / folder).mkdir(parents=True, exist_ok=True)

    files = {
        "_config.yml": yaml.safe_dump(_site_config(answers), sort_keys=False),
        ".gitignore": GITIGNORE,
        "src/images/.gitkeep": "# Add your images here\n",
    }
    if answers.get("sample", True):
        files.update(_sample_files(answers, today))

    written = []
    for rel, content in files.items():
        path = root / rel
        path.write_text(content, encoding="utf-8")
        written.append(path)
    return written


def create_content(
    root: Path,
    content_type: str,
    title: str | None = None,
    tags: list[str] | None = None,
    draft: bool = False,
    now: datetime | None = None,
) -> Path:
    """Write a new content file into the matching collection directory.

    Posts and notes get a date-prefixed filename and a ``date`` field; pages
    get neither.

    Returns:
        Path of the new file.

    Raises:
        click.ClickException: If the type is unknown or the file exists.
    """
    if content_type not in CONTENT_TYPES:
        raise click.ClickException(f"Unknown content type: {content_type}")
    now = now or datetime.now()
    config = load_config(root)
    collection = config.collections.get(CONTENT_TYPES[content_type])
    folder = collection.path if collection is not None else CONTENT_TYPES[content_type]
    target_dir = config.input_dir / folder

    if content_type == "note" and not title:
        slug = f"note-{now:%H%M%S}"
    else:
        title = title or "Untitled"
        slug = slugify(title) or "untitled"
    filename = f"{now:%Y-%m-%d}-{slug}.md" if content_type in DATED_TYPES else f"{slug}.md"
    path = target_dir / filename
    if path.exists():
        raise click.ClickException(f"File already exists: {_relative(path, root)}")

    frontmatter: dict[str, Any] = {}
    if title:
        frontmatter["title"] = title
    if content_type in DATED_TYPES:
        frontmatter["date"] = now.isoformat(timespec="seconds")
        frontmatter["tags"] = list(tags or [])
    else:
        frontmatter["layout"] = "page"
    if draft:
        frontmatter["draft"] = True

    body = f"\nWrite your {content_type} here.\n"
    target_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(_frontmatter(frontmatter) + body, encoding="utf-8")
    return path


def main():
    """Entry point for the CLI application."""
    cli()
