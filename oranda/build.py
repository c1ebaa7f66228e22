"""Site building functionality for oranda.

This module turns a project's README, additional pages, funding files and
mdbook into a static site in the dist directory.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from jinja2 import TemplateError

from . import message
from .config import Config, load_config
from .errors import BuildError
from .funding import funding_links, load_funding
from .mdbook import build_book
from .renderers import MarkdownRenderer
from .templates import Page, TemplateEngine
from .utils import ensure_clean_dir, is_markdown, slugify

INDEX_PAGE = "index.html"
FUNDING_PAGE = "funding.html"
BOOK_DIR = "book"


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        pages: Pages written to the dist dir, index first.
        output_dir: Directory where the site was built.
        book_dir: Where the mdbook was built, if there is one.
    """

    pages: list[Page]
    output_dir: Path
    book_dir: Path | None = None


def build_site(
    project_root: Path | None = None,
    config_path: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project. Defaults to the cwd.
        config_path: Config file. Defaults to oranda.json in the project root.

    Returns:
        BuildResult describing what was written.

    Raises:
        ConfigError: If the config file is invalid.
        BuildError: If any page, stylesheet or the book cannot be built.
    """
    config = load_config(config_path, project_root)
    output_dir = config.dist_dir
    ensure_clean_dir(output_dir)

    renderer = MarkdownRenderer()
    pages = [_index_page(config, renderer)]
    pages.extend(_additional_pages(config, renderer))
    engine = TemplateEngine(config)
    engine.favicon_url = _copy_favicon(config, engine, output_dir)
    funding = _funding_page(config, renderer, engine)
    if funding is not None:
        pages.append(funding)

    for page in pages:
        try:
            rendered = engine.render_page(page, pages)
        except TemplateError as exc:
            raise BuildError(config.resolve("templates"), f"Template error: {exc}", exc) from exc
        _write(output_dir / page.filename, rendered)

    _write(output_dir / "oranda.css", engine.render_css(_additional_css(config)))
    _copy_static(config, output_dir)

    book_dir = None
    if config.components.mdbook is not None:
        book_dir = build_book(
            config.components.mdbook, config.project_root, output_dir / BOOK_DIR
        )
    return BuildResult(pages=pages, output_dir=output_dir, book_dir=book_dir)


def _index_page(config: Config, renderer: MarkdownRenderer) -> Page:
    readme = config.readme_path
    if not readme.exists():
        raise BuildError(readme, "README not found; set project.readme_path in the config")
    html, headings = _render_markdown(readme, renderer)
    title = headings[0].text if headings else config.project.name
    return Page(filename=INDEX_PAGE, title=title, content=html, is_index=True)


def _additional_pages(config: Config, renderer: MarkdownRenderer) -> list[Page]:
    pages = []
    taken = {INDEX_PAGE: "the README", FUNDING_PAGE: "the funding page"}
    for name, rel_path in config.build.additional_pages.items():
        path = config.resolve(rel_path)
        if not is_markdown(path):
            message.warning(
                f"File {rel_path} in additional pages is not markdown and will be skipped"
            )
            continue
        if not path.exists():
            raise BuildError(path, f"additional page '{name}' does not exist")
        filename = f"{slugify(name)}.html"
        if filename in taken:
            raise BuildError(
                path,
                f"additional page '{name}' would be written to {filename}, "
                f"which is already used by {taken[filename]}",
            )
        taken[filename] = f"additional page '{name}'"
        html, _ = _render_markdown(path, renderer)
        pages.append(Page(filename=filename, title=name, content=html))
    return pages


def _funding_page(
    config: Config, renderer: MarkdownRenderer, engine: TemplateEngine
) -> Page | None:
    funding = config.components.funding
    if funding is None:
        return None
    body = ""
    links = []
    if funding.md_path and config.resolve(funding.md_path).exists():
        body, _ = _render_markdown(config.resolve(funding.md_path), renderer)
    if funding.yml_path and config.resolve(funding.yml_path).exists():
        links = funding_links(load_funding(config.resolve(funding.yml_path)))
    if not body and not links:
        return None
    return Page(
        filename=FUNDING_PAGE,
        title="Funding",
        content=engine.render_funding(body, links),
    )


def _render_markdown(path: Path, renderer: MarkdownRenderer):
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise BuildError(path, f"could not read file: {exc}", exc) from exc
    try:
        return renderer.render(content)
    except Exception as exc:
        raise BuildError(path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    return f"{type(exc).__name__}: {exc}"


def _additional_css(config: Config) -> list[str]:
    sheets = []
    for rel_path in config.styles.additional_css:
        path = config.resolve(rel_path)
        try:
            sheets.append(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise BuildError(path, f"could not read stylesheet: {exc}", exc) from exc
    return sheets


def _copy_favicon(config: Config, engine: TemplateEngine, output_dir: Path) -> str | None:
    favicon = config.styles.favicon
    if not favicon:
        return None
    if favicon.startswith(("http://", "https://")):
        return favicon
    path = config.resolve(favicon)
    if not path.is_file():
        raise BuildError(path, "favicon not found")
    shutil.copy2(path, output_dir / path.name)
    return engine.url_for(path.name)


def _copy_static(config: Config, output_dir: Path) -> None:
    static_dir = config.resolve(config.build.static_dir)
    if not static_dir.is_dir():
        return
    shutil.copytree(static_dir, output_dir / static_dir.name, dirs_exist_ok=True)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
