"""mdbook documentation support.

Resolves where a configured mdbook keeps its manifest, sources and theme, and
runs the ``mdbook`` executable to build the book into the site.

Key functions:
- resolve_book_paths: Locate book.toml, the source dir and the theme dir.
- custom_theme: Decide whether the site theme is forced onto the book.
- build_book: Run ``mdbook build`` into the dist directory.
"""

from __future__ import annotations

import subprocess
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .config import MdBookConfig
from .errors import BuildError, DocBookResolutionError
from .executable_utils import find_executable

# Site themes that ship an mdbook counterpart
BOOK_THEMES = ("dark", "light", "axodark", "axolight", "hacker", "cupcake")


@dataclass(frozen=True)
class BookPaths:
    """Filesystem layout of an mdbook.

    Attributes:
        root: Directory holding book.toml.
        manifest: The book.toml file.
        source_dir: Markdown sources (``[book].src``).
        theme_dir: Theme overrides (``[output.html].theme``); may not exist.
    """

    root: Path
    manifest: Path
    source_dir: Path
    theme_dir: Path


def resolve_book_paths(book: MdBookConfig, project_root: Path) -> BookPaths:
    """Locate the book's manifest, source directory and theme directory.

    Args:
        book: The mdbook component config.
        project_root: Root the book path is relative to.

    Returns:
        BookPaths for the book.

    Raises:
        DocBookResolutionError: If the book dir or book.toml is missing or invalid.
    """
    root = project_root / book.path
    if not root.is_dir():
        raise DocBookResolutionError(root, "mdbook directory does not exist")
    manifest = root / "book.toml"
    try:
        with open(manifest, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as exc:
        raise DocBookResolutionError(manifest, "book.toml not found") from exc
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise DocBookResolutionError(manifest, f"could not read book.toml: {exc}") from exc

    src = data.get("book", {}).get("src", "src")
    theme = data.get("output", {}).get("html", {}).get("theme", "theme")
    if not isinstance(src, str) or not isinstance(theme, str):
        raise DocBookResolutionError(manifest, "book.src and output.html.theme must be strings")
    return BookPaths(
        root=root,
        manifest=manifest,
        source_dir=root / src,
        theme_dir=root / theme,
    )


def custom_theme(book: MdBookConfig, site_theme: str) -> str | None:
    """Return the theme forced onto the book, or None to keep the book's own."""
    if book.theme and site_theme in BOOK_THEMES:
        return site_theme
    return None


def build_book(book: MdBookConfig, project_root: Path, dest: Path) -> Path:
    """Build the book with the ``mdbook`` executable.

    Args:
        book: The mdbook component config.
        project_root: Root the book path is relative to.
        dest: Output directory for the rendered book.

    Returns:
        The destination directory.

    Raises:
        BuildError: If mdbook is missing or the build fails.
    """
    paths = resolve_book_paths(book, project_root)
    mdbook_bin = find_executable("mdbook", project_root)
    if not mdbook_bin:
        raise BuildError(paths.manifest, "mdbook executable not found on PATH")
    result = subprocess.run(
        [mdbook_bin, "build", str(paths.root), "--dest-dir", str(dest)],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise BuildError(paths.manifest, f"mdbook build failed: {result.stderr.strip()}")
    return dest
