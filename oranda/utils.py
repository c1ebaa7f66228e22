"""Utility functions for oranda.

Key functions:
    slugify: Convert page names to URL slugs.
    is_markdown: Check if a path is a Markdown file.
    ensure_clean_dir: Ensure a directory exists and is empty.
    prefixed_url: Apply the configured path prefix to a site-relative URL.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path


def slugify(name: str) -> str:
    """Convert a page name to a slug.

    Args:
        name: Page name or filename stem.

    Returns:
        URL-friendly slug.

    Examples:
        >>> slugify("Getting Started")
        'getting-started'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (.md or .markdown, case-insensitive)."""
    return path.suffix.lower() in (".md", ".markdown")


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
        if path.exists():
            # Fallback for stubborn directories
            for item in path.rglob("*"):
                if item.is_file():
                    item.unlink()
            for item in sorted(
                [p for p in path.rglob("*") if p.is_dir()], reverse=True
            ):
                item.rmdir()
            path.rmdir()
    path.mkdir(parents=True, exist_ok=True)


def prefixed_url(path: str, prefix: str | None) -> str:
    """Return ``path`` under the site's path prefix.

    Args:
        path: Site-relative URL, with or without a leading slash.
        prefix: Optional prefix such as ``my-project``.

    Returns:
        Absolute URL path.

    Examples:
        >>> prefixed_url("funding.html", "oranda")
        '/oranda/funding.html'
    """
    if path.startswith(("http://", "https://", "//")):
        return path
    path = path.lstrip("/")
    if prefix and prefix.strip("/"):
        return f"/{prefix.strip('/')}/{path}"
    return f"/{path}"
