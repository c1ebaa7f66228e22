"""Detection of sub-project workspaces next to the site.

A landing page often lives inside a Rust or JavaScript project. Their
manifests (Cargo.toml, package.json) carry the name, version and repository,
so a change to them can change the generated site.

Functions:
    detect_sub_projects: Find at most one manifest per ecosystem.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Found:
    manifest_path: Path


@dataclass(frozen=True)
class NotFound:
    pass


WorkspaceSearch = Found | NotFound

ECOSYSTEM_MANIFESTS = {
    "rust": "Cargo.toml",
    "javascript": "package.json",
}


@dataclass(frozen=True)
class SubProjects:
    """Result of a workspace search, one entry per supported ecosystem."""

    rust: WorkspaceSearch = NotFound()
    javascript: WorkspaceSearch = NotFound()

    def manifests(self) -> list[Path]:
        """Return found manifest paths in ecosystem order."""
        return [
            search.manifest_path
            for search in (self.rust, self.javascript)
            if isinstance(search, Found)
        ]


def detect_sub_projects(root_dir: Path) -> SubProjects:
    """Search ``root_dir`` and its ancestors for project manifests.

    The search walks up to the enclosing git repository root. Outside of a
    git repository only ``root_dir`` itself is searched.

    Args:
        root_dir: Directory to start searching from.

    Returns:
        SubProjects with the nearest manifest for each ecosystem.
    """
    candidates = _search_dirs(Path(root_dir).resolve())
    found = {}
    for ecosystem, manifest in ECOSYSTEM_MANIFESTS.items():
        found[ecosystem] = NotFound()
        for directory in candidates:
            path = directory / manifest
            if path.is_file():
                found[ecosystem] = Found(path)
                break
    return SubProjects(**found)


def _search_dirs(start: Path) -> list[Path]:
    dirs = [start, *start.parents]
    for index, directory in enumerate(dirs):
        if (directory / ".git").exists():
            return dirs[: index + 1]
    return [start]
