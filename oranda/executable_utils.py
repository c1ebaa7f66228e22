"""Executable discovery utilities for oranda.

External tools (mdbook) may be on the system PATH, installed with cargo into
``~/.cargo/bin``, or installed locally through npm.

Functions:
    find_executable: Locate an executable in PATH, cargo's bin dir or node_modules.
"""

from __future__ import annotations

import shutil
from pathlib import Path


def find_executable(name: str, project_root: Path | None = None) -> str | None:
    """Find an executable in PATH, ``~/.cargo/bin`` or local node_modules.

    Args:
        name: Name of the executable to find (e.g., 'mdbook').
        project_root: Optional project root directory to search for
            local node_modules installations.

    Returns:
        Full path to the executable if found, None otherwise.

    Examples:
        >>> find_executable('mdbook')
        '/home/me/.cargo/bin/mdbook'
    """
    found = shutil.which(name)
    if found:
        return found

    cargo = Path.home() / ".cargo" / "bin" / name
    if cargo.exists():
        return str(cargo)

    if project_root is not None:
        local = project_root / "node_modules" / ".bin" / name
        if local.exists():
            return str(local)

    return None
