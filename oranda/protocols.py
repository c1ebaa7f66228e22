"""Protocol definitions for oranda.

The dev loop only talks to its collaborators through these interfaces, so
tests can hand it fakes and the real implementations stay swappable.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .config import MdBookConfig
    from .mdbook import BookPaths
    from .project import SubProjects


@runtime_checkable
class BuildInvoker(Protocol):
    """Performs a full, synchronous site build.

    Implementations must be idempotent and safe to call repeatedly; they
    raise BuildError (or ConfigError) on failure.
    """

    def __call__(self, project_root: Path | None = None, config_path: Path | None = None) -> Any:
        ...


@runtime_checkable
class SiteServe(Protocol):
    """Serves the generated site until the process exits.

    Raises ServeError when the server cannot start.
    """

    def __call__(
        self,
        port: int | None = None,
        project_root: Path | None = None,
        config_path: Path | None = None,
    ) -> None:
        ...


@runtime_checkable
class SubProjectDetector(Protocol):
    def __call__(self, root_dir: Path) -> SubProjects:
        ...


@runtime_checkable
class BookResolver(Protocol):
    def __call__(self, book: MdBookConfig, project_root: Path) -> BookPaths:
        """Locate the book's files, raising DocBookResolutionError when it cannot."""
        ...
