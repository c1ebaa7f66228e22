"""Error types for oranda.

Every error raised on purpose by oranda derives from OrandaError, so the CLI
can report it and exit non-zero without a traceback.

Fatal vs. recoverable:
- ConfigError, DocBookResolutionError (when the book is required) and a
  failed first build abort the process.
- BuildError during a dev rebuild, WatchTransportError and per-path
  WatchSubscriptionError are reported and the dev loop carries on.
- WatchChannelClosed ends the dev loop, since nothing can be watched anymore.
"""

from __future__ import annotations

from pathlib import Path


class OrandaError(Exception):
    """Base class for all oranda errors."""


class ConfigError(OrandaError):
    """The configuration file could not be read or is invalid.

    Attributes:
        path: Path to the offending config file.
        message: Human-readable error message.
    """

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class BuildError(OrandaError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class ServeError(OrandaError):
    """The file server could not be started."""

    def __init__(self, port: int, cause: Exception):
        self.port = port
        self.cause = cause
        super().__init__(f"could not serve on port {port}: {cause}")


class DocBookResolutionError(OrandaError):
    """The mdbook directory or its book.toml could not be located or read."""

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class WatchSubscriptionError(OrandaError):
    """The OS refused to watch a path (too many watches, permission denied)."""

    def __init__(self, path: Path, cause: Exception | None = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"could not watch {path}{detail}")


class WatchTransportError(OrandaError):
    """A change notification could not be delivered or decoded."""


class WatchChannelClosed(OrandaError):
    """The change event channel was closed while the dev loop was waiting."""

    def __init__(self):
        super().__init__("file watcher stopped unexpectedly; no more changes can be seen")
