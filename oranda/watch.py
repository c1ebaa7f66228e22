"""File watching for ``oranda dev``.

Three pieces turn a project into a stream of rebuild triggers:

- WatchSetBuilder: decides which paths can influence the generated site.
- ChangeWatcher: subscribes to those paths with watchdog and pushes raw
  events (or errors) onto one unbounded queue.
- Debouncer: blocks for the first event, waits a fixed delay, then drains
  everything else that arrived into a single ChangeBatch.
"""

from __future__ import annotations

import os
import queue
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from . import message
from .config import Config
from .errors import (
    DocBookResolutionError,
    WatchChannelClosed,
    WatchSubscriptionError,
    WatchTransportError,
)
from .mdbook import custom_theme, resolve_book_paths
from .project import detect_sub_projects
from .protocols import BookResolver, SubProjectDetector


@dataclass(frozen=True)
class PathChanged:
    path: Path


@dataclass(frozen=True)
class WatchError:
    cause: Exception


RawEvent = PathChanged | WatchError

# Posted by ChangeWatcher.stop(); never seen by anything but the Debouncer
CLOSED = object()


@dataclass
class WatchSet:
    """Ordered paths that influence the site. Duplicates are allowed."""

    paths: list[Path] = field(default_factory=list)

    def append(self, path: str | Path) -> None:
        self.paths.append(Path(path))

    def extend(self, paths: Iterable[str | Path]) -> None:
        for path in paths:
            self.append(path)

    def existing(self) -> list[Path]:
        """Return the paths that exist right now, in order."""
        return [path for path in self.paths if path.exists()]

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)


class WatchSetBuilder:
    """Collects every path whose change should trigger a rebuild.

    Each ``add_*`` step appends one source's contribution and may add
    nothing when its feature is unused. ``build()`` runs them all in a fixed
    order: content source, config file, include paths, funding files,
    additional pages, mdbook, sub-project manifests.

    Attributes:
        config: The loaded site configuration.
        config_path: The config file, watched even when it does not exist yet.
        include_paths: Extra user-supplied paths, watched before the config's own.
    """

    def __init__(
        self,
        config: Config,
        config_path: Path | None = None,
        include_paths: Iterable[str | Path] = (),
        detect_projects: SubProjectDetector = detect_sub_projects,
        resolve_book: BookResolver = resolve_book_paths,
    ):
        self.config = config
        self.config_path = config_path or config.config_path
        self.include_paths = list(include_paths)
        self.detect_projects = detect_projects
        self.resolve_book = resolve_book
        self.watch_set = WatchSet()

    def build(self) -> WatchSet:
        self.watch_set = WatchSet()
        self.add_content_source()
        self.add_config_file()
        self.add_include_paths()
        self.add_funding()
        self.add_additional_pages()
        self.add_book()
        self.add_sub_projects()
        return self.watch_set

    def add_content_source(self) -> None:
        self.watch_set.append(self.config.readme_path)

    def add_config_file(self) -> None:
        self.watch_set.append(self.config_path)

    def add_include_paths(self) -> None:
        for path in [*self.include_paths, *self.config.dev.include_paths]:
            self.watch_set.append(self.config.resolve(path))

    def add_funding(self) -> None:
        funding = self.config.components.funding
        if funding is None:
            return
        for path in (funding.yml_path, funding.md_path):
            if path:
                self.watch_set.append(self.config.resolve(path))

    def add_additional_pages(self) -> None:
        for path in self.config.build.additional_pages.values():
            self.watch_set.append(self.config.resolve(path))

    def add_book(self) -> None:
        book = self.config.components.mdbook
        if book is None:
            return
        try:
            paths = self.resolve_book(book, self.config.project_root)
        except DocBookResolutionError as exc:
            message.warning(f"Not watching mdbook: {exc}")
            return
        self.watch_set.append(paths.manifest)
        self.watch_set.append(paths.source_dir)
        # mdbook reports the theme dir whether or not it exists
        if custom_theme(book, self.config.styles.theme) is None:
            self.watch_set.append(paths.theme_dir)

    def add_sub_projects(self) -> None:
        projects = self.detect_projects(self.config.project_root)
        self.watch_set.extend(projects.manifests())


class _QueueHandler(FileSystemEventHandler):
    """watchdog handler that forwards events for watched paths onto a queue.

    Attributes:
        files: Individually watched files.
        dirs: Recursively watched directories.
    """

    def __init__(self, channel: queue.Queue):
        super().__init__()
        self.channel = channel
        self.files: set[Path] = set()
        self.dirs: list[Path] = []

    def wants(self, path: Path) -> bool:
        if path in self.files:
            return True
        return any(path == d or d in path.parents for d in self.dirs)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type in ("opened", "closed_no_write"):
            return
        self._put(event.src_path)
        dest = getattr(event, "dest_path", "")
        if dest:
            self._put(dest)

    def _put(self, raw_path: str | bytes) -> None:
        try:
            path = Path(os.fsdecode(raw_path)).resolve()
        except (TypeError, ValueError, OSError) as exc:
            self.channel.put(
                WatchError(WatchTransportError(f"undecodable path {raw_path!r}: {exc}"))
            )
            return
        if self.wants(path):
            self.channel.put(PathChanged(path))


class ChangeWatcher:
    """Recursive filesystem subscriptions feeding a single event queue.

    Attributes:
        channel: Unbounded queue of RawEvent, consumed by one Debouncer.
        watched: Paths successfully subscribed, in subscription order.
    """

    def __init__(self, channel: queue.Queue | None = None, observer=None):
        self.channel = channel if channel is not None else queue.Queue()
        self._observer = observer if observer is not None else Observer()
        self._handler = _QueueHandler(self.channel)
        self.watched: list[Path] = []

    def subscribe(self, path: Path, recursive: bool = True) -> None:
        """Watch ``path`` for changes.

        A directory is watched directly. A file is watched through a
        non-recursive watch on its parent, and only its own events are kept.

        Raises:
            WatchSubscriptionError: If the OS refuses the watch.
        """
        # Some backends (FSEvents) report real paths, so compare resolved ones
        absolute = Path(path).resolve()
        is_dir = absolute.is_dir()
        target = absolute if is_dir else absolute.parent
        try:
            self._observer.schedule(
                self._handler, str(target), recursive=recursive and is_dir
            )
        except OSError as exc:
            raise WatchSubscriptionError(path, exc) from exc
        if is_dir:
            self._handler.dirs.append(absolute)
        else:
            self._handler.files.add(absolute)
        self.watched.append(path)

    def subscribe_all(self, paths: Iterable[Path]) -> list[Path]:
        """Subscribe to each path, reporting failures as warnings.

        Returns:
            The paths that were subscribed.

        Raises:
            WatchSubscriptionError: If paths were given but none could be watched.
        """
        paths = list(paths)
        failures = []
        for path in paths:
            try:
                self.subscribe(path)
            except WatchSubscriptionError as exc:
                message.warning(str(exc))
                failures.append(exc)
        if paths and not self.watched:
            raise failures[-1]
        return list(self.watched)

    def start(self) -> None:
        self._observer.start()

    def stop(self) -> None:
        self._observer.stop()
        self._observer.join()
        self.channel.put(CLOSED)

    def __enter__(self) -> ChangeWatcher:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


@dataclass
class ChangeBatch:
    """Everything observed within one debounce window.

    A batch is falsy when it holds no changed paths, even if it holds errors.
    """

    paths: list[Path] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.paths)


def _report_watch_error(cause: Exception) -> None:
    message.warning(f"Error while watching for changes: {cause}")


class Debouncer:
    """Turns a bursty raw event queue into one ChangeBatch per burst.

    Attributes:
        channel: Queue of RawEvent written by a ChangeWatcher.
        delay: Seconds to wait after the first event before draining.
        on_error: Called once per WatchError seen.
    """

    def __init__(
        self,
        channel: queue.Queue,
        delay: float = 1.0,
        on_error: Callable[[Exception], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.channel = channel
        self.delay = delay
        self.on_error = on_error or _report_watch_error
        self._sleep = sleep
        self._closed = False

    def next_batch(self) -> ChangeBatch:
        """Block until something changes, then collect the whole burst.

        Raises:
            WatchChannelClosed: If the watcher has stopped.
        """
        if self._closed:
            raise WatchChannelClosed()
        first = self.channel.get()
        if first is CLOSED:
            self._closed = True
            raise WatchChannelClosed()
        self._sleep(self.delay)
        events = [first]
        while True:
            try:
                event = self.channel.get_nowait()
            except queue.Empty:
                break
            if event is CLOSED:
                self._closed = True
                break
            events.append(event)
        return self._collect(events)

    def _collect(self, events: list[RawEvent]) -> ChangeBatch:
        batch = ChangeBatch()
        for event in events:
            if isinstance(event, WatchError):
                self.on_error(event.cause)
                batch.errors.append(event.cause)
            else:
                batch.paths.append(event.path)
        return batch

    def batches(self) -> Iterator[ChangeBatch]:
        """Yield batches forever, including empty ones."""
        while True:
            yield self.next_batch()
