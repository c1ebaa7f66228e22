"""The ``oranda dev`` rebuild loop.

Builds the site, serves it in the background, and rebuilds whenever a
watched file changes. A failed rebuild is reported and the loop keeps
waiting, so the author can fix the mistake and save again.

Key classes:
- RebuildOrchestrator: Start, first build, serve, then wait/rebuild forever.
- ServeTask: Background serve thread whose outcome can be inspected.
"""

from __future__ import annotations

import enum
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from . import message
from .build import build_site
from .config import Config, load_config
from .protocols import BuildInvoker, SiteServe
from .server import serve_site
from .watch import ChangeBatch, ChangeWatcher, Debouncer, WatchSetBuilder


class OrchestratorState(enum.Enum):
    IDLE = "idle"
    BUILDING = "building"
    SERVING = "serving"
    WAITING_FOR_CHANGES = "waiting"


class ServeTask:
    """Runs the site server on a daemon thread and records how it ended.

    The task is never restarted or joined by the dev loop; ``done`` and
    ``error`` exist so a caller can still see that serving stopped.

    Attributes:
        error: The exception the server raised, if any.
    """

    def __init__(self, target: Callable[..., None], **kwargs):
        self._target = target
        self._kwargs = kwargs
        self._thread = threading.Thread(target=self._run, name="oranda-serve", daemon=True)
        self.error: BaseException | None = None

    def _run(self) -> None:
        try:
            self._target(**self._kwargs)
        except Exception as exc:
            self.error = exc
            message.error(f"Server stopped: {exc}")

    def start(self) -> ServeTask:
        self._thread.start()
        return self

    @property
    def done(self) -> bool:
        return self._thread.ident is not None and not self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)


class RebuildOrchestrator:
    """Watches a project and rebuilds its site on every change.

    Attributes:
        project_root: Root directory of the project (None means the cwd).
        config_path: Config file (None means oranda.json in the project root).
        port: Port for the file server (None means the config's dev.port).
        no_first_build: Skip the build before watching starts.
        include_paths: Extra paths to watch.
        state: What the main loop is doing right now.
        watched_paths: Paths that were actually subscribed.
    """

    def __init__(
        self,
        project_root: Path | None = None,
        config_path: Path | None = None,
        port: int | None = None,
        no_first_build: bool = False,
        include_paths: Iterable[str | Path] = (),
        builder: BuildInvoker = build_site,
        server: SiteServe = serve_site,
        watcher: ChangeWatcher | None = None,
        debounce: float | None = None,
    ):
        self.project_root = project_root
        self.config_path = config_path
        self.port = port
        self.no_first_build = no_first_build
        self.include_paths = list(include_paths)
        self.builder = builder
        self.server = server
        self.watcher = watcher if watcher is not None else ChangeWatcher()
        self.debounce = debounce
        self.state = OrchestratorState.IDLE
        self.watched_paths: list[Path] = []
        self.serve_task: ServeTask | None = None
        self.rebuilds = 0

    def run(self) -> None:
        """Run until the process is killed.

        Raises:
            ConfigError: If the config cannot be loaded.
            WatchSubscriptionError: If no path at all could be watched.
            WatchChannelClosed: If the watcher stops delivering events.
            Exception: Anything the first build raises.
        """
        message.info("Starting dev, looking for paths to watch...")
        config = load_config(self.config_path, self.project_root)
        self.start_watching(config)
        try:
            if not self.no_first_build:
                self.state = OrchestratorState.BUILDING
                self.builder(project_root=self.project_root, config_path=self.config_path)
            self.spawn_serve(config)
            delay = self.debounce if self.debounce is not None else config.dev.debounce
            self.wait_loop(Debouncer(self.watcher.channel, delay=delay))
        finally:
            self.watcher.stop()

    def start_watching(self, config: Config) -> list[Path]:
        builder = WatchSetBuilder(config, config.config_path, self.include_paths)
        watch_set = builder.build()
        self.watched_paths = self.watcher.subscribe_all(watch_set.existing())
        self.watcher.start()
        message.info(
            f"Found {len(self.watched_paths)} paths to watch, starting watch..."
        )
        message.debug(f"Files watched: {[str(p) for p in self.watched_paths]}")
        return self.watched_paths

    def spawn_serve(self, config: Config) -> ServeTask:
        port = self.port if self.port is not None else config.dev.port
        self.serve_task = ServeTask(
            self.server,
            port=port,
            project_root=self.project_root,
            config_path=self.config_path,
        ).start()
        self.state = OrchestratorState.SERVING
        return self.serve_task

    def wait_loop(self, debouncer: Debouncer) -> None:
        """Rebuild once per non-empty batch, forever.

        The next batch is only read after the current rebuild has returned,
        so rebuilds never overlap.
        """
        while True:
            self.state = OrchestratorState.WAITING_FOR_CHANGES
            batch = debouncer.next_batch()
            if batch:
                self.rebuild(batch)

    def rebuild(self, batch: ChangeBatch) -> bool:
        """Rebuild the site for one batch; report failures instead of raising.

        Returns:
            True if the build succeeded.
        """
        self.state = OrchestratorState.BUILDING
        self.rebuilds += 1
        message.info(f"Path(s) {[str(p) for p in batch.paths]} changed, rebuilding...")
        try:
            self.builder(project_root=self.project_root, config_path=self.config_path)
        except Exception as exc:
            message.error(f"Rebuild failed: {exc}")
            return False
        message.success("Rebuilt site")
        return True
