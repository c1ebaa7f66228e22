"""Static file server for oranda.

Serves the dist directory with sane defaults for local authoring:
- Disables caching so rebuilt files show up on reload.
- Rejects directory listings and missing paths with a 404 (serving 404.html when present).
- Resolves ``/page`` to ``page.html`` and directories to their index.html.
- Strips the configured path prefix, so links render the same as when deployed.

Key classes:
- SiteServer: Serves one directory on one port.
- _SiteHandler: HTTP request handler that enforces the rules above.
"""

from __future__ import annotations

import functools
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from . import message
from .config import load_config
from .errors import ServeError


class _SiteHandler(SimpleHTTPRequestHandler):
    """HTTP request handler for the generated site.

    Attributes:
        path_prefix: URL prefix the site is deployed under, without slashes.
    """

    path_prefix = ""

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        # Never expose directory listings; treat as missing content.
        return self._serve_404()

    def log_message(self, format, *args):
        message.debug(f"{self.address_string()} {format % args}")

    def translate_path(self, path):
        prefix = self.path_prefix.strip("/")
        if prefix:
            stripped = path.split("?", 1)[0].split("#", 1)[0]
            if stripped == f"/{prefix}":
                path = "/"
            elif stripped.startswith(f"/{prefix}/"):
                path = path[len(prefix) + 1 :]
        return super().translate_path(path)

    def _serve_404(self):
        """Serve 404.html (when present) with a 404 status."""
        error_page = Path(self.directory) / "404.html"
        if error_page.exists():
            encoded = error_page.read_bytes()
            self.send_response(404)
            self.send_header("Content-type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(encoded)))
            self.end_headers()
            self.wfile.write(encoded)
            return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir():
            index_path = path_obj / "index.html"
            if not index_path.exists():
                return self._serve_404()
            if not self.path.split("?", 1)[0].endswith("/"):
                # Let the base class issue the trailing-slash redirect
                return super().send_head()
        elif not path_obj.exists():
            html_path = path_obj.with_name(path_obj.name + ".html")
            if not path_obj.suffix and html_path.is_file():
                self.path = self.path.split("?", 1)[0] + ".html"
            else:
                return self._serve_404()
        return super().send_head()


class SiteServer:
    """Serves a directory over HTTP until the process exits.

    Attributes:
        directory: Directory to serve.
        port: Port to bind on localhost.
        path_prefix: Optional URL prefix to strip from requests.
    """

    def __init__(self, directory: Path, port: int, path_prefix: str | None = None):
        self.directory = directory
        self.port = port
        self.path_prefix = path_prefix or ""
        self._httpd: ThreadingHTTPServer | None = None

    def bind(self) -> ThreadingHTTPServer:
        """Bind the listening socket.

        Raises:
            ServeError: If the port cannot be bound.
        """
        handler_cls = type(
            "_SiteHandlerWithPrefix",
            (_SiteHandler,),
            {"path_prefix": self.path_prefix},
        )
        handler = functools.partial(handler_cls, directory=str(self.directory))
        try:
            self._httpd = ThreadingHTTPServer(("127.0.0.1", self.port), handler)
        except OSError as exc:
            raise ServeError(self.port, exc) from exc
        return self._httpd

    @property
    def url(self) -> str:
        prefix = self.path_prefix.strip("/")
        return f"http://127.0.0.1:{self.port}/{prefix + '/' if prefix else ''}"

    def serve_forever(self) -> None:  # pragma: no cover - integration path
        httpd = self._httpd or self.bind()
        message.success(f"Your site is available at {self.url}")
        try:
            httpd.serve_forever()
        finally:
            httpd.server_close()

    def shutdown(self) -> None:
        if self._httpd is not None:
            self._httpd.shutdown()


def serve_site(
    port: int | None = None,
    project_root: Path | None = None,
    config_path: Path | None = None,
) -> None:
    """Serve the built site's dist directory, blocking forever.

    Args:
        port: Port to serve on. Defaults to the config's dev.port.
        project_root: Root directory of the project. Defaults to the cwd.
        config_path: Config file. Defaults to oranda.json in the project root.

    Raises:
        ConfigError: If the config file is invalid.
        ServeError: If the dist dir is missing or the port cannot be bound.
    """
    config = load_config(config_path, project_root)
    port = port if port is not None else config.dev.port
    if not config.dist_dir.is_dir():
        raise ServeError(
            port, FileNotFoundError(f"{config.dist_dir} does not exist; run `oranda build` first")
        )
    server = SiteServer(config.dist_dir, port, config.build.path_prefix)
    server.serve_forever()
