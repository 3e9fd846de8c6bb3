"""Local preview server for Quire.

``quire serve`` builds the site, serves the output over HTTP and rebuilds
whenever a source file changes. Browsers reload through a websocket: every
HTML response carries a small script that waits for a ``reload`` message.

A rebuild is written to a staging directory first and only replaces the
served output once it succeeds, so a broken edit keeps the last good site
on screen.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import shutil
import threading
import time
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import CONFIG_FILENAME, build_site, load_config
from .errors import QuireError

logger = logging.getLogger(__name__)

WATCHED_DIRS = ("content", "templates", "static")

RELOAD_SNIPPET = """<script>
(() => {{
  const socket = new WebSocket(`ws://${{location.hostname}}:{port}`);
  socket.addEventListener("message", (event) => {{
    if (JSON.parse(event.data).type === "reload") location.reload();
  }});
}})();
</script>
"""


def inject_reload(page: str, snippet: str) -> str:
    """Insert ``snippet`` before the last ``</body>``, or append it."""
    head, marker, tail = page.rpartition("</body>")
    if not marker:
        return page + snippet
    return f"{head}{snippet}{marker}{tail}"


def source_snapshot(project_root: Path) -> tuple[tuple[str, int, int], ...]:
    """Path, mtime and size of quire.yaml and every file in the watched folders."""
    candidates = [project_root / CONFIG_FILENAME]
    for name in WATCHED_DIRS:
        folder = project_root / name
        if folder.is_dir():
            candidates.extend(sorted(folder.rglob("*")))

    entries = []
    for path in candidates:
        try:
            if not path.is_file():
                continue
            stat = path.stat()
        except OSError:
            continue
        entries.append((path.relative_to(project_root).as_posix(), stat.st_mtime_ns, stat.st_size))
    return tuple(entries)


class PreviewRequestHandler(SimpleHTTPRequestHandler):
    """Serves the build output.

    HTML responses get the reload snippet. Directories without an
    ``index.html`` and missing files answer 404, using the site's
    ``404.html`` when it has one.
    """

    snippet = ""

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):
        logger.debug("%s %s", self.address_string(), format % args)

    def list_directory(self, path):
        return self._not_found()

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix != ".html":
            return super().send_head()
        self._write_html(HTTPStatus.OK, target)
        return None

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._write_html(HTTPStatus.NOT_FOUND, page)
        else:
            self.send_error(HTTPStatus.NOT_FOUND, "File not found")
        return None

    def _write_html(self, status: HTTPStatus, path: Path) -> None:
        payload = inject_reload(path.read_text(encoding="utf-8"), self.snippet).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)


class DevServer:
    """Builds, serves and live-reloads a Quire project.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration from quire.yaml.
        output_dir: Directory the HTTP server serves.
        staging_dir: Sibling directory each build is written to first.
        http_port: Port of the HTTP server.
        ws_port: Port of the reload websocket.
        debounce: Seconds to wait for further saves before rebuilding.
    """

    def __init__(self, project_root: Path, http_port: int | None = None, ws_port: int | None = None):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config["output_dir"]
        self.staging_dir = self.output_dir.with_name(f"{self.output_dir.name}.staging")
        self.http_port = int(http_port or self.config["port"])
        self.ws_port = int(ws_port or self.config.get("ws_port") or self.http_port + 1)
        self.snippet = RELOAD_SNIPPET.format(port=self.ws_port)
        # pages link to the preview server, not to the production base_url
        self.base_url = f"http://localhost:{self.http_port}"
        self.debounce = 0.05
        self._build_lock = threading.Lock()
        self._pending = False
        self._snapshot: tuple | None = None
        self._clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._observer = None

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - runs until Ctrl+C
        self.build(include_drafts)
        self._snapshot = source_snapshot(self.project_root)
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self._serve_ws, daemon=True).start()
        self._watch(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def build(self, include_drafts: bool) -> None:
        """Build into the staging directory, then swap it in as the output."""
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        build_site(
            self.project_root,
            include_drafts=include_drafts,
            base_url=self.base_url,
            clean_output=True,
            output_dir_override=self.staging_dir,
        )
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(self.staging_dir, self.output_dir)

    def rebuild(self, include_drafts: bool) -> bool:
        """Rebuild if sources changed since the last good build.

        A call that finds a build already running only marks a rebuild as
        pending; the running build picks it up before it lets go of the lock.

        Returns:
            True when a new build was published and browsers were told to reload.
        """
        self._pending = True
        published = False
        while self._pending and self._build_lock.acquire(blocking=False):
            try:
                published = self._drain_pending(include_drafts) or published
            finally:
                self._build_lock.release()
        return published

    def _drain_pending(self, include_drafts: bool) -> bool:
        published = False
        while self._pending:
            self._pending = False
            # let a burst of saves settle into one build
            time.sleep(self.debounce)
            snapshot = source_snapshot(self.project_root)
            if snapshot == self._snapshot:
                continue
            logger.info("Sources changed, rebuilding")
            try:
                self.build(include_drafts)
            except (QuireError, OSError) as exc:
                logger.error("Rebuild failed, still serving the previous build: %s", exc)
                continue
            self._snapshot = snapshot
            self.notify_reload()
            published = True
        return published

    def is_source(self, path: Path) -> bool:
        """Whether a changed path is one the site is built from."""
        if path == self.project_root / CONFIG_FILENAME:
            return True
        return any(path.is_relative_to(self.project_root / name) for name in WATCHED_DIRS)

    def notify_reload(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._send_all(message), self._loop)

    async def _send_all(self, message: str) -> None:
        for client in list(self._clients):
            try:
                await client.send(message)
            except websockets.ConnectionClosed:
                self._clients.discard(client)

    async def _register(self, websocket) -> None:
        self._clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._clients.discard(websocket)

    def _serve_http(self) -> None:  # pragma: no cover - blocking server thread
        handler_cls = type("_Handler", (PreviewRequestHandler,), {"snippet": self.snippet})
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        with ThreadingHTTPServer(("", self.http_port), handler) as httpd:
            logger.info("Serving %s at %s", self.output_dir, self.base_url)
            httpd.serve_forever()

    def _serve_ws(self) -> None:  # pragma: no cover - blocking server thread
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._ws_main())
        except OSError as exc:
            logger.error("Reload websocket could not listen on port %s: %s", self.ws_port, exc)

    async def _ws_main(self) -> None:  # pragma: no cover - blocking server thread
        async with websockets.serve(self._register, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    def _watch(self, include_drafts: bool) -> None:  # pragma: no cover - needs a live observer
        handler = _SourceChangeHandler(self, include_drafts)
        observer = Observer()
        for name in WATCHED_DIRS:
            folder = self.project_root / name
            if folder.is_dir():
                observer.schedule(handler, str(folder), recursive=True)
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer


class _SourceChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory:
            return
        if self.server.is_source(Path(os.fsdecode(event.src_path))):
            self.server.rebuild(self.include_drafts)
