"""Development server for Sia.

Serves the built site with live reload for local authoring:
- Injects a reload script into HTML responses.
- Rejects directory listings and missing paths with a 404 (serving 404.html when present).
- Watches the content, layout, include and style folders plus the config
  file, and rebuilds on change.

Rebuilds are debounced: each change (re)starts a short timer, so a burst of
saves produces one build. A change arriving while a build runs marks the
site dirty and exactly one follow-up build runs afterwards. Builds are
written to a staging directory that replaces the output directory only when
the build succeeded; a failed rebuild is reported and the previous output
keeps being served.

Key classes:
- DevServer: Main class for running the development server.
- _ReloadHandler: HTTP request handler that injects reload script and enforces 404s.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, build_site
from .config import CONFIG_FILENAMES, load_config

DEBOUNCE_SECONDS = 0.1


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that injects live reload script into HTML pages.

    Attributes:
        reload_script: JavaScript code for WebSocket connection to trigger reloads.
    """

    reload_script_template = """
    <script>
    (() => {{
      const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
      ws.onmessage = (event) => {{
        const data = JSON.parse(event.data || '{{}}');
        if (data.type === 'reload') location.reload();
      }};
      ws.onclose = () => setTimeout(() => location.reload(), 1000);
    }})();
    </script>
    """
    reload_script = reload_script_template.format(ws_port=3001)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._serve_404()

    def _inject(self, content: str) -> str:
        if "</body>" in content:
            return content.replace("</body>", f"{self.reload_script}</body>")
        return content + self.reload_script

    def _send_html(self, content: str, status: int) -> None:
        encoded = self._inject(content).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _serve_404(self):
        """Serve 404.html (when present) with injected reload script and a 404 status."""
        error_page = Path(self.directory) / "404.html"
        if error_page.exists():
            self._send_html(error_page.read_text(encoding="utf-8"), 404)
            return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir():
            path_obj = path_obj / "index.html"
        elif not path_obj.exists() and path_obj.with_name(path_obj.name + ".html").exists():
            path_obj = path_obj.with_name(path_obj.name + ".html")
        if not path_obj.is_file():
            return self._serve_404()

        if path_obj.suffix == ".html":
            self._send_html(path_obj.read_text(encoding="utf-8"), 200)
            return None
        return super().send_head()


class DevServer:
    """Development server with live reload functionality.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        output_dir: Directory where built site is served.
        http_port: Port for HTTP server.
        ws_port: Port for WebSocket connections.
        show_drafts: Whether drafts are included in builds.
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        show_drafts: bool | None = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.config = load_config(self.project_root)
        self.output_dir = self.config.output_dir
        self._staging_dir = self.output_dir.with_name(self.output_dir.name + ".staging")
        self._previous_dir = self.output_dir.with_name(self.output_dir.name + ".previous")
        self.http_port = int(http_port or self.config.server.port)
        self.ws_port = ws_port if ws_port is not None else self.http_port + 1
        self.show_drafts = (
            self.config.server.show_drafts if show_drafts is None else show_drafts
        )
        self._reload_script = _ReloadHandler.reload_script_template.format(ws_port=self.ws_port)
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._debounce_seconds = DEBOUNCE_SECONDS
        self._timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()
        self._build_lock = threading.Lock()
        self._dirty = False

    def start(self) -> None:  # pragma: no cover - integration path
        print("Sia development server")
        if not self.build():
            print("Initial build failed; fix the error and save to rebuild.")
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._start_watcher()
        print("Watching for changes...")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print("Shutting down...")
            self.stop()

    def stop(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            print(f"WebSocket server failed to start (port {self.ws_port}): {exc}")
            return

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            print(f"Live reload on ws://localhost:{self.ws_port}")
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except Exception:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)

    def watch_paths(self) -> list[tuple[Path, bool]]:
        """Existing (path, recursive) pairs to watch."""
        folders = [
            self.config.input_dir,
            self.config.layouts_dir,
            self.config.includes_dir,
            self.project_root / "styles",
        ]
        paths = [(folder, True) for folder in folders if folder.is_dir()]
        # Config files live in the root, which also holds the output directory
        paths.append((self.project_root, False))
        return paths

    def _start_watcher(self) -> None:  # pragma: no cover - integration path
        handler = _ChangeHandler(self)
        observer = Observer()
        for path, recursive in self.watch_paths():
            observer.schedule(handler, str(path), recursive=recursive)
        observer.start()
        self._observer = observer

    def schedule_rebuild(self) -> None:
        """Request a rebuild after the debounce delay.

        A newer request cancels a pending one, so a burst of changes builds
        once.
        """
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce_seconds, self.rebuild)
            self._timer.daemon = True
            self._timer.start()

    def rebuild(self) -> None:
        """Build now, or mark the site dirty if a build is already running.

        The thread holding the build lock keeps building until no change
        arrived during its last build. The dirty flag is checked again after
        the lock is released, so a change marked just before the release
        still gets built.
        """
        self._dirty = True
        while self._dirty:
            if not self._build_lock.acquire(blocking=False):
                return
            try:
                while self._dirty:
                    self._dirty = False
                    print("Change detected; rebuilding...")
                    if self.build():
                        self._broadcast_reload()
            finally:
                self._build_lock.release()

    def build(self) -> bool:
        """Build into the staging directory and swap it in.

        Returns:
            True when the build succeeded. Failures are printed and the
            previous output stays in place.
        """
        staging = self._prepare_staging_dir()
        try:
            result = build_site(
                self.project_root,
                show_drafts=self.show_drafts,
                clean=True,
                output_dir_override=staging,
            )
        except BuildError as exc:
            print(f"Rebuild failed: {exc.source_path}: {exc.message}")
            return False
        except Exception as exc:
            print(f"Rebuild failed: {type(exc).__name__}: {exc}")
            return False
        self._activate_staging(staging)
        print(f"Built {result.pages_written} pages")
        return True

    def _prepare_staging_dir(self) -> Path:
        staging = self._staging_dir
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True, exist_ok=True)
        return staging

    def _activate_staging(self, staging: Path) -> None:
        target = self.output_dir
        previous = self._previous_dir
        if previous.exists():
            shutil.rmtree(previous)
        # os.replace cannot overwrite a non-empty directory; swap via a rename
        if target.exists():
            os.replace(target, previous)
        os.replace(staging, target)
        if previous.exists():
            shutil.rmtree(previous)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def _ignored(self, path: Path) -> bool:
        root = self.server.project_root
        if path.parent == root and path.name not in CONFIG_FILENAMES:
            return True
        try:
            rel = path.relative_to(root)
        except ValueError:
            rel = path
        if any(part.startswith(".") for part in rel.parts):
            return True
        for ignored in (
            self.server.output_dir,
            self.server._staging_dir,
            self.server._previous_dir,
        ):
            try:
                path.relative_to(ignored)
                return True
            except ValueError:
                pass
        return False

    def on_any_event(self, event):
        if event.is_directory or getattr(event, "event_type", "") in ("opened", "closed"):
            return
        if self._ignored(Path(event.src_path)):
            return
        self.server.schedule_rebuild()
