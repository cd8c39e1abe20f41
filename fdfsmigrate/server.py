"""HTTP server of the migration system."""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Any, Sequence
from wsgiref.simple_server import WSGIRequestHandler, make_server

from flask import Flask, Response, render_template, request

from .config import Config, ConfigError, load
from .logger import init_logging

TITLE = "FastDFS Migration System"
SHUTDOWN_TIMEOUT = 30.0


def _json(payload: dict[str, Any], status: int = 200) -> Response:
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return Response(body, status=status, mimetype="application/json")


class Server:
    """Flask application plus the lifecycle of the process serving it."""

    def __init__(self, cfg: Config) -> None:
        self.config = cfg
        try:
            self._log = init_logging(cfg.logging)
        except (ValueError, OSError) as exc:
            raise RuntimeError(f"Failed to initialize logger: {exc}") from exc

        web = Path.cwd() / "web"
        self._templates = web / "templates"
        self.app = Flask(
            __name__,
            static_folder=str(web / "static"),
            static_url_path="/static",
            template_folder=str(self._templates),
        )
        self.app.debug = cfg.logging.level == "debug"
        self._stop = threading.Event()
        self._setup_routes()

    def _setup_routes(self) -> None:
        app = self.app

        @app.after_request
        def _access_log(response: Response) -> Response:
            self._log.info(
                "%s %s %d", request.method, request.path, response.status_code
            )
            return response

        @app.get("/health")
        def health() -> Response:
            return _json({"status": "ok", "time": int(time.time())})

        @app.get("/api/v1/ping")
        def ping() -> Response:
            return _json({"message": "pong"})

        if (self._templates / "index.html").is_file():

            @app.get("/")
            def index() -> str:
                return render_template("index.html", title=TITLE)

        else:

            @app.get("/")
            def index() -> Response:
                return _json({"title": TITLE, "status": "running"})

    def _request_stop(self, signum: int, frame: Any) -> None:
        self._stop.set()

    def start(self) -> None:
        """Serve until SIGINT or SIGTERM, then shut down gracefully."""
        host = self.config.server.host
        port = self.config.server.port
        self._log.info("Starting server on %s:%s", host, port)

        log = self._log

        class _Handler(WSGIRequestHandler):
            def log_message(self, format: str, *args: Any) -> None:
                log.debug(format, *args)

        try:
            httpd = make_server(host, int(port), self.app, handler_class=_Handler)
        except (OSError, ValueError) as exc:
            self._log.error("Failed to start server: %s", exc)
            raise

        worker = threading.Thread(target=httpd.serve_forever, daemon=True)
        worker.start()

        previous: dict[int, Any] = {}
        if threading.current_thread() is threading.main_thread():
            for signum in (signal.SIGINT, signal.SIGTERM):
                previous[signum] = signal.signal(signum, self._request_stop)
        try:
            self._stop.wait()
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

        self._log.info("Shutting down server...")
        httpd.shutdown()
        httpd.server_close()
        worker.join(SHUTDOWN_TIMEOUT)
        self._log.info("Server exited")


def main(argv: Sequence[str] | None = None) -> int:
    """Load the configuration and run the server."""
    parser = argparse.ArgumentParser(
        prog="fdfsmigrate-server", description="Run the migration system HTTP server."
    )
    parser.parse_args(argv)
    try:
        cfg = load()
    except ConfigError as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        return 1
    try:
        Server(cfg).start()
    except (OSError, ValueError, RuntimeError) as exc:
        print(f"Failed to start server: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())