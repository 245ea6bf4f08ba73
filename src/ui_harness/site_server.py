"""Serve a static page directory on localhost for the suite to run against."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.utils import send_from_directory
from werkzeug.wrappers import Request

logger = logging.getLogger(__name__)


def create_static_app(root: Path):
    root = Path(root).resolve()

    @Request.application
    def app(request: Request):
        path = request.path.lstrip("/") or "index.html"
        if path.endswith("/"):
            path += "index.html"
        return send_from_directory(root, path, request.environ)

    return app


class StaticSiteServer:
    """Threaded werkzeug server; ``port=0`` picks a free port."""

    def __init__(self, root: Path, host: str = "127.0.0.1", port: int = 0) -> None:
        self.root = Path(root)
        self.host = host
        self.port = port
        self.server: Optional[BaseWSGIServer] = None
        self.thread: Optional[threading.Thread] = None

    def __enter__(self) -> "StaticSiteServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not (self.root / "index.html").is_file():
            raise FileNotFoundError(f"No index.html in {self.root}")
        self.server = make_server(self.host, self.port, create_static_app(self.root), threaded=True)
        self.port = self.server.server_port
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        logger.info(f"Serving {self.root} at {self.url}")

    def stop(self) -> None:
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            if self.thread:
                self.thread.join(timeout=5)
            self.server = None
            self.thread = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"
