from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Protocol

import requests

from .config import Settings

logger = logging.getLogger(__name__)


class ServerLike(Protocol):
    url: str

    def client(self) -> requests.Session: ...


class RemoteServer:
    """An already running server reachable at ``url``."""

    def __init__(self, url: str, *, settings: Settings | None = None) -> None:
        self.url = url.rstrip("/")
        self.settings = settings or Settings()

    def client(self) -> requests.Session:
        return self.settings.new_session()

    def __repr__(self) -> str:
        return f"RemoteServer({self.url!r})"


class LiveServer:
    """Serve ``handler_class`` on an ephemeral local port in a background thread.

    Meant for tests::

        with LiveServer(Handler) as server:
            suite = Suite(server)
            ...
    """

    def __init__(
        self,
        handler_class: type[BaseHTTPRequestHandler],
        *,
        host: str = "127.0.0.1",
        settings: Settings | None = None,
    ) -> None:
        self.handler_class = handler_class
        self.host = host
        self.settings = settings or Settings()
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        if self._httpd is None:
            raise RuntimeError("server is not running")
        _addr, port = self._httpd.server_address[:2]
        return f"http://{self.host}:{port}"

    def client(self) -> requests.Session:
        return self.settings.new_session()

    def start(self) -> LiveServer:
        if self._httpd is not None:
            return self
        self._httpd = ThreadingHTTPServer((self.host, 0), self.handler_class)
        self._httpd.daemon_threads = True
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()
        logger.debug("serving %s at %s", self.handler_class.__name__, self.url)
        return self

    def close(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join()
        self._httpd = None
        self._thread = None

    def __enter__(self) -> LiveServer:
        return self.start()

    def __exit__(self, *_exc: Any) -> None:
        self.close()
