from __future__ import annotations

import json
from http.server import BaseHTTPRequestHandler
from typing import Iterator

import pytest

from httpcase import LiveServer


class EchoHandler(BaseHTTPRequestHandler):
    def log_message(self, *_args: object) -> None:
        pass

    def _echo(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        data = json.dumps(
            {
                "method": self.command,
                "path": self.path,
                "headers": {k.lower(): v for k, v in self.headers.items()},
                "body": body.decode("utf-8", errors="replace"),
            }
        ).encode("utf-8")

        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    do_GET = _echo  # noqa: N815 - http.server naming
    do_POST = _echo  # noqa: N815
    do_PUT = _echo  # noqa: N815


class PlainHandler(BaseHTTPRequestHandler):
    def log_message(self, *_args: object) -> None:
        pass

    def do_GET(self) -> None:  # noqa: N802 - http.server naming
        if self.path != "/":
            self.send_response(404)
            self.send_header("Content-Length", "9")
            self.end_headers()
            self.wfile.write(b"not found")
            return

        data = b"hello world"
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


@pytest.fixture
def echo_server() -> Iterator[LiveServer]:
    with LiveServer(EchoHandler) as server:
        yield server


@pytest.fixture
def plain_server() -> Iterator[LiveServer]:
    with LiveServer(PlainHandler) as server:
        yield server
