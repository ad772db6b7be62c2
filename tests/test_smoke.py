from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler
from typing import Iterator
from urllib.parse import parse_qs

import pytest

from httpcase import (
    CaseFailed,
    LiveServer,
    Suite,
    equate_approx_time,
    expect_header,
    expect_json,
    expect_raw_body,
    expect_status,
    with_form_body,
)


@dataclass
class Response:
    msg: str
    time: datetime


class GreetHandler(BaseHTTPRequestHandler):
    skew = timedelta(0)

    def log_message(self, *_args: object) -> None:
        pass

    def _empty(self, code: int) -> None:
        self.send_response(code)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802 - http.server naming
        self._empty(405)

    def do_POST(self) -> None:  # noqa: N802 - http.server naming
        length = int(self.headers.get("Content-Length") or 0)
        form = parse_qs(self.rfile.read(length).decode("utf-8")) if length else {}
        name = form.get("name", [""])[0]
        if not name:
            self._empty(400)
            return

        now = datetime.now(timezone.utc) + self.skew
        data = json.dumps({"msg": f"hello {name}", "time": now.isoformat()}).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


@pytest.fixture
def greet_suite() -> Iterator[Suite]:
    with LiveServer(GreetHandler) as server:
        yield Suite(server)


def test_plain_text(plain_server: LiveServer) -> None:
    suite = Suite(plain_server)
    suite.test(
        "GET",
        "/",
        expect_status(200),
        expect_header("Content-Type", "text/plain"),
        expect_raw_body(b"hello world"),
    )()


def test_greet_happy_path(greet_suite: Suite) -> None:
    greet_suite.test(
        "POST",
        "/greet",
        with_form_body({"name": ["greg"]}),
        expect_status(200),
        expect_header("Content-Type", "application/json"),
        # consider times within 10 seconds to be equal
        expect_json(
            Response(msg="hello greg", time=datetime.now(timezone.utc)),
            equate_approx_time(timedelta(seconds=10)),
        ),
    )()


def test_greet_missing_name_param(greet_suite: Suite) -> None:
    greet_suite.test("POST", "/greet", expect_status(400))()


def test_greet_wrong_method(greet_suite: Suite) -> None:
    greet_suite.test("GET", "/greet", expect_status(405))()


def test_greet_wrong_method_message(greet_suite: Suite) -> None:
    case = greet_suite.test("GET", "/greet", expect_status(200))
    with pytest.raises(CaseFailed, match=r"\[GET /greet\] unexpected response code: want 200, got 405"):
        case()


def test_greet_missing_name_message(greet_suite: Suite) -> None:
    case = greet_suite.test("POST", "/greet", expect_status(200))
    with pytest.raises(CaseFailed, match="want 200, got 400"):
        case()


def test_greet_time_outside_margin() -> None:
    skewed = type("SkewedGreetHandler", (GreetHandler,), {"skew": timedelta(seconds=60)})
    with LiveServer(skewed) as server:
        case = Suite(server).test(
            "POST",
            "/greet",
            with_form_body({"name": ["greg"]}),
            expect_status(200),
            expect_json(
                Response(msg="hello greg", time=datetime.now(timezone.utc)),
                equate_approx_time(timedelta(seconds=10)),
            ),
        )
        with pytest.raises(CaseFailed) as info:
            case()
    assert len(info.value.failures) == 1
    assert "output mismatch" in info.value.failures[0]
    assert "root.time" in info.value.failures[0]
