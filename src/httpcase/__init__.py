"""Declarative HTTP endpoint checks.

::

    suite = Suite(server)
    suite.test(
        "POST", "/greet",
        with_form_body({"name": ["greg"]}),
        expect_status(200),
        expect_json(Greeting("hello greg", now), equate_approx_time(10)),
    )()
"""

from __future__ import annotations

from .case import Case, CaseSpec, Option, Suite
from .casefile import CaseEntry, CaseFile, load_case_file
from .codec import Capture
from .compare import (
    CompareOption,
    diff,
    equate_approx_time,
    ignore_field,
    ignore_unexported,
    not_empty,
    sort_slices,
)
from .config import Settings
from .errors import CaseFailed, FatalError
from .options import (
    capture_json,
    expect_header,
    expect_json,
    expect_raw_body,
    expect_status,
    fail_fast,
    with_auth,
    with_body,
    with_form_body,
    with_header,
    with_json_body,
    with_query,
    with_session,
)
from .parsing import parse_html, parse_url
from .runner import Result
from .server import LiveServer, RemoteServer

__all__ = [
    "Capture",
    "Case",
    "CaseEntry",
    "CaseFailed",
    "CaseFile",
    "CaseSpec",
    "CompareOption",
    "FatalError",
    "LiveServer",
    "Option",
    "RemoteServer",
    "Result",
    "Settings",
    "Suite",
    "capture_json",
    "diff",
    "equate_approx_time",
    "expect_header",
    "expect_json",
    "expect_raw_body",
    "expect_status",
    "fail_fast",
    "ignore_field",
    "ignore_unexported",
    "load_case_file",
    "not_empty",
    "parse_html",
    "parse_url",
    "sort_slices",
    "with_auth",
    "with_body",
    "with_form_body",
    "with_header",
    "with_json_body",
    "with_query",
    "with_session",
]
