"""Options that configure a case.

Options are applied in argument order. Request-side options queue header
mutators, so for the same header the last applied one wins::

    suite.test(
        "POST", "/items",
        with_json_body({"name": "x"}),             # Content-Type: application/json
        with_header("Content-Type", "text/json"),  # ...overridden here
        expect_status(201),
    )
"""

from __future__ import annotations

from http.cookiejar import CookieJar
from typing import Any, Mapping
from urllib.parse import urlencode

import requests

from .case import CaseSpec, Option
from .codec import Capture, encode_json
from .compare import CompareOption
from .request import add_header, set_header

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def with_body(data: Any) -> Option:
    """Send ``data`` (bytes, str, file-like or iterable of bytes) as the request body."""

    def apply(spec: CaseSpec) -> None:
        spec.body = data

    return apply


def with_json_body(value: Any) -> Option:
    """Send ``value`` as JSON and set ``Content-Type: application/json``.

    A later :func:`with_header` for Content-Type overrides the header.
    """

    def apply(spec: CaseSpec) -> None:
        spec.body = encode_json(value)
        spec.request_mutators.append(
            lambda r: set_header(r, "Content-Type", JSON_CONTENT_TYPE)
        )

    return apply


def with_form_body(values: Mapping[str, str | list[str]]) -> Option:
    """Send ``values`` URL-encoded (keys sorted) with the form Content-Type.

    A later :func:`with_header` for Content-Type overrides the header.
    """

    def apply(spec: CaseSpec) -> None:
        pairs = [(k, values[k]) for k in sorted(values)]
        spec.body = urlencode(pairs, doseq=True)
        spec.request_mutators.append(
            lambda r: set_header(r, "Content-Type", FORM_CONTENT_TYPE)
        )

    return apply


def with_header(name: str, value: str) -> Option:
    def apply(spec: CaseSpec) -> None:
        def mutate(r: requests.Request) -> None:
            # Content-Type replaces so it can override the body options' defaults.
            if name.lower() == "content-type":
                set_header(r, name, value)
                return
            add_header(r, name, value)

        spec.request_mutators.append(mutate)

    return apply


def with_auth(token: str) -> Option:
    """Send ``token`` as the Authorization header, e.g. ``"Bearer abc"``."""
    return with_header("Authorization", token)


def with_query(params: Mapping[str, str | list[str]]) -> Option:
    def apply(spec: CaseSpec) -> None:
        def mutate(r: requests.Request) -> None:
            merged = dict(r.params or {})
            merged.update(params)
            r.params = merged

        spec.request_mutators.append(mutate)

    return apply


def with_session(jar: CookieJar) -> Option:
    """Use ``jar`` for cookies; share it between cases to carry a session."""

    def apply(spec: CaseSpec) -> None:
        spec.session_store = jar

    return apply


def expect_status(code: int) -> Option:
    def apply(spec: CaseSpec) -> None:
        spec.expected_status = code

    return apply


def expect_header(name: str, value: str) -> Option:
    def apply(spec: CaseSpec) -> None:
        spec.expected_headers[name] = value

    return apply


def expect_raw_body(body: bytes | str) -> Option:
    """Expect exactly ``body``; ``b""`` expects an empty body."""

    def apply(spec: CaseSpec) -> None:
        spec.expected_raw_body = body.encode("utf-8") if isinstance(body, str) else bytes(body)

    return apply


def expect_json(expected: Any, *compare: CompareOption, as_type: Any = None) -> Option:
    """Expect a JSON response matching ``expected``.

    The response is decoded into the type of ``expected`` (or ``as_type``)
    and compared with it; ``compare`` options tune the comparison.
    """

    def apply(spec: CaseSpec) -> None:
        spec.expected_json = expected
        spec.expected_json_type = as_type
        spec.comparison_options = list(compare)

    return apply


def capture_json(capture: Capture[Any]) -> Option:
    """Decode the response into ``capture`` whatever the other checks say."""

    def apply(spec: CaseSpec) -> None:
        spec.capture = capture

    return apply


def fail_fast() -> Option:
    """Stop the case at the first failed check."""

    def apply(spec: CaseSpec) -> None:
        spec.fail_fast = True

    return apply
