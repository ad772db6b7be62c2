from __future__ import annotations

import re
from typing import TYPE_CHECKING

import requests
from requests.structures import CaseInsensitiveDict

from .errors import FatalError

if TYPE_CHECKING:
    from .case import CaseSpec

# RFC 9110 token characters.
_METHOD_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def build_request(base_url: str, spec: CaseSpec) -> requests.Request:
    method = spec.method or "GET"
    if not _METHOD_RE.match(method):
        raise FatalError(f"[{spec.label}] invalid method {method!r}")

    req = requests.Request(
        method=method,
        url=base_url + spec.path,
        headers=CaseInsensitiveDict(),
        data=spec.body,
    )
    for mutate in spec.request_mutators:
        mutate(req)
    return req


def prepare(session: requests.Session, req: requests.Request) -> requests.PreparedRequest:
    try:
        return session.prepare_request(req)
    except (requests.RequestException, ValueError) as exc:
        raise FatalError(f"[{req.method} {req.url}] malformed request: {exc}") from exc


def set_header(req: requests.Request, name: str, value: str) -> None:
    req.headers[name] = value


def add_header(req: requests.Request, name: str, value: str) -> None:
    existing = req.headers.get(name)
    if existing is None:
        req.headers[name] = value
        return
    req.headers[name] = f"{existing}, {value}"
