from __future__ import annotations

from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Any, Callable

import requests

from .codec import Capture
from .compare import CompareOption
from .config import Settings
from .runner import Result, run_case
from .server import RemoteServer, ServerLike

RequestMutator = Callable[[requests.Request], None]


@dataclass
class CaseSpec:
    """Everything one case will send and check.

    Built by applying options in order, then only read by the runner.
    """

    method: str
    path: str
    request_mutators: list[RequestMutator] = field(default_factory=list)
    body: Any = None
    session_store: CookieJar | None = None
    # 0 means no status assertion.
    expected_status: int = 0
    # Checked in insertion order.
    expected_headers: dict[str, str] = field(default_factory=dict)
    expected_raw_body: bytes | None = None
    expected_json: Any = None
    expected_json_type: Any = None
    comparison_options: list[CompareOption] = field(default_factory=list)
    capture: Capture[Any] | None = None
    fail_fast: bool = False

    @property
    def label(self) -> str:
        return f"{self.method or 'GET'} {self.path}"


Option = Callable[[CaseSpec], None]


class Case:
    """A single runnable request/assert pipeline; call it to run."""

    def __init__(self, server: ServerLike, spec: CaseSpec, *, settings: Settings) -> None:
        self.server = server
        self.spec = spec
        self.settings = settings

    @property
    def name(self) -> str:
        return self.spec.label

    def __call__(self) -> Result:
        return run_case(self.server, self.spec, settings=self.settings)

    def __repr__(self) -> str:
        return f"Case({self.name!r})"


class Suite:
    """Builds cases against one server.

    ``server`` is anything with a ``url`` and a ``client()`` returning a
    :class:`requests.Session` (see :mod:`httpcase.server`), or a base URL.
    """

    def __init__(self, server: ServerLike | str, *, settings: Settings | None = None) -> None:
        if isinstance(server, str):
            server = RemoteServer(server, settings=settings)
        self.server = server
        self.settings = settings or getattr(server, "settings", None) or Settings()

    def test(self, method: str, path: str, *options: Option) -> Case:
        spec = CaseSpec(method=method, path=path)
        for opt in options:
            opt(spec)
        return Case(self.server, spec, settings=self.settings)
