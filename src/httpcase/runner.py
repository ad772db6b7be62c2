from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, NoReturn

import requests
from pydantic import ValidationError

from .codec import decode_as
from .compare import diff
from .errors import CaseFailed, FatalError
from .request import build_request, prepare

if TYPE_CHECKING:
    from .case import CaseSpec
    from .config import Settings
    from .server import ServerLike

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


@dataclass(frozen=True)
class Result:
    method: str
    url: str
    status: int
    headers: Mapping[str, str]
    body: bytes
    elapsed_ms: int

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "status": self.status,
            "headers": dict(self.headers),
            "bytes": len(self.body),
            "elapsed_ms": self.elapsed_ms,
        }


class Recorder:
    """Failure channel for one case.

    ``error`` records and continues, ``abort`` records and stops the case,
    ``fatal`` stops the case with a :class:`FatalError`.
    """

    def __init__(self) -> None:
        self.failures: list[str] = []

    def error(self, message: str) -> None:
        self.failures.append(message)
        logger.warning("%s", message)

    def abort(self, message: str) -> NoReturn:
        self.error(message)
        raise CaseFailed(self.failures)

    def fatal(self, message: str) -> NoReturn:
        logger.warning("%s", message)
        raise FatalError(message, failures=self.failures)

    def finish(self) -> None:
        if self.failures:
            raise CaseFailed(self.failures)


def run_case(server: ServerLike, spec: CaseSpec, *, settings: Settings) -> Result:
    label = f"[{spec.label}]"
    rec = Recorder()

    session = server.client()
    if spec.session_store is not None:
        session.cookies = spec.session_store  # type: ignore[assignment]

    start = time.time()
    try:
        try:
            prepared = prepare(session, build_request(server.url, spec))
        except FatalError as exc:
            logger.warning("%s", exc)
            raise
        logger.info("%s sending %s %s", label, prepared.method, prepared.url)
        try:
            resp = session.send(prepared, stream=True, **settings.send_kwargs())
        except requests.RequestException as exc:
            rec.fatal(f"{label} request failed: {exc}")
        raw, read_error = _read_body(resp)
    finally:
        session.close()
    elapsed_ms = int((time.time() - start) * 1000)

    logger.info("%s output:\n%s", label, raw.decode("utf-8", errors="replace"))

    fail = rec.abort if spec.fail_fast else rec.error

    if read_error is not None:
        fail(f"{label} error reading body: {read_error}")

    status = int(resp.status_code)
    if spec.expected_status and status != spec.expected_status:
        fail(f"{label} unexpected response code: want {spec.expected_status}, got {status}")

    for name, want in spec.expected_headers.items():
        got = _first_header(resp, name)
        if got != want:
            logger.info("%s header dump: %r", label, dict(resp.headers))
            fail(f"{label} unexpected response header ({name}): want {want}, got {got}")

    if spec.expected_raw_body is not None and raw != spec.expected_raw_body:
        fail(
            f"{label} raw output mismatch:\n"
            f"want: {spec.expected_raw_body.decode('utf-8', errors='replace')}\n"
            f"got: {raw.decode('utf-8', errors='replace')}"
        )

    if spec.expected_json is not None:
        target = spec.expected_json_type or type(spec.expected_json)
        try:
            output = decode_as(raw, target)
        except ValidationError as exc:
            rec.fatal(f"{label} couldn't decode response as {_type_name(target)}: {exc}")
        delta = diff(spec.expected_json, output, spec.comparison_options)
        if delta:
            fail(f"{label} output mismatch (want -> got):\n{delta}")

    if spec.capture is not None:
        try:
            spec.capture.fill(raw)
        except ValidationError as exc:
            rec.fatal(f"{label} couldn't decode response for capture: {exc}")

    rec.finish()
    return Result(
        method=prepared.method or spec.method,
        url=prepared.url or "",
        status=status,
        headers=resp.headers,
        body=raw,
        elapsed_ms=elapsed_ms,
    )


def _read_body(resp: Any) -> tuple[bytes, str | None]:
    # Whatever arrived before a read error is kept so later checks still run.
    parts: list[bytes] = []
    try:
        for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
            if chunk:
                parts.append(bytes(chunk))
    except requests.RequestException as exc:
        return b"".join(parts), str(exc)
    finally:
        close = getattr(resp, "close", None)
        if callable(close):
            close()
    return b"".join(parts), None


def _first_header(resp: Any, name: str) -> str:
    # resp.headers joins repeated fields with ", "; the expectation is
    # checked against the first occurrence only.
    getlist = getattr(getattr(getattr(resp, "raw", None), "headers", None), "getlist", None)
    if callable(getlist):
        values = getlist(name)
        return str(values[0]) if values else ""
    return str(resp.headers.get(name, ""))


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)
