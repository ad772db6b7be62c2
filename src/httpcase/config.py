from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import requests


@dataclass(frozen=True)
class Settings:
    # None leaves timeouts to the client (requests blocks indefinitely).
    timeout: float | None = None
    verify_tls: bool = True
    follow_redirects: bool = True
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, value: Any, *, name: str = "settings") -> Settings:
        if value is None:
            return cls()
        if not isinstance(value, dict):
            raise SystemExit(f"{name} must be a mapping")
        unknown = sorted(set(value) - {"timeout", "verify_tls", "follow_redirects", "headers"})
        if unknown:
            raise SystemExit(f"{name} has unknown keys: {', '.join(map(str, unknown))}")

        timeout = _as_optional_float(value.get("timeout"), name=f"{name}.timeout")
        if timeout is not None and timeout <= 0:
            raise SystemExit(f"{name}.timeout must be > 0")
        return cls(
            timeout=timeout,
            verify_tls=_as_bool(value.get("verify_tls"), name=f"{name}.verify_tls", default=True),
            follow_redirects=_as_bool(
                value.get("follow_redirects"), name=f"{name}.follow_redirects", default=True
            ),
            headers=_as_str_dict(value.get("headers"), name=f"{name}.headers"),
        )

    def new_session(self) -> requests.Session:
        session = requests.Session()
        session.verify = self.verify_tls
        if self.headers:
            session.headers.update(self.headers)
        return session

    def send_kwargs(self) -> dict[str, Any]:
        return {"timeout": self.timeout, "allow_redirects": self.follow_redirects}


def _as_bool(value: Any, *, name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise SystemExit(f"{name} must be a boolean")


def _as_optional_float(value: Any, *, name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise SystemExit(f"{name} must be a number")


def _as_str_dict(value: Any, *, name: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SystemExit(f"{name} must be a mapping of string->string")
    out: dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise SystemExit(f"{name} must be a mapping of string->string")
        out[k] = v
    return out
