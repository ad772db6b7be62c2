from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

import yaml

from .compare import CompareOption, ignore_field, not_empty, sort_slices
from .config import Settings
from .json_paths import parse_path
from .options import (
    expect_header,
    expect_json,
    expect_raw_body,
    expect_status,
    fail_fast,
    with_body,
    with_form_body,
    with_header,
    with_json_body,
    with_query,
)

if TYPE_CHECKING:
    from .case import Case, Option, Suite

_ENV_PATTERN = re.compile(r"\$\{[A-Za-z_][A-Za-z0-9_]*\}|\$[A-Za-z_][A-Za-z0-9_]*")

_TOP_KEYS = {"settings", "cases"}
_CASE_KEYS = {
    "name",
    "method",
    "path",
    "headers",
    "query",
    "json",
    "form",
    "body",
    "fail_fast",
    "expect",
}
_EXPECT_KEYS = {"status", "headers", "body", "json", "ignore_fields", "not_empty", "sort_lists"}
_BODY_KEYS = ("json", "form", "body")


@dataclass(frozen=True)
class CaseEntry:
    name: str
    method: str
    path: str
    options: tuple[Option, ...]

    def build(self, suite: Suite) -> Case:
        return suite.test(self.method, self.path, *self.options)


@dataclass(frozen=True)
class CaseFile:
    settings: Settings
    cases: list[CaseEntry]

    def bind(self, suite: Suite) -> list[tuple[str, Case]]:
        """Pair every case name with its runnable, e.g. for pytest.mark.parametrize."""
        return [(entry.name, entry.build(suite)) for entry in self.cases]


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    return value


def find_unexpanded_env_vars(value: Any) -> set[str]:
    found: set[str] = set()

    def walk(v: Any) -> None:
        if isinstance(v, str):
            for m in _ENV_PATTERN.findall(v):
                found.add(m)
            return
        if isinstance(v, list):
            for x in v:
                walk(x)
            return
        if isinstance(v, dict):
            for x in v.values():
                walk(x)
            return

    walk(value)
    return found


def load_case_file(path: Path, *, require_env: bool = False) -> CaseFile:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise SystemExit("case file must be a YAML mapping")
    expanded = cast(dict[str, Any], expand_env(data))

    if require_env:
        unexpanded = find_unexpanded_env_vars(expanded)
        if unexpanded:
            joined = ", ".join(sorted(unexpanded))
            raise SystemExit(f"case file references unset environment variables: {joined}")

    return parse_case_file(expanded)


def parse_case_file(data: dict[str, Any]) -> CaseFile:
    unknown = sorted(set(data) - _TOP_KEYS)
    if unknown:
        raise SystemExit(f"case file has unknown keys: {', '.join(map(str, unknown))}")

    settings = Settings.from_mapping(data.get("settings"), name="settings")

    raw_cases = data.get("cases")
    if not isinstance(raw_cases, list) or not raw_cases:
        raise SystemExit("cases must be a non-empty list")

    cases = [_parse_case(raw, index=idx) for idx, raw in enumerate(raw_cases, start=1)]
    seen: set[str] = set()
    for entry in cases:
        if entry.name in seen:
            raise SystemExit(f"duplicate case name: {entry.name}")
        seen.add(entry.name)
    return CaseFile(settings=settings, cases=cases)


def _parse_case(raw: Any, *, index: int) -> CaseEntry:
    loc = f"cases[{index}]"
    if not isinstance(raw, dict):
        raise SystemExit(f"{loc} must be a mapping")
    _reject_unknown(raw, _CASE_KEYS, name=loc)

    path = _require_non_empty_str(raw.get("path"), name=f"{loc}.path")
    if not path.startswith("/"):
        raise SystemExit(f"{loc}.path must start with '/'")
    method = (_as_optional_non_empty_str(raw.get("method"), name=f"{loc}.method") or "GET").upper()
    name = _as_optional_non_empty_str(raw.get("name"), name=f"{loc}.name") or f"{method} {path}"

    options: list[Option] = []

    present = [k for k in _BODY_KEYS if k in raw]
    if len(present) > 1:
        raise SystemExit(f"{loc} must set at most one of: json, form, body")
    if "json" in raw:
        options.append(with_json_body(raw["json"]))
    elif "form" in raw:
        options.append(with_form_body(_as_form(raw["form"], name=f"{loc}.form")))
    elif "body" in raw:
        options.append(with_body(_require_str(raw["body"], name=f"{loc}.body")))

    # Headers after the body so an explicit Content-Type wins.
    for k, v in _as_str_dict(raw.get("headers"), name=f"{loc}.headers").items():
        options.append(with_header(k, v))

    query = raw.get("query")
    if query is not None:
        options.append(with_query(_as_form(query, name=f"{loc}.query")))

    if _as_bool(raw.get("fail_fast"), name=f"{loc}.fail_fast", default=False):
        options.append(fail_fast())

    options.extend(_parse_expect(raw.get("expect"), name=f"{loc}.expect"))
    return CaseEntry(name=name, method=method, path=path, options=tuple(options))


def _parse_expect(raw: Any, *, name: str) -> list[Option]:
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise SystemExit(f"{name} must be a mapping")
    _reject_unknown(raw, _EXPECT_KEYS, name=name)

    options: list[Option] = []
    status = raw.get("status")
    if status is not None:
        if not isinstance(status, int) or isinstance(status, bool) or not 100 <= status <= 599:
            raise SystemExit(f"{name}.status must be an integer between 100 and 599")
        options.append(expect_status(status))

    for k, v in _as_str_dict(raw.get("headers"), name=f"{name}.headers").items():
        options.append(expect_header(k, v))

    if "body" in raw:
        options.append(expect_raw_body(_require_str(raw["body"], name=f"{name}.body")))

    compare: list[CompareOption] = []
    for p in _as_path_list(raw.get("ignore_fields"), name=f"{name}.ignore_fields"):
        compare.append(ignore_field(p))
    for p in _as_path_list(raw.get("not_empty"), name=f"{name}.not_empty"):
        compare.append(not_empty(p))

    sort_lists = raw.get("sort_lists")
    if sort_lists is True:
        compare.append(sort_slices())
    elif isinstance(sort_lists, list):
        for p in _as_path_list(sort_lists, name=f"{name}.sort_lists"):
            compare.append(sort_slices(path=p))
    elif sort_lists is not None and sort_lists is not False:
        raise SystemExit(f"{name}.sort_lists must be a boolean or a list of paths")

    if "json" in raw:
        if raw["json"] is None:
            raise SystemExit(f"{name}.json must not be null")
        options.append(expect_json(raw["json"], *compare))
    elif compare:
        raise SystemExit(f"{name} comparison options require {name}.json")
    return options


def _reject_unknown(value: dict[str, Any], allowed: set[str], *, name: str) -> None:
    unknown = sorted(set(value) - allowed)
    if unknown:
        raise SystemExit(f"{name} has unknown keys: {', '.join(map(str, unknown))}")


def _require_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise SystemExit(f"{name} must be a string")
    return value


def _require_non_empty_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise SystemExit(f"{name} must be a non-empty string")
    return value


def _as_optional_non_empty_str(value: Any, *, name: str) -> str | None:
    if value is None:
        return None
    return _require_non_empty_str(value, name=name)


def _as_bool(value: Any, *, name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise SystemExit(f"{name} must be a boolean")


def _as_str_dict(value: Any, *, name: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SystemExit(f"{name} must be a mapping of string->string")
    out: dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not k or not isinstance(v, str):
            raise SystemExit(f"{name} must be a mapping of string->string")
        out[k] = v
    return out


def _as_form(value: Any, *, name: str) -> dict[str, str | list[str]]:
    if not isinstance(value, dict):
        raise SystemExit(f"{name} must be a mapping of string->string or list of strings")
    out: dict[str, str | list[str]] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not k:
            raise SystemExit(f"{name} keys must be non-empty strings")
        if isinstance(v, (str, int, float)) and not isinstance(v, bool):
            out[k] = str(v)
        elif isinstance(v, list) and all(isinstance(x, str) for x in v):
            out[k] = list(v)
        else:
            raise SystemExit(f"{name}.{k} must be a string or a list of strings")
    return out


def _as_path_list(value: Any, *, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SystemExit(f"{name} must be a list of paths")
    for idx, p in enumerate(value, start=1):
        if not isinstance(p, str):
            raise SystemExit(f"{name}[{idx}] must be a string")
        try:
            parse_path(p)
        except ValueError as exc:
            raise SystemExit(f"{name}[{idx}] is not a valid path: {exc}") from exc
    return list(value)
