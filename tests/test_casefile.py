from __future__ import annotations

from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch

from httpcase import CaseFailed, LiveServer, RemoteServer, Suite, load_case_file


def test_load_and_run_cases(tmp_path: Path, plain_server: LiveServer) -> None:
    spec = tmp_path / "cases.yml"
    spec.write_text(
        "settings:\n  timeout: 5\n"
        "cases:\n"
        "  - name: index says hello\n"
        "    path: /\n"
        "    expect:\n"
        "      status: 200\n"
        "      headers:\n        Content-Type: text/plain\n"
        "      body: hello world\n"
        "  - path: /missing\n"
        "    expect:\n      status: 404\n",
        encoding="utf-8",
    )
    cases = load_case_file(spec)
    assert cases.settings.timeout == 5.0
    assert [c.name for c in cases.cases] == ["index says hello", "GET /missing"]

    suite = Suite(RemoteServer(plain_server.url, settings=cases.settings))
    for _name, case in cases.bind(suite):
        case()


def test_failing_case_from_file(tmp_path: Path, plain_server: LiveServer) -> None:
    spec = tmp_path / "cases.yml"
    spec.write_text(
        "cases:\n  - path: /\n    fail_fast: true\n    expect:\n      status: 201\n      body: nope\n",
        encoding="utf-8",
    )
    (entry,) = load_case_file(spec).cases
    with pytest.raises(CaseFailed) as info:
        entry.build(Suite(plain_server))()
    assert len(info.value.failures) == 1


def test_request_and_comparison_keys(tmp_path: Path) -> None:
    spec = tmp_path / "cases.yml"
    spec.write_text(
        "cases:\n"
        "  - name: create\n"
        "    method: post\n"
        "    path: /items\n"
        "    json: {name: widget}\n"
        "    headers: {Content-Type: application/vnd.items+json}\n"
        "    query: {dry_run: 'true'}\n"
        "    expect:\n"
        "      status: 201\n"
        "      json: {id: 1, name: widget, tags: [a, b]}\n"
        "      ignore_fields: [updatedAt]\n"
        "      not_empty: [id]\n"
        "      sort_lists: [tags]\n",
        encoding="utf-8",
    )
    (entry,) = load_case_file(spec).cases
    assert entry.method == "POST"
    case = entry.build(Suite("https://example.test"))
    assert case.spec.expected_status == 201
    assert case.spec.expected_json == {"id": 1, "name": "widget", "tags": ["a", "b"]}
    assert len(case.spec.comparison_options) == 3
    assert case.spec.body == b'{"name":"widget"}'
    # body content type, then the explicit header, then the query
    assert len(case.spec.request_mutators) == 3


def test_env_vars_are_expanded(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("API_TOKEN", "s3cret")
    spec = tmp_path / "cases.yml"
    spec.write_text(
        "settings:\n  headers:\n    Authorization: Bearer ${API_TOKEN}\n"
        "cases:\n  - path: /\n",
        encoding="utf-8",
    )
    cases = load_case_file(spec, require_env=True)
    assert cases.settings.headers == {"Authorization": "Bearer s3cret"}


def test_require_env_fails_on_unexpanded(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_TOKEN", raising=False)
    spec = tmp_path / "cases.yml"
    spec.write_text(
        "cases:\n  - path: /\n    headers:\n      Authorization: Bearer ${MISSING_TOKEN}\n",
        encoding="utf-8",
    )
    with pytest.raises(SystemExit, match="MISSING_TOKEN"):
        load_case_file(spec, require_env=True)
    assert load_case_file(spec).cases


@pytest.mark.parametrize(
    "text,message",
    [
        ("- path: /\n", "case file must be a YAML mapping"),
        ("cases: []\n", "cases must be a non-empty list"),
        ("cases:\n  - method: GET\n", r"cases\[1\].path must be a non-empty string"),
        ("cases:\n  - path: items\n", r"cases\[1\].path must start with '/'"),
        ("cases:\n  - path: /\n    json: {}\n    body: x\n", "at most one of"),
        ("cases:\n  - path: /\n    retries: 3\n", "unknown keys: retries"),
        ("cases:\n  - path: /\n    expect: {status: 99}\n", "between 100 and 599"),
        ("cases:\n  - path: /\n    expect: {ignore_fields: [a]}\n", "require"),
        ("cases:\n  - path: /\n    expect: {json: {}, not_empty: ['a[']}\n", "not a valid path"),
        ("cases:\n  - path: /\n  - path: /\n", "duplicate case name: GET /"),
        ("settings: {timeout: -1}\ncases:\n  - path: /\n", "settings.timeout must be > 0"),
        ("settings: {verify_tls: 'no'}\ncases:\n  - path: /\n", "must be a boolean"),
    ],
)
def test_invalid_case_files(tmp_path: Path, text: str, message: str) -> None:
    spec = tmp_path / "cases.yml"
    spec.write_text(text, encoding="utf-8")
    with pytest.raises(SystemExit, match=message):
        load_case_file(spec)
