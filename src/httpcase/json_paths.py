from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

# Field paths used by comparison options.
#
# Supported path formats:
# - Dot + brackets: "time", "data.updatedAt", "items[0].id", "items[*].id"
# - Optional "$." prefix for dot paths: "$.data.updatedAt"
# - JSON Pointer (RFC 6901): "/data/updatedAt", "/items/0/id"
#
# Name segments address dict keys and object attributes alike; integer
# segments address sequence indices. "*" matches any single segment.

_WILDCARD = "*"

Segment = str | int


@dataclass(frozen=True)
class PathPattern:
    raw: str
    segments: tuple[Segment, ...]

    def matches(self, path: Sequence[Any]) -> bool:
        if len(path) != len(self.segments):
            return False
        for want, got in zip(self.segments, path):
            if want == _WILDCARD:
                continue
            if isinstance(want, int):
                if not isinstance(got, int) or isinstance(got, bool) or got != want:
                    return False
                continue
            if not isinstance(got, str) or got != want:
                return False
        return True

    def regex(self) -> str:
        # Matches deepdiff's rendering: root['key'], root[0], root.attr
        parts = ["^root"]
        for seg in self.segments:
            if seg == _WILDCARD:
                parts.append(r"(?:\[[^\]]*\]|\.[A-Za-z_][A-Za-z0-9_]*)")
            elif isinstance(seg, int):
                parts.append(re.escape(f"[{seg}]"))
            else:
                parts.append(
                    "(?:" + re.escape(f"[{seg!r}]") + "|" + re.escape(f".{seg}") + ")"
                )
        parts.append("$")
        return "".join(parts)

    def __str__(self) -> str:
        return self.raw


def parse_path(path: str) -> PathPattern:
    if not isinstance(path, str):
        raise ValueError("path must be a string")
    raw = path.strip()
    if not raw:
        raise ValueError("path must be a non-empty string")

    if raw.startswith("/"):
        return PathPattern(raw, _pointer_segments(raw))
    if raw == "$":
        raise ValueError("path '$' would address the whole document")
    return PathPattern(raw, _dotted_segments(raw[2:] if raw.startswith("$.") else raw))


def _pointer_segments(ptr: str) -> tuple[Segment, ...]:
    out: list[Segment] = []
    for part in ptr[1:].split("/"):
        if not part:
            raise ValueError(f"empty segment in JSON pointer {ptr!r}")
        token = part.replace("~1", "/").replace("~0", "~")
        out.append(int(token) if token.isdigit() else token)
    return tuple(out)


_STEP_RE = re.compile(
    r"""\.?(?:
        (?P<name>[^.\[\]]+)
      | \[(?P<index>\d+|\*)\]
      | \[(?P<quote>['"])(?P<key>.*?)(?P=quote)\]
    )""",
    re.VERBOSE,
)


def _dotted_segments(path: str) -> tuple[Segment, ...]:
    out: list[Segment] = []
    pos = 0
    while pos < len(path):
        m = _STEP_RE.match(path, pos)
        if m is None:
            raise ValueError(f"invalid path {path!r} at offset {pos}")
        if m["name"] is not None:
            out.append(m["name"].strip())
        elif m["index"] is not None:
            out.append(_WILDCARD if m["index"] == _WILDCARD else int(m["index"]))
        else:
            out.append(m["key"])
        pos = m.end()
    if not out or any(seg == "" for seg in out):
        raise ValueError(f"invalid path {path!r}")
    return tuple(out)
