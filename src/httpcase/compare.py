from __future__ import annotations

import copy
import dataclasses
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Sequence

from deepdiff import DeepDiff
from deepdiff.operator import BaseOperator
from pydantic import BaseModel

from .json_paths import PathPattern, parse_path

# Directives come in three kinds, applied together by diff():
# - transforms rewrite copies of both values before comparison (in order),
# - operators decide equality of a single level (first one to settle wins),
# - exclusions drop a path from the comparison altogether.


class CompareOption:
    def transform(self, value: Any) -> Any:
        return value

    def operator(self) -> BaseOperator | None:
        return None

    def exclusion(self) -> str | None:
        return None


def diff(want: Any, got: Any, options: Sequence[CompareOption] = ()) -> str:
    """Return a human readable diff of ``want`` against ``got``, or ``""``."""
    for opt in options:
        want = opt.transform(want)
        got = opt.transform(got)

    operators: list[BaseOperator] = []
    exclusions: list[str] = []
    for opt in options:
        op = opt.operator()
        if op is not None:
            operators.append(op)
        rx = opt.exclusion()
        if rx is not None:
            exclusions.append(rx)

    result = DeepDiff(
        want,
        got,
        exclude_regex_paths=exclusions or None,
        custom_operators=operators or None,
    )
    if not result:
        return ""
    return str(result.pretty())


def equate_approx_time(margin: timedelta | float, *, path: str | None = None) -> CompareOption:
    if not isinstance(margin, timedelta):
        margin = timedelta(seconds=float(margin))
    if margin < timedelta(0):
        raise ValueError("margin must be non-negative")
    return _ApproxTime(margin, parse_path(path) if path is not None else None)


def ignore_field(path: str) -> CompareOption:
    return _IgnoreField(parse_path(path))


def ignore_unexported(*types: type) -> CompareOption:
    if not types:
        raise TypeError("ignore_unexported needs at least one type")
    for t in types:
        if not isinstance(t, type):
            raise TypeError(f"ignore_unexported expects types, got {t!r}")
    return _IgnoreUnexported(tuple(types))


def not_empty(path: str) -> CompareOption:
    return _NotEmpty(parse_path(path))


def sort_slices(
    key: Callable[[Any], Any] | None = None,
    *,
    path: str | None = None,
    reverse: bool = False,
) -> CompareOption:
    return _SortSlices(key, parse_path(path) if path is not None else None, reverse)


class _PathOperator(BaseOperator):
    def __init__(self, path: PathPattern | None) -> None:
        super().__init__()
        self.path = path
        self._pattern = re.compile(path.regex()) if path is not None else None

    def _at_path(self, level: Any) -> bool:
        if self._pattern is None:
            return True
        return self._pattern.search(level.path()) is not None


class _ApproxTimeOperator(_PathOperator):
    def __init__(self, margin: timedelta, path: PathPattern | None) -> None:
        super().__init__(path)
        self.margin = margin

    def match(self, level: Any) -> bool:
        if not (isinstance(level.t1, datetime) and isinstance(level.t2, datetime)):
            return False
        return self._at_path(level)

    def give_up_diffing(self, level: Any, diff_instance: Any) -> bool:
        try:
            delta = abs(level.t1 - level.t2)
        except TypeError:
            # naive vs aware; leave it to the default comparison
            return False
        return delta <= self.margin


class _NotEmptyOperator(_PathOperator):
    def match(self, level: Any) -> bool:
        return self._at_path(level)

    def give_up_diffing(self, level: Any, diff_instance: Any) -> bool:
        return not _is_zero(level.t1) and not _is_zero(level.t2)


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    try:
        zero = type(value)()
    except TypeError:
        # no default constructor, so no zero value to compare against
        return False
    return bool(value == zero)


@dataclasses.dataclass(frozen=True)
class _ApproxTime(CompareOption):
    margin: timedelta
    path: PathPattern | None

    def operator(self) -> BaseOperator:
        return _ApproxTimeOperator(self.margin, self.path)


@dataclasses.dataclass(frozen=True)
class _NotEmpty(CompareOption):
    path: PathPattern

    def operator(self) -> BaseOperator:
        return _NotEmptyOperator(self.path)


@dataclasses.dataclass(frozen=True)
class _IgnoreField(CompareOption):
    path: PathPattern

    def exclusion(self) -> str:
        return self.path.regex()


@dataclasses.dataclass(frozen=True)
class _IgnoreUnexported(CompareOption):
    types: tuple[type, ...]

    def transform(self, value: Any) -> Any:
        return _rebuild(value, (), self._strip)

    def _strip(self, value: Any, _path: tuple[Any, ...]) -> Any:
        if not isinstance(value, self.types) or not hasattr(value, "__dict__"):
            return value
        clone = copy.copy(value)
        attrs = vars(clone)
        for name in [n for n in attrs if n.startswith("_")]:
            del attrs[name]
        return clone


@dataclasses.dataclass(frozen=True)
class _SortSlices(CompareOption):
    key: Callable[[Any], Any] | None
    path: PathPattern | None
    reverse: bool

    def transform(self, value: Any) -> Any:
        return _rebuild(value, (), self._sort)

    def _sort(self, value: Any, path: tuple[Any, ...]) -> Any:
        if not isinstance(value, (list, tuple)) or hasattr(value, "_fields"):
            return value
        if self.path is not None and not self.path.matches(path):
            return value
        try:
            ordered = sorted(value, key=self.key, reverse=self.reverse)
        except TypeError:
            # elements the key cannot order are compared as they came
            return value
        return tuple(ordered) if isinstance(value, tuple) else ordered


def _is_record(value: Any) -> bool:
    if isinstance(value, type) or not hasattr(value, "__dict__"):
        return False
    return dataclasses.is_dataclass(value) or isinstance(value, BaseModel)


def _rebuild(
    value: Any, path: tuple[Any, ...], visit: Callable[[Any, tuple[Any, ...]], Any]
) -> Any:
    # Rebuilds containers bottom-up so the caller's values are never mutated.
    if isinstance(value, dict):
        value = {k: _rebuild(v, path + (k,), visit) for k, v in value.items()}
    elif isinstance(value, list):
        value = [_rebuild(v, path + (i,), visit) for i, v in enumerate(value)]
    elif isinstance(value, tuple) and not hasattr(value, "_fields"):
        value = tuple(_rebuild(v, path + (i,), visit) for i, v in enumerate(value))
    elif _is_record(value):
        value = copy.copy(value)
        attrs = vars(value)
        for name, child in list(attrs.items()):
            attrs[name] = _rebuild(child, path + (name,), visit)
    return visit(value, path)
