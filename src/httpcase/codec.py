from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError

from .errors import FatalError

T = TypeVar("T")


def encode_json(value: Any) -> bytes:
    try:
        return TypeAdapter(type(value)).dump_json(value)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise FatalError(f"couldn't encode JSON request body: {exc}") from exc


def decode_as(raw: bytes, target: Any) -> Any:
    """Decode a JSON document into a fresh value of ``target``.

    ``target`` may be any type pydantic can validate: builtins, dataclasses,
    TypedDicts, models or generic aliases such as ``list[Item]``.
    """
    return TypeAdapter(target).validate_json(raw)


class Capture(Generic[T]):
    """Receives the decoded response body of a case.

    Use with :func:`httpcase.options.capture_json` to examine a response
    outside of the case itself::

        token = Capture(Login)
        suite.test("POST", "/login", capture_json(token))()
        token.value.session_id
    """

    def __init__(self, as_type: Any = Any) -> None:
        self.as_type = as_type
        self._value: T | None = None
        self.filled = False

    @property
    def value(self) -> T:
        if not self.filled:
            raise LookupError("nothing captured yet")
        return self._value  # type: ignore[return-value]

    def fill(self, raw: bytes) -> None:
        self._value = decode_as(raw, self.as_type)
        self.filled = True

    def __repr__(self) -> str:
        if not self.filled:
            return f"Capture({self.as_type!r}, <empty>)"
        return f"Capture({self.as_type!r}, {self._value!r})"
