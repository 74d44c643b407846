"""Conversion of Python values into CozoScript literal syntax."""

from __future__ import annotations

import math
from typing import Any, Iterable, Iterator, List, Tuple

from .errors import UsageError


class Vector:
    """Sequence of floats that encodes through the ``vec()`` constructor."""

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[float]):
        if isinstance(values, (str, bytes, bytearray)):
            raise UsageError("vector values must be a sequence of numbers")
        items: List[float] = []
        for idx, value in enumerate(values):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise UsageError(f"vector component {idx} must be a number, got {type(value).__name__}")
            items.append(float(value))
        self._values: Tuple[float, ...] = tuple(items)

    @property
    def values(self) -> Tuple[float, ...]:
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Vector):
            return self._values == other._values
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        return f"Vector({list(self._values)!r})"


def _escape_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _float_literal(value: float) -> str:
    # No literal spelling exists for NaN or infinity; they take the string fallback.
    if not math.isfinite(value):
        return _escape_string(str(value))
    # repr() keeps a fractional part or exponent, so 30.0 stays a float.
    return repr(value)


def to_literal(value: Any) -> str:
    """Encode ``value`` as CozoScript literal text.

    Never raises. Unknown types and non-finite floats fall back to their
    ``str()`` form as a quoted string; encode such values explicitly if they
    must round-trip.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _float_literal(value)
    if isinstance(value, str):
        return _escape_string(value)
    if isinstance(value, Vector):
        return "vec([" + ", ".join(_float_literal(v) for v in value) + "])"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(to_literal(item) for item in value) + "]"
    return _escape_string(str(value))


def to_row_literals(rows: Iterable[Iterable[Any]]) -> str:
    """Encode a list of rows as a nested list literal."""
    return "[" + ", ".join(to_literal(list(row)) for row in rows) + "]"
