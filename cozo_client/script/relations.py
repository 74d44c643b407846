"""Builders for writing, removing and declaring stored relations."""

from __future__ import annotations

from typing import Any, Collection, List, Mapping, Optional, Sequence

from ..errors import UsageError
from ..literals import Vector, to_literal
from .base import QueryRequest, bindings, ensure_identifier, ensure_identifiers, ensure_text

_NOOP_SCRIPT = "?[] <- [[]]"


def noop() -> QueryRequest:
    """A valid script that touches nothing, used for empty row sets."""
    return QueryRequest(_NOOP_SCRIPT, {}, immutable=True)


def _row_columns(rows: Sequence[Mapping[str, Any]], ctx: str) -> List[str]:
    first = rows[0]
    if not isinstance(first, Mapping):
        raise UsageError(f"{ctx}[0] must be a mapping of column -> value")
    columns = ensure_identifiers(list(first.keys()), f"{ctx} columns")
    expected = set(columns)
    for idx, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise UsageError(f"{ctx}[{idx}] must be a mapping of column -> value")
        keys = set(row.keys())
        if keys != expected:
            missing = sorted(expected - keys)
            extra = sorted(str(key) for key in keys - expected)
            raise UsageError(
                f"{ctx}[{idx}] has inconsistent columns (missing: {missing}, unexpected: {extra})"
            )
    return columns


def _cell_literal(column: str, value: Any, vector_columns: Collection[str]) -> str:
    if column in vector_columns and value is not None and not isinstance(value, Vector):
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise UsageError(f'vector column "{column}" requires a sequence of numbers')
        value = Vector(value)
    return to_literal(value)


def _inline_rows(
    directive: str,
    relation: str,
    rows: Sequence[Mapping[str, Any]],
    vector_columns: Collection[str] = (),
) -> QueryRequest:
    relation = ensure_identifier(relation, "relation")
    if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
        raise UsageError("rows must be a sequence of mappings")
    if not rows:
        return noop()
    columns = _row_columns(rows, "rows")
    data = ", ".join(
        "[" + ", ".join(_cell_literal(col, row[col], vector_columns) for col in columns) + "]"
        for row in rows
    )
    head = bindings(columns)
    script = f"?[{head}] <- [{data}]\n:{directive} {relation} {{{head}}}"
    return QueryRequest(script, {}, immutable=False)


def upsert(
    relation: str,
    rows: Sequence[Mapping[str, Any]],
    *,
    vector_columns: Collection[str] = (),
) -> QueryRequest:
    """Insert or update ``rows`` in ``relation``.

    Column order follows the first row's keys. Values of ``vector_columns``
    are wrapped in ``vec()``.

    ```python
    upsert("users", [{"id": 1, "name": "Alice"}]).script
    # ?[id, name] <- [[1, "Alice"]]
    # :put users {id, name}
    ```
    """
    if isinstance(vector_columns, str):
        vector_columns = (vector_columns,)
    return _inline_rows("put", relation, rows, frozenset(vector_columns))


def delete(relation: str, keys: Sequence[Mapping[str, Any]]) -> QueryRequest:
    """Remove the rows whose key columns match ``keys``."""
    return _inline_rows("rm", relation, keys)


def create_relation(
    name: str,
    columns: Mapping[str, str],
    *,
    keys: Optional[Sequence[str]] = None,
) -> QueryRequest:
    """Declare a stored relation.

    ``columns`` maps column name to type (``"Int"``, ``"String?"``,
    ``"<F32; 128>"``, ...) in declaration order. ``keys`` defaults to the
    first column.
    """
    name = ensure_identifier(name, "relation name")
    if not isinstance(columns, Mapping) or not columns:
        raise UsageError("create_relation requires at least one column")
    declared = ensure_identifiers(list(columns.keys()), "columns")
    types = {col: ensure_text(columns[col], f'type of column "{col}"') for col in declared}
    for col, col_type in types.items():
        if any(ch in col_type for ch in "{}\n"):
            raise UsageError(f'type of column "{col}" contains invalid characters')

    if keys is None or len(keys) == 0:
        key_cols = [declared[0]]
    else:
        key_cols = ensure_identifiers(keys, "keys")
    unknown = [key for key in key_cols if key not in types]
    if unknown:
        raise UsageError(f"key columns {unknown} are not declared columns")

    key_part = ", ".join(f"{col}: {types[col]}" for col in key_cols)
    values = [col for col in declared if col not in key_cols]
    if values:
        value_part = ", ".join(f"{col}: {types[col]}" for col in values)
        schema = f"{key_part} => {value_part}"
    else:
        schema = key_part
    return QueryRequest(f":create {name} {{{schema}}}", {}, immutable=False)


def select_all(relation: str, columns: Sequence[str]) -> QueryRequest:
    """Read every row of ``relation`` under the given column names."""
    relation = ensure_identifier(relation, "relation")
    head = bindings(ensure_identifiers(columns, "columns"))
    return QueryRequest(f"?[{head}] := *{relation}{{{head}}}", {}, immutable=True)
