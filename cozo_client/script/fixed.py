"""Builders for the non-graph fixed rules: ReorderSort, CsvReader, JsonReader.

Optional keyword arguments left as ``None`` are left out of the emitted
argument list, so the engine applies its own default for them.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..errors import UsageError
from ..literals import to_literal
from .base import (
    QueryRequest,
    bindings,
    ensure_identifier,
    ensure_identifiers,
    ensure_non_negative_int,
    ensure_positive_int,
    ensure_text,
    format_options,
)

INDEX_COLUMN = "_idx"


def _flag(name: str, value: Optional[bool]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise UsageError(f"{name} must be a boolean")
    return f"{name}: {to_literal(value)}"


def _sort_options(
    columns: List[str],
    sort_by: Sequence[str],
    descending: Optional[bool],
    break_ties: Optional[bool],
    skip: Optional[int],
    take: Optional[int],
) -> List[Optional[str]]:
    keys = ensure_identifiers(sort_by, "sort_by")
    unknown = [key for key in keys if key not in columns]
    if unknown:
        raise UsageError(f"sort_by references unknown columns {unknown}")
    return [
        f"out: [{bindings(columns)}]",
        f"sort_by: [{bindings(keys)}]",
        _flag("descending", descending),
        _flag("break_ties", break_ties),
        None if skip is None else f"skip: {ensure_non_negative_int(skip, 'skip')}",
        None if take is None else f"take: {ensure_positive_int(take, 'take')}",
    ]


def _reorder_sort(
    rule_line: str,
    rule_name: str,
    columns: List[str],
    sort_by: Sequence[str],
    descending: Optional[bool],
    break_ties: Optional[bool],
    skip: Optional[int],
    take: Optional[int],
    rank_column: str,
) -> QueryRequest:
    rank_column = ensure_identifier(rank_column, "rank_column")
    if rank_column in columns:
        raise UsageError(f"rank_column {rank_column!r} clashes with a data column")
    options = _sort_options(columns, sort_by, descending, break_ties, skip, take)
    head = bindings([rank_column] + columns)
    call = f"ReorderSort({rule_name}[{bindings(columns)}], {format_options(options)})"
    return QueryRequest(f"{rule_line}\n?[{head}] <~ {call}", {}, immutable=True)


def reorder_sort(
    relation: str,
    *,
    columns: Sequence[str],
    sort_by: Sequence[str],
    descending: Optional[bool] = None,
    break_ties: Optional[bool] = None,
    skip: Optional[int] = None,
    take: Optional[int] = None,
    rank_column: str = "rank",
) -> QueryRequest:
    """Sort and paginate the rows of a stored relation.

    The output has ``rank_column`` (the row's position in the sorted order)
    followed by ``columns``.

    ```python
    reorder_sort("users", columns=["name", "score"], sort_by=["score"], descending=True, take=10)
    ```
    """
    relation = ensure_identifier(relation, "relation")
    cols = ensure_identifiers(columns, "columns")
    rule_line = f"data[{bindings(cols)}] := *{relation}{{{bindings(cols)}}}"
    return _reorder_sort(rule_line, "data", cols, sort_by, descending, break_ties, skip, take, rank_column)


def reorder_sort_rule(
    rule: str,
    *,
    columns: Sequence[str],
    sort_by: Sequence[str],
    rule_name: str = "data",
    descending: Optional[bool] = None,
    break_ties: Optional[bool] = None,
    skip: Optional[int] = None,
    take: Optional[int] = None,
    rank_column: str = "rank",
) -> QueryRequest:
    """Sort and paginate the rows of an inline rule.

    ``rule`` is script text defining ``rule_name`` with the given
    ``columns``, e.g. ``"data[name, age] := *users{name, age}"``. It is
    inserted as given.
    """
    rule = ensure_text(rule, "rule")
    name = ensure_identifier(rule_name, "rule_name")
    cols = ensure_identifiers(columns, "columns")
    return _reorder_sort(rule.strip(), name, cols, sort_by, descending, break_ties, skip, take, rank_column)


def _output_columns(
    columns: Optional[Sequence[str]],
    defaults: List[str],
    prepend_index: Optional[bool],
) -> List[str]:
    if columns is None:
        out = list(defaults)
    else:
        out = ensure_identifiers(columns, "columns")
    if prepend_index:
        if len(out) == len(defaults):
            if INDEX_COLUMN in out:
                raise UsageError(f"columns already contain {INDEX_COLUMN!r}")
            out.insert(0, INDEX_COLUMN)
        elif len(out) != len(defaults) + 1:
            raise UsageError(f"expected {len(defaults)} columns (or {len(defaults) + 1} with the index column), got {len(out)}")
    elif len(out) != len(defaults):
        raise UsageError(f"expected {len(defaults)} columns, got {len(out)}")
    return out


def read_csv(
    url: str,
    *,
    types: Sequence[str],
    columns: Optional[Sequence[str]] = None,
    delimiter: Optional[str] = None,
    prepend_index: Optional[bool] = None,
    has_headers: Optional[bool] = None,
) -> QueryRequest:
    """Read a CSV file (``file://``, ``http://`` or ``https://``) as rows.

    ``types`` gives one column type per CSV column; output columns default
    to ``_0``, ``_1``, ... and get a leading ``_idx`` when ``prepend_index``
    is set.
    """
    url = ensure_text(url, "url")
    if isinstance(types, (str, bytes)) or not isinstance(types, Sequence) or not types:
        raise UsageError("types must be a non-empty sequence of type names")
    type_names = [ensure_text(t, f"types[{idx}]") for idx, t in enumerate(types)]
    out = _output_columns(columns, [f"_{idx}" for idx in range(len(type_names))], prepend_index)
    if delimiter is not None and (not isinstance(delimiter, str) or len(delimiter) != 1):
        raise UsageError("delimiter must be a single character")
    options = [
        f"url: {to_literal(url)}",
        f"types: {to_literal(type_names)}",
        None if delimiter is None else f"delimiter: {to_literal(delimiter)}",
        _flag("prepend_index", prepend_index),
        _flag("has_headers", has_headers),
    ]
    return QueryRequest(f"?[{bindings(out)}] <~ CsvReader({format_options(options)})", {}, immutable=True)


def read_json(
    url: str,
    *,
    fields: Sequence[Tuple[str, str]],
    columns: Optional[Sequence[str]] = None,
    json_lines: Optional[bool] = None,
    null_if_absent: Optional[bool] = None,
    prepend_index: Optional[bool] = None,
) -> QueryRequest:
    """Read JSON (or JSON Lines) records as rows.

    ``fields`` is a list of ``(json_path, type)`` pairs. Output columns
    default to the paths with ``.`` replaced by ``_``.
    """
    url = ensure_text(url, "url")
    if isinstance(fields, (str, bytes)) or not isinstance(fields, Sequence) or not fields:
        raise UsageError("fields must be a non-empty sequence of (path, type) pairs")
    pairs: List[List[str]] = []
    for idx, item in enumerate(fields):
        if isinstance(item, (str, bytes)) or not isinstance(item, Sequence) or len(item) != 2:
            raise UsageError(f"fields[{idx}] must be a (path, type) pair")
        pairs.append([ensure_text(item[0], f"fields[{idx}] path"), ensure_text(item[1], f"fields[{idx}] type")])
    defaults = [path.replace(".", "_") for path, _ in pairs]
    if columns is None:
        ensure_identifiers(defaults, "derived column names")
    out = _output_columns(columns, defaults, prepend_index)
    options: List[Optional[str]] = [
        f"url: {to_literal(url)}",
        f"fields: {to_literal(pairs)}",
        _flag("json_lines", json_lines),
        _flag("null_if_absent", null_if_absent),
        _flag("prepend_index", prepend_index),
    ]
    return QueryRequest(f"?[{bindings(out)}] <~ JsonReader({format_options(options)})", {}, immutable=True)
