"""Decoding of engine response envelopes into tabular results."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import QueryError, SessionError, UsageError

_DEFAULT_ERROR_MESSAGE = "Unknown query error"

Row = Tuple[Any, ...]


class TabularResult:
    """Immutable outcome of a successful script: column names, rows and timing."""

    __slots__ = ("_columns", "_rows", "_elapsed")

    def __init__(
        self,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]] = (),
        elapsed_seconds: Optional[float] = None,
    ):
        names = tuple(str(name) for name in columns)
        seen = set()
        for name in names:
            if name in seen:
                raise UsageError(f'duplicate column name "{name}"')
            seen.add(name)
        self._columns: Tuple[str, ...] = names
        self._rows: Tuple[Row, ...] = tuple(tuple(row) for row in rows)
        self._elapsed = None if elapsed_seconds is None else float(elapsed_seconds)

    @property
    def columns(self) -> Tuple[str, ...]:
        return self._columns

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self._rows

    @property
    def elapsed_seconds(self) -> Optional[float]:
        """Engine-reported running time; ``None`` when the engine did not say."""
        return self._elapsed

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    @property
    def is_empty(self) -> bool:
        return not self._rows

    @property
    def is_not_empty(self) -> bool:
        return bool(self._rows)

    def column_index(self, name: str) -> int:
        """Position of column ``name``, or -1 if the result has no such column."""
        try:
            return self._columns.index(name)
        except ValueError:
            return -1

    def column(self, name: str) -> List[Any]:
        idx = self.column_index(name)
        if idx == -1:
            raise UsageError(f'column "{name}" not found')
        return [row[idx] if idx < len(row) else None for row in self._rows]

    def _row_dict(self, row: Row) -> Dict[str, Any]:
        return {name: value for name, value in zip(self._columns, row)}

    def to_dicts(self) -> List[Dict[str, Any]]:
        """Rows as ``{column: value}`` mappings; surplus cells are dropped."""
        return [self._row_dict(row) for row in self._rows]

    def first(self) -> Optional[Dict[str, Any]]:
        if not self._rows:
            return None
        return self._row_dict(self._rows[0])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TabularResult):
            return NotImplemented
        return (
            self._columns == other._columns
            and self._rows == other._rows
            and self._elapsed == other._elapsed
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        took = "unknown" if self._elapsed is None else f"{self._elapsed}s"
        return f"TabularResult({len(self._rows)} rows, {len(self._columns)} columns, took: {took})"


def _parse_envelope(text: str) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as err:
        raise QueryError(f"malformed response: {err}", raw_response=text) from err
    if not isinstance(payload, dict):
        raise QueryError("malformed response: envelope must be a JSON object", raw_response=text)
    return payload


def _failure_message(payload: Mapping[str, Any]) -> str:
    for key in ("display", "message"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return _DEFAULT_ERROR_MESSAGE


def _elapsed(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def decode_response(text: str) -> TabularResult:
    """Decode the engine's JSON envelope into a :class:`TabularResult`.

    Envelope fields: ``ok`` (bool), ``headers`` (list of names), ``rows``
    (list of lists), ``took`` (seconds, optional). Failures carry
    ``display`` (falling back to ``message``).

    Raises:
        QueryError: if the envelope reports failure or cannot be parsed. The
            error's ``raw_response`` is ``text`` verbatim.
    """
    payload = _parse_envelope(text)
    if payload.get("ok") is not True:
        raise QueryError(_failure_message(payload), raw_response=text)

    headers = payload.get("headers") or []
    rows = payload.get("rows") or []
    if not isinstance(headers, list):
        raise QueryError("malformed response: headers must be a list", raw_response=text)
    if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
        raise QueryError("malformed response: rows must be a list of lists", raw_response=text)
    try:
        return TabularResult(headers, rows, _elapsed(payload.get("took")))
    except UsageError as err:
        raise QueryError(f"malformed response: {err.message}", raw_response=text) from err


def decode_export(payload: Union[str, Mapping[str, Any]]) -> Dict[str, Any]:
    """Unwrap an export envelope into its relation-name-keyed data.

    Accepts the raw JSON text or an already decoded mapping; the relation
    data itself is passed through untouched. Payloads without an ``ok`` flag
    are returned as they are.

    Raises:
        SessionError: if the payload is not a JSON object or reports failure.
    """
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except ValueError as err:
            raise SessionError(f"export failed: malformed response: {err}") from err
    else:
        data = payload
    if not isinstance(data, Mapping):
        raise SessionError("export failed: response must be a JSON object")
    if "ok" not in data:
        return dict(data)
    if data.get("ok") is not True:
        raise SessionError(f"export failed: {_failure_message(data)}")
    inner = data.get("data")
    if isinstance(inner, Mapping):
        return dict(inner)
    return {key: value for key, value in data.items() if key != "ok"}
