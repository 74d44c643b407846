"""Query requests and the validation helpers shared by every script builder."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import UsageError

# Plain identifiers, optionally dotted for namespaced relations.
_IDENTIFIER_REGEX = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*")

# Parameter name used for the out-of-band query payload of index searches.
QUERY_PARAM = "_q"


@dataclass(frozen=True)
class QueryRequest:
    """A script plus the named parameters passed alongside it.

    ``immutable`` is True when the script only reads, so it may be run
    through the engine's read-only entry point.
    """

    script: str
    params: Mapping[str, Any] = field(default_factory=dict)
    immutable: bool = False


def ensure_identifier(name: Any, ctx: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise UsageError(f"{ctx} must be a non-empty string")
    if not _IDENTIFIER_REGEX.fullmatch(name):
        raise UsageError(f"{ctx} {name!r} is not a valid identifier")
    return name


def ensure_identifiers(names: Any, ctx: str, *, allow_empty: bool = False) -> List[str]:
    if isinstance(names, (str, bytes)) or not isinstance(names, Sequence):
        raise UsageError(f"{ctx} must be a sequence of names")
    result: List[str] = []
    for idx, name in enumerate(names):
        checked = ensure_identifier(name, f"{ctx}[{idx}]")
        if checked in result:
            raise UsageError(f"{ctx} contains duplicate name {checked!r}")
        result.append(checked)
    if not result and not allow_empty:
        raise UsageError(f"{ctx} requires at least one name")
    return result


def ensure_positive_int(value: Any, ctx: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise UsageError(f"{ctx} must be a positive integer")
    return value


def ensure_non_negative_int(value: Any, ctx: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise UsageError(f"{ctx} must be a non-negative integer")
    return value


def ensure_number(value: Any, ctx: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise UsageError(f"{ctx} must be a finite number")
    return value


def ensure_text(value: Any, ctx: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise UsageError(f"{ctx} must be a non-empty string")
    return value


def bindings(names: Sequence[str]) -> str:
    return ", ".join(names)


def format_options(options: Sequence[Optional[str]]) -> str:
    """Join ``key: value`` fragments, skipping the ones left out."""
    return ", ".join(option for option in options if option is not None)


def merge_params(base: Mapping[str, Any], extra: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    params = dict(base)
    if extra is None:
        return params
    if not isinstance(extra, Mapping):
        raise UsageError("additional_params must be a mapping")
    for key, value in extra.items():
        if not isinstance(key, str) or not key:
            raise UsageError("parameter names must be non-empty strings")
        if key in params:
            raise UsageError(f"parameter ${key} is reserved by the builder")
        params[key] = value
    return params
