"""Builders for the engine's ``::`` system directives."""

from __future__ import annotations

from typing import Mapping, Sequence

from typing_extensions import Literal

from ..errors import UsageError
from ..literals import to_literal
from .base import QueryRequest, ensure_identifier, ensure_identifiers, ensure_non_negative_int, ensure_text

AccessLevel = Literal["normal", "protected", "read_only", "hidden"]

ACCESS_LEVELS = ("normal", "protected", "read_only", "hidden")


def list_relations() -> QueryRequest:
    return QueryRequest("::relations", {}, immutable=True)


def describe_relation(relation: str) -> QueryRequest:
    """Column metadata (name, type, key flag, ...) of ``relation``."""
    return QueryRequest(f"::columns {ensure_identifier(relation, 'relation')}", {}, immutable=True)


def list_indices(relation: str) -> QueryRequest:
    return QueryRequest(f"::indices {ensure_identifier(relation, 'relation')}", {}, immutable=True)


def explain(script: str) -> QueryRequest:
    """Execution plan of ``script`` without running it."""
    return QueryRequest(f"::explain {{ {ensure_text(script, 'script')} }}", {}, immutable=True)


def list_running() -> QueryRequest:
    return QueryRequest("::running", {}, immutable=True)


def kill(query_id: int) -> QueryRequest:
    """Cancel a running query by the id reported in ``::running``."""
    return QueryRequest(f"::kill {ensure_non_negative_int(query_id, 'query_id')}")


def remove_relations(relations: Sequence[str]) -> QueryRequest:
    names = ensure_identifiers(relations, "relations")
    return QueryRequest(f"::remove {', '.join(names)}")


def rename_relations(renames: Mapping[str, str]) -> QueryRequest:
    """Rename relations; ``renames`` maps old name to new name."""
    if not isinstance(renames, Mapping) or not renames:
        raise UsageError("rename_relations requires at least one old -> new pair")
    pairs = [
        f"{ensure_identifier(old, 'old relation name')} -> {ensure_identifier(new, 'new relation name')}"
        for old, new in renames.items()
    ]
    return QueryRequest(f"::rename {', '.join(pairs)}")


def show_triggers(relation: str) -> QueryRequest:
    return QueryRequest(f"::show_triggers {ensure_identifier(relation, 'relation')}", {}, immutable=True)


def set_triggers(
    relation: str,
    *,
    on_put: Sequence[str] = (),
    on_rm: Sequence[str] = (),
) -> QueryRequest:
    """Replace the triggers of ``relation``; empty lists clear them.

    Trigger bodies are scripts and are inserted as given.
    """
    parts = [f"::set_triggers {ensure_identifier(relation, 'relation')}"]
    for event, bodies in (("put", on_put), ("rm", on_rm)):
        if isinstance(bodies, str):
            raise UsageError(f"on_{event} must be a sequence of scripts")
        for idx, body in enumerate(bodies):
            parts.append(f"on {event} {{ {ensure_text(body, f'on_{event}[{idx}]')} }}")
    return QueryRequest("\n\n".join(parts))


def set_access_level(level: AccessLevel, relations: Sequence[str]) -> QueryRequest:
    if level not in ACCESS_LEVELS:
        raise UsageError(f"access level must be one of: {', '.join(ACCESS_LEVELS)}")
    names = ensure_identifiers(relations, "relations")
    return QueryRequest(f"::access_level {level} {', '.join(names)}")


def set_description(relation: str, description: str) -> QueryRequest:
    if not isinstance(description, str):
        raise UsageError("description must be a string")
    return QueryRequest(f"::describe {ensure_identifier(relation, 'relation')} {to_literal(description)}")


def compact() -> QueryRequest:
    return QueryRequest("::compact")
