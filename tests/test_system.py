import pytest

from cozo_client import UsageError
from cozo_client.script import system


def test_read_only_directives() -> None:
    cases = [
        (system.list_relations(), "::relations"),
        (system.describe_relation("users"), "::columns users"),
        (system.list_indices("users"), "::indices users"),
        (system.list_running(), "::running"),
        (system.show_triggers("users"), "::show_triggers users"),
        (system.explain("?[a] := a = 1"), "::explain { ?[a] := a = 1 }"),
    ]
    for request, script in cases:
        assert request.script == script
        assert request.immutable is True


def test_mutating_directives() -> None:
    cases = [
        (system.kill(12), "::kill 12"),
        (system.remove_relations(["a", "b"]), "::remove a, b"),
        (system.rename_relations({"a": "b", "c": "d"}), "::rename a -> b, c -> d"),
        (system.set_access_level("read_only", ["users"]), "::access_level read_only users"),
        (system.set_description("users", 'all "active" users'), '::describe users "all \\"active\\" users"'),
        (system.compact(), "::compact"),
    ]
    for request, script in cases:
        assert request.script == script
        assert request.immutable is False


def test_set_triggers() -> None:
    request = system.set_triggers(
        "users",
        on_put=["?[id] := _new[id]\n:put audit {id}"],
        on_rm=["?[id] := _old[id]\n:rm audit {id}"],
    )
    assert request.script == (
        "::set_triggers users\n\n"
        "on put { ?[id] := _new[id]\n:put audit {id} }\n\n"
        "on rm { ?[id] := _old[id]\n:rm audit {id} }"
    )


def test_set_triggers_without_bodies_clears_them() -> None:
    assert system.set_triggers("users").script == "::set_triggers users"


def test_directive_validation() -> None:
    with pytest.raises(UsageError, match="access level"):
        system.set_access_level("public", ["users"])  # type: ignore[arg-type]
    with pytest.raises(UsageError, match="at least one"):
        system.remove_relations([])
    with pytest.raises(UsageError, match="at least one"):
        system.rename_relations({})
    with pytest.raises(UsageError, match="query_id"):
        system.kill(-1)
    with pytest.raises(UsageError, match="on_put"):
        system.set_triggers("users", on_put="?[a] <- [[1]]")
    with pytest.raises(UsageError, match="script"):
        system.explain("")
    with pytest.raises(UsageError):
        system.describe_relation("users\n::remove users")
