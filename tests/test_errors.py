import pytest

from cozo_client import (
    ClosedError,
    CozoError,
    ErrorCode,
    QueryError,
    SessionError,
    UsageError,
    wrap_engine_error,
)


def test_error_code_constants_defined() -> None:
    assert ErrorCode.UNKNOWN == "UNKNOWN"
    assert ErrorCode.QUERY == "QUERY"
    assert ErrorCode.SESSION == "SESSION"
    assert ErrorCode.CLOSED == "CLOSED"
    assert ErrorCode.USAGE == "USAGE"


def test_cozo_error_defaults() -> None:
    err = CozoError("boom")
    assert err.message == "boom"
    assert err.code == ErrorCode.UNKNOWN
    assert str(err) == "[UNKNOWN] boom"


def test_query_error_keeps_raw_response() -> None:
    err = QueryError("syntax error", raw_response='{"ok":false}')
    assert isinstance(err, CozoError)
    assert err.code == ErrorCode.QUERY
    assert err.raw_response == '{"ok":false}'
    assert QueryError("x").raw_response is None


def test_closed_error_is_a_session_error() -> None:
    err = ClosedError()
    assert isinstance(err, SessionError)
    assert err.code == ErrorCode.CLOSED
    assert str(err) == "[CLOSED] session is closed"


def test_usage_error_is_a_value_error() -> None:
    err = UsageError("bad column")
    assert isinstance(err, ValueError)
    assert isinstance(err, CozoError)
    assert str(err) == "[USAGE] bad column"


def test_messages_carry_a_distinct_prefix_per_kind() -> None:
    prefixes = {str(cls("m")).split(" ")[0] for cls in (QueryError, SessionError, UsageError)}
    prefixes.add(str(ClosedError("m")).split(" ")[0])
    assert prefixes == {"[QUERY]", "[SESSION]", "[USAGE]", "[CLOSED]"}


def test_wrap_engine_error_passes_typed_errors_through() -> None:
    original = QueryError("bad")
    assert wrap_engine_error(original, "backup") is original


def test_wrap_engine_error_converts_foreign_errors() -> None:
    err = wrap_engine_error(OSError("disk full"), "backup")
    assert isinstance(err, SessionError)
    assert err.message == "backup failed: disk full"


def test_errors_can_be_caught_by_base_class() -> None:
    with pytest.raises(CozoError):
        raise ClosedError()
