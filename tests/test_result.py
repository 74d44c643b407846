import json

import pytest

from cozo_client import ErrorCode, QueryError, SessionError, TabularResult, UsageError, decode_export, decode_response


def test_decode_success_envelope() -> None:
    result = decode_response('{"ok":true,"headers":["a","b"],"rows":[[1,2],[3,4]],"took":0.001}')
    assert result.columns == ("a", "b")
    assert [list(row) for row in result.rows] == [[1, 2], [3, 4]]
    assert result.elapsed_seconds == pytest.approx(0.001)
    assert len(result) == 2
    assert result.is_not_empty
    assert not result.is_empty


def test_decode_failure_uses_display_message() -> None:
    text = '{"ok":false,"display":"syntax error"}'
    with pytest.raises(QueryError) as excinfo:
        decode_response(text)
    assert excinfo.value.message == "syntax error"
    assert excinfo.value.code == ErrorCode.QUERY
    assert excinfo.value.raw_response == text
    assert str(excinfo.value) == "[QUERY] syntax error"


def test_decode_failure_falls_back_to_message_then_default() -> None:
    with pytest.raises(QueryError, match="relation not found"):
        decode_response('{"ok":false,"message":"relation not found"}')
    with pytest.raises(QueryError, match="Unknown query error"):
        decode_response('{"ok":false}')


def test_missing_ok_flag_is_a_failure() -> None:
    text = '{"headers":["a"],"rows":[[1]]}'
    with pytest.raises(QueryError) as excinfo:
        decode_response(text)
    assert excinfo.value.raw_response == text


def test_malformed_json_is_a_query_failure() -> None:
    with pytest.raises(QueryError, match="malformed response") as excinfo:
        decode_response("not json")
    assert excinfo.value.raw_response == "not json"
    with pytest.raises(QueryError, match="JSON object"):
        decode_response("[1, 2]")


def test_empty_rows_decode_to_empty_result() -> None:
    result = decode_response('{"ok":true,"headers":["a"],"rows":[]}')
    assert result.is_empty
    assert len(result) == 0
    assert result.first() is None
    assert result.elapsed_seconds is None


def test_missing_headers_and_rows_default_to_empty() -> None:
    result = decode_response('{"ok":true}')
    assert result.columns == ()
    assert result.rows == ()
    assert result.column_index("a") == -1


def test_non_numeric_took_is_unknown() -> None:
    assert decode_response('{"ok":true,"took":"fast"}').elapsed_seconds is None
    assert decode_response('{"ok":true,"took":true}').elapsed_seconds is None
    assert decode_response('{"ok":true,"took":2}').elapsed_seconds == 2.0


def test_rows_must_be_lists() -> None:
    with pytest.raises(QueryError, match="rows"):
        decode_response('{"ok":true,"headers":["a"],"rows":[1]}')
    with pytest.raises(QueryError, match="headers"):
        decode_response('{"ok":true,"headers":"a","rows":[]}')


def test_duplicate_headers_are_malformed() -> None:
    with pytest.raises(QueryError, match="duplicate"):
        decode_response('{"ok":true,"headers":["a","a"],"rows":[]}')


def test_row_length_mismatch_is_accepted() -> None:
    result = decode_response('{"ok":true,"headers":["a","b"],"rows":[[1],[2,3,4]]}')
    assert result.column("b") == [None, 3]
    assert result.to_dicts() == [{"a": 1}, {"a": 2, "b": 3}]


def test_cells_are_passed_through_untouched() -> None:
    result = decode_response(json.dumps({"ok": True, "headers": ["v"], "rows": [[{"x": [1, None]}], [1.5]]}))
    assert result.column("v") == [{"x": [1, None]}, 1.5]


def test_column_accessors() -> None:
    result = TabularResult(["id", "name"], [[1, "Alice"], [2, "Bob"]])
    assert result.column_index("name") == 1
    assert result.column_index("missing") == -1
    assert result.column("name") == ["Alice", "Bob"]
    assert result.first() == {"id": 1, "name": "Alice"}
    assert list(result) == [(1, "Alice"), (2, "Bob")]


def test_column_lookup_of_unknown_name_raises_usage_error() -> None:
    result = TabularResult(["id"], [])
    with pytest.raises(UsageError, match='column "name" not found'):
        result.column("name")


def test_empty_columns_result_reports_missing_index() -> None:
    assert TabularResult([]).column_index("") == -1


def test_result_is_immutable() -> None:
    source = [[1, 2]]
    result = TabularResult(["a", "b"], source)
    source[0][0] = 99
    assert result.rows == ((1, 2),)
    with pytest.raises(AttributeError):
        result.columns = ("x",)  # type: ignore[misc]


def test_duplicate_columns_raise_usage_error() -> None:
    with pytest.raises(UsageError, match="duplicate"):
        TabularResult(["a", "a"])


def test_equality_and_repr() -> None:
    left = TabularResult(["a"], [[1]], 0.5)
    assert left == TabularResult(["a"], [(1,)], 0.5)
    assert left != TabularResult(["a"], [[2]], 0.5)
    assert repr(left) == "TabularResult(1 rows, 1 columns, took: 0.5s)"
    assert repr(TabularResult(["a"])) == "TabularResult(0 rows, 1 columns, took: unknown)"
    with pytest.raises(TypeError):
        hash(left)


def test_decode_export_unwraps_data() -> None:
    payload = {"ok": True, "data": {"users": {"headers": ["id"], "rows": [[1]]}}}
    assert decode_export(payload) == {"users": {"headers": ["id"], "rows": [[1]]}}
    assert decode_export(json.dumps(payload)) == {"users": {"headers": ["id"], "rows": [[1]]}}


def test_decode_export_without_data_key() -> None:
    assert decode_export({"ok": True, "users": {"headers": [], "rows": []}}) == {
        "users": {"headers": [], "rows": []}
    }
    assert decode_export({"users": {"headers": [], "rows": []}}) == {"users": {"headers": [], "rows": []}}


def test_decode_export_failure_is_session_error() -> None:
    with pytest.raises(SessionError, match="export failed: no such relation"):
        decode_export({"ok": False, "message": "no such relation"})
    with pytest.raises(SessionError, match="malformed"):
        decode_export("{")
    with pytest.raises(SessionError, match="JSON object"):
        decode_export("[]")
