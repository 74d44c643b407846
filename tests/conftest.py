import json
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from cozo_client import Session


def envelope(headers: Sequence[str] = (), rows: Sequence[Sequence[Any]] = (), took: Optional[float] = 0.001) -> str:
    payload: Dict[str, Any] = {"ok": True, "headers": list(headers), "rows": [list(row) for row in rows]}
    if took is not None:
        payload["took"] = took
    return json.dumps(payload)


class StubTransport:
    """Records every engine call and answers from a queue of canned responses.

    Once ``closed`` is set, any further call fails the test.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.responses: List[Any] = []
        self.exports: Dict[str, Any] = {"ok": True, "data": {}}
        self.failure: Optional[BaseException] = None
        self.closed = False
        self.close_count = 0

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def _record(self, name: str, *args: Any) -> None:
        if self.closed:
            pytest.fail(f"transport.{name} called after close")
        self.calls.append((name, args))
        if self.failure is not None:
            raise self.failure

    async def run_script(self, script: str, params_json: str, immutable: bool) -> str:
        self._record("run_script", script, json.loads(params_json), immutable)
        if self.responses:
            return self.responses.pop(0)
        return envelope()

    async def export_relations(self, relations: Sequence[str]) -> Mapping[str, Any]:
        self._record("export_relations", list(relations))
        return self.exports

    async def import_relations(self, data: Mapping[str, Any]) -> None:
        self._record("import_relations", dict(data))

    async def backup(self, path: str) -> None:
        self._record("backup", path)

    async def restore(self, path: str) -> None:
        self._record("restore", path)

    async def import_from_backup(self, path: str, relations: Sequence[str]) -> None:
        self._record("import_from_backup", path, list(relations))

    def close(self) -> None:
        self._record("close")
        self.closed = True
        self.close_count += 1

    def scripts(self) -> List[str]:
        return [args[0] for name, args in self.calls if name == "run_script"]


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def session(transport: StubTransport) -> Session:
    return Session(transport)


@pytest.fixture
def make_envelope() -> Callable[..., str]:
    return envelope
