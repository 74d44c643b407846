"""Session wrapper around an open CozoDB engine connection."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Awaitable, Callable, Collection, Dict, Mapping, Optional, Sequence

from .errors import ClosedError, CozoError, UsageError, wrap_engine_error
from .result import TabularResult, decode_export, decode_response
from .script import QueryRequest, relations, system
from .script.system import AccessLevel
from .transport import EmbeddedTransport, Engine, ExportedRelation, Transport

logger = logging.getLogger(__name__)

_SCRIPT_LOG_LIMIT = 200


def _script_head(script: str) -> str:
    flat = " ".join(script.split())
    if len(flat) > _SCRIPT_LOG_LIMIT:
        return flat[:_SCRIPT_LOG_LIMIT] + "..."
    return flat


def _encode_params(params: Optional[Mapping[str, Any]]) -> str:
    if params is None:
        return "{}"
    if not isinstance(params, Mapping):
        raise UsageError("params must be a mapping of name -> value")
    try:
        return json.dumps(dict(params), allow_nan=False)
    except (TypeError, ValueError) as err:
        raise UsageError(f"params are not JSON serializable: {err}") from err


async def _engine_call(action: str, fn: Callable[..., Awaitable[Any]], *args: Any) -> Any:
    """Await a transport call and re-raise failures as typed errors."""
    try:
        return await fn(*args)
    except CozoError:
        raise
    except Exception as err:  # noqa: BLE001 - surface engine failures as session errors
        raise wrap_engine_error(err, action) from err


class Session:
    """Handle to one open engine connection.

    Every engine-touching method is a coroutine. Once :meth:`close` has run,
    all of them raise :class:`ClosedError` without reaching the engine.

    Usage::

        cozo_client.init()
        async with Session.open_memory() as session:
            await session.put("users", [{"id": 1, "name": "Alice"}])
            result = await session.query_immutable("?[name] := *users{name}")
    """

    def __init__(self, transport: Transport):
        self._transport: Optional[Transport] = transport
        self._lock = threading.Lock()

    @classmethod
    def open(cls, engine: Engine = Engine.MEMORY, path: str = "", **options: Any) -> "Session":
        """Open a session on the embedded engine.

        ``options`` are engine-specific settings, forwarded as the engine's
        JSON options object.
        """
        try:
            transport = EmbeddedTransport.open(engine, path, options)
        except CozoError:
            raise
        except Exception as err:  # noqa: BLE001 - surface engine failures as session errors
            raise wrap_engine_error(err, "open database") from err
        logger.info("Opened %s session%s", Engine(engine).value, f" at {path}" if path else "")
        return cls(transport)

    @classmethod
    def open_memory(cls, **options: Any) -> "Session":
        return cls.open(Engine.MEMORY, "", **options)

    @classmethod
    def open_sqlite(cls, path: str, **options: Any) -> "Session":
        return cls.open(Engine.SQLITE, path, **options)

    def _live_transport(self) -> Transport:
        """Return the open transport, or raise ClosedError if the session is closed."""
        with self._lock:
            transport = self._transport
        if transport is None:
            raise ClosedError("session is closed")
        return transport

    async def close(self) -> None:
        """Close the session, releasing the engine connection.

        Calling close() multiple times is safe (subsequent calls are no-ops).
        """
        with self._lock:
            transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            transport.close()
        except Exception as err:  # noqa: BLE001 - surface engine failures as session errors
            raise wrap_engine_error(err, "close database") from err
        logger.info("Closed session")

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._transport is None

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # Script execution

    async def _execute(self, script: str, params: Optional[Mapping[str, Any]], immutable: bool) -> TabularResult:
        transport = self._live_transport()
        params_json = _encode_params(params)
        logger.debug("Running %s script: %s", "read-only" if immutable else "mutable", _script_head(script))
        response = await _engine_call("query execution", transport.run_script, script, params_json, immutable)
        result = decode_response(response)
        logger.debug("Script returned %d rows (took %ss)", len(result), result.elapsed_seconds)
        return result

    async def query(self, script: str, params: Optional[Mapping[str, Any]] = None) -> TabularResult:
        """Run a script that may write.

        ```python
        await session.query("?[name] := *users{name, age}, age > $min_age", {"min_age": 21})
        ```
        """
        return await self._execute(script, params, immutable=False)

    async def query_immutable(self, script: str, params: Optional[Mapping[str, Any]] = None) -> TabularResult:
        """Run a read-only script; the engine rejects any write in it."""
        return await self._execute(script, params, immutable=True)

    async def run(self, request: QueryRequest) -> TabularResult:
        """Execute a request produced by one of the script builders."""
        return await self._execute(request.script, request.params, request.immutable)

    async def _run_built(self, builder: Callable[..., QueryRequest], *args: Any, **kwargs: Any) -> TabularResult:
        # Closed sessions fail before the builder sees the arguments.
        self._live_transport()
        return await self.run(builder(*args, **kwargs))

    # Relations

    async def put(
        self,
        relation: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        vector_columns: Collection[str] = (),
    ) -> TabularResult:
        """Upsert ``rows``; values of ``vector_columns`` are sent as vectors."""
        return await self._run_built(relations.upsert, relation, rows, vector_columns=vector_columns)

    async def remove(self, relation: str, keys: Sequence[Mapping[str, Any]]) -> TabularResult:
        return await self._run_built(relations.delete, relation, keys)

    async def create_relation(
        self,
        name: str,
        columns: Mapping[str, str],
        *,
        keys: Optional[Sequence[str]] = None,
    ) -> TabularResult:
        return await self._run_built(relations.create_relation, name, columns, keys=keys)

    async def get_all(self, relation: str) -> TabularResult:
        """Every row of ``relation``, with columns discovered from its schema."""
        info = await self._run_built(system.describe_relation, relation)
        columns = [str(name) for name in info.column("column")]
        return await self._run_built(relations.select_all, relation, columns)

    # System operations

    async def list_relations(self) -> TabularResult:
        return await self._run_built(system.list_relations)

    async def describe_relation(self, relation: str) -> TabularResult:
        return await self._run_built(system.describe_relation, relation)

    async def list_indices(self, relation: str) -> TabularResult:
        return await self._run_built(system.list_indices, relation)

    async def explain(self, script: str) -> TabularResult:
        return await self._run_built(system.explain, script)

    async def list_running_queries(self) -> TabularResult:
        return await self._run_built(system.list_running)

    async def cancel_query(self, query_id: int) -> TabularResult:
        return await self._run_built(system.kill, query_id)

    async def remove_relations(self, names: Sequence[str]) -> TabularResult:
        return await self._run_built(system.remove_relations, names)

    async def rename_relations(self, renames: Mapping[str, str]) -> TabularResult:
        return await self._run_built(system.rename_relations, renames)

    async def show_triggers(self, relation: str) -> TabularResult:
        return await self._run_built(system.show_triggers, relation)

    async def set_triggers(
        self,
        relation: str,
        *,
        on_put: Sequence[str] = (),
        on_rm: Sequence[str] = (),
    ) -> TabularResult:
        return await self._run_built(system.set_triggers, relation, on_put=on_put, on_rm=on_rm)

    async def set_access_level(self, level: AccessLevel, names: Sequence[str]) -> TabularResult:
        return await self._run_built(system.set_access_level, level, names)

    async def set_description(self, relation: str, description: str) -> TabularResult:
        return await self._run_built(system.set_description, relation, description)

    async def compact(self) -> TabularResult:
        return await self._run_built(system.compact)

    # Data management

    async def export_relations(self, names: Sequence[str]) -> Dict[str, ExportedRelation]:
        """Export relations as ``{relation: {"headers": [...], "rows": [...]}}``."""
        transport = self._live_transport()
        names = list(names)
        payload = await _engine_call("export", transport.export_relations, names)
        return decode_export(payload)

    async def import_relations(self, data: Mapping[str, ExportedRelation]) -> None:
        """Import data in the shape returned by :meth:`export_relations`."""
        transport = self._live_transport()
        await _engine_call("import", transport.import_relations, data)
        logger.info("Imported relations %s", sorted(data))

    async def backup(self, path: str) -> None:
        transport = self._live_transport()
        await _engine_call("backup", transport.backup, path)
        logger.info("Backed up database to %s", path)

    async def restore(self, path: str) -> None:
        transport = self._live_transport()
        await _engine_call("restore", transport.restore, path)
        logger.info("Restored database from %s", path)

    async def import_from_backup(self, path: str, names: Sequence[str]) -> None:
        """Copy selected relations out of a backup file without a full restore."""
        transport = self._live_transport()
        names = list(names)
        await _engine_call("import from backup", transport.import_from_backup, path, names)
        logger.info("Imported relations %s from backup %s", names, path)


def open_session(engine: Engine = Engine.MEMORY, path: str = "", **options: Any) -> Session:
    """Convenience helper mirroring Session.open."""
    return Session.open(engine, path, **options)
