"""Boundary between the client layer and the CozoDB engine.

The engine is reached through a :class:`Transport`. The default
implementation, :class:`EmbeddedTransport`, drives the in-process engine
shipped as the ``cozo_embedded`` extension module (``pip install
cozo-client[embedded]``). The extension has to be loaded once per process
with :func:`init` before any embedded session is opened.
"""

from __future__ import annotations

import asyncio
import importlib
import json
import logging
import threading
from enum import Enum
from types import ModuleType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from typing_extensions import Protocol, TypedDict, runtime_checkable

from .errors import SessionError

logger = logging.getLogger(__name__)

_NATIVE_MODULE = "cozo_embedded"

_native: Optional[ModuleType] = None
_init_lock = threading.Lock()


class Engine(Enum):
    """Storage engines understood by the embedded runtime."""
    MEMORY = "mem"
    SQLITE = "sqlite"
    ROCKSDB = "rocksdb"


class ExportedRelation(TypedDict):
    headers: List[str]
    rows: List[List[Any]]


@runtime_checkable
class Transport(Protocol):
    """Primitive engine operations a session is built on.

    ``run_script`` returns the engine's JSON envelope text unchanged; the
    other calls raise on failure.
    """

    async def run_script(self, script: str, params_json: str, immutable: bool) -> str:
        ...

    async def export_relations(self, relations: Sequence[str]) -> Mapping[str, Any]:
        ...

    async def import_relations(self, data: Mapping[str, Any]) -> None:
        ...

    async def backup(self, path: str) -> None:
        ...

    async def restore(self, path: str) -> None:
        ...

    async def import_from_backup(self, path: str, relations: Sequence[str]) -> None:
        ...

    def close(self) -> None:
        ...


def init() -> None:
    """Load the embedded engine runtime. Safe to call more than once.

    Raises:
        SessionError: if the ``cozo_embedded`` extension cannot be loaded.
    """
    global _native
    with _init_lock:
        if _native is not None:
            return
        try:
            _native = importlib.import_module(_NATIVE_MODULE)
        except ImportError as err:
            raise SessionError(
                f"runtime initialization failed: {err} (install the 'embedded' extra)"
            ) from err
        logger.info("Loaded embedded CozoDB runtime from %s", getattr(_native, "__file__", _NATIVE_MODULE))


def is_initialized() -> bool:
    return _native is not None


class EmbeddedTransport:
    """Transport backed by an in-process ``CozoDbPy`` instance.

    Engine calls block, so each one runs in the event loop's default
    executor; several calls may be in flight against the same instance.
    """

    def __init__(self, handle: Any):
        self._handle = handle

    @classmethod
    def open(
        cls,
        engine: Engine = Engine.MEMORY,
        path: str = "",
        options: Optional[Mapping[str, Any]] = None,
    ) -> "EmbeddedTransport":
        if _native is None:
            raise SessionError("runtime is not initialized; call cozo_client.init() first")
        options_json = json.dumps(dict(options or {}))
        handle = _native.CozoDbPy(Engine(engine).value, path, options_json)
        return cls(handle)

    async def run_script(self, script: str, params_json: str, immutable: bool) -> str:
        return await asyncio.to_thread(self._handle.run_script_str, script, params_json, immutable)

    async def export_relations(self, relations: Sequence[str]) -> Mapping[str, Any]:
        return await asyncio.to_thread(self._handle.export_relations, list(relations))

    async def import_relations(self, data: Mapping[str, Any]) -> None:
        payload: Dict[str, Any] = dict(data)
        await asyncio.to_thread(self._handle.import_relations, payload)

    async def backup(self, path: str) -> None:
        await asyncio.to_thread(self._handle.backup, path)

    async def restore(self, path: str) -> None:
        await asyncio.to_thread(self._handle.restore, path)

    async def import_from_backup(self, path: str, relations: Sequence[str]) -> None:
        await asyncio.to_thread(self._handle.import_from_backup, path, list(relations))

    def close(self) -> None:
        self._handle.close()
