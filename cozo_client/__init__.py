"""Python client layer for the embedded CozoDB query engine."""

from . import script
from .errors import (
    ClosedError,
    CozoError,
    ErrorCode,
    QueryError,
    SessionError,
    UsageError,
    wrap_engine_error,
)
from .literals import Vector, to_literal, to_row_literals
from .result import TabularResult, decode_export, decode_response
from .script import QueryRequest
from .session import Session, open_session
from .transport import EmbeddedTransport, Engine, ExportedRelation, Transport, init, is_initialized

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "init",
    "is_initialized",
    "Session",
    "open_session",
    "Engine",
    "Transport",
    "EmbeddedTransport",
    "ExportedRelation",
    "QueryRequest",
    "TabularResult",
    "decode_response",
    "decode_export",
    "Vector",
    "to_literal",
    "to_row_literals",
    "script",
    # Error types
    "ErrorCode",
    "CozoError",
    "QueryError",
    "SessionError",
    "ClosedError",
    "UsageError",
    "wrap_engine_error",
]
