"""Error taxonomy for the CozoDB client layer."""

from __future__ import annotations

from typing import Optional


class ErrorCode:
    """Error kinds raised by the client layer."""
    UNKNOWN = "UNKNOWN"
    QUERY = "QUERY"
    SESSION = "SESSION"
    CLOSED = "CLOSED"
    USAGE = "USAGE"


class CozoError(Exception):
    """Base exception class for all client errors.

    ``str(err)`` always starts with ``[CODE]`` so log triage can classify a
    failure without looking at its payload.
    """

    def __init__(self, message: str, code: str = ErrorCode.UNKNOWN):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class QueryError(CozoError):
    """Error raised when the engine rejects or fails to execute a script."""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message, ErrorCode.QUERY)
        self.raw_response = raw_response


class SessionError(CozoError):
    """Error raised when an open/close/backup/restore/import/export operation fails."""

    def __init__(self, message: str, code: str = ErrorCode.SESSION):
        super().__init__(message, code)


class ClosedError(SessionError):
    """Error raised when operations are attempted on a closed session."""

    def __init__(self, message: str = "session is closed"):
        super().__init__(message, ErrorCode.CLOSED)


class UsageError(CozoError, ValueError):
    """Error raised when the caller misuses the builder or result API.

    Never involves the engine: it is a local programming error.
    """

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.USAGE)


def wrap_engine_error(err: BaseException, action: str) -> CozoError:
    """Return a typed exception for a failure raised at the engine boundary.

    Errors that are already typed pass through untouched, so a query failure
    met during a session-level operation keeps its kind.

    Args:
        err: The exception raised by the transport.
        action: Short description of the attempted operation, used as the
            message prefix (``"backup"`` -> ``"backup failed: ..."``).

    Returns:
        A CozoError subclass instance
    """
    if isinstance(err, CozoError):
        return err
    return SessionError(f"{action} failed: {err}")
