"""Structured store errors and sqlite3 exception translation."""

from __future__ import annotations

import sqlite3
from enum import StrEnum
from typing import Final


class ErrorKind(StrEnum):
    NOT_INITIALIZED = "not_initialized"
    DUPLICATE_KEY = "duplicate_key"
    CONSTRAINT_VIOLATION = "constraint_violation"
    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"
    ENGINE_ERROR = "engine_error"


class StoreError(RuntimeError):
    """Base class for billing store errors."""

    kind: ErrorKind = ErrorKind.ENGINE_ERROR


class NotInitializedError(StoreError):
    """Raised when an operation runs before a database path was set."""

    kind = ErrorKind.NOT_INITIALIZED

    def __init__(self, message: str = "Database not initialized") -> None:
        super().__init__(message)


class DuplicateKeyError(StoreError):
    """Raised when an insert reuses an existing primary key."""

    kind = ErrorKind.DUPLICATE_KEY


class ConstraintViolationError(StoreError):
    """Raised on foreign-key, NOT NULL or other integrity failures."""

    kind = ErrorKind.CONSTRAINT_VIOLATION


class NotFoundError(StoreError):
    """Raised when update or delete targets an id with no row."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, table: str, record_id: str) -> None:
        super().__init__(f"{table}: no row with id {record_id!r}")
        self.table = table
        self.record_id = record_id


class StoreIOError(StoreError):
    """Raised when the database file cannot be opened or created."""

    kind = ErrorKind.IO_ERROR


class EngineError(StoreError):
    """Raised for any other SQLite engine failure."""

    kind = ErrorKind.ENGINE_ERROR


def _codes(*names: str) -> frozenset[int]:
    return frozenset(
        code for code in (getattr(sqlite3, name, None) for name in names) if isinstance(code, int)
    )


_DUPLICATE_KEY_CODES: Final[frozenset[int]] = _codes(
    "SQLITE_CONSTRAINT_PRIMARYKEY",
    "SQLITE_CONSTRAINT_UNIQUE",
)

_CANTOPEN_CODES: Final[frozenset[int]] = _codes(
    "SQLITE_CANTOPEN",
    "SQLITE_CANTOPEN_ISDIR",
    "SQLITE_CANTOPEN_FULLPATH",
    "SQLITE_PERM",
    "SQLITE_READONLY",
    "SQLITE_IOERR",
)

_DUPLICATE_KEY_SUBSTRINGS: Final[tuple[str, ...]] = ("unique constraint failed",)

_CANTOPEN_SUBSTRINGS: Final[tuple[str, ...]] = (
    "unable to open database file",
    "attempt to write a readonly database",
    "disk i/o error",
)


def translate_sqlite_error(exc: sqlite3.Error, *, operation: str) -> StoreError:
    """Map a raw sqlite3 exception onto the store error hierarchy."""

    code = getattr(exc, "sqlite_errorcode", None)
    message = str(exc)
    lowered = message.lower()
    if isinstance(exc, sqlite3.IntegrityError):
        if (isinstance(code, int) and code in _DUPLICATE_KEY_CODES) or any(
            fragment in lowered for fragment in _DUPLICATE_KEY_SUBSTRINGS
        ):
            return DuplicateKeyError(f"{operation}: {message}")
        return ConstraintViolationError(f"{operation}: {message}")
    if (isinstance(code, int) and code in _CANTOPEN_CODES) or any(
        fragment in lowered for fragment in _CANTOPEN_SUBSTRINGS
    ):
        return StoreIOError(f"{operation}: {message}")
    return EngineError(f"{operation}: {message}")


__all__ = [
    "ConstraintViolationError",
    "DuplicateKeyError",
    "EngineError",
    "ErrorKind",
    "NotFoundError",
    "NotInitializedError",
    "StoreError",
    "StoreIOError",
    "translate_sqlite_error",
]
