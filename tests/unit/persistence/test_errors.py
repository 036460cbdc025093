"""sqlite3 exception translation tests."""

from __future__ import annotations

import sqlite3

import pytest

from varbill_store.persistence.errors import (
    ConstraintViolationError,
    DuplicateKeyError,
    EngineError,
    ErrorKind,
    NotFoundError,
    StoreError,
    StoreIOError,
    translate_sqlite_error,
)


def _integrity_error(sql_setup: tuple[str, ...], failing_sql: str) -> sqlite3.IntegrityError:
    conn = sqlite3.connect(":memory:")
    try:
        conn.execute("PRAGMA foreign_keys=ON")
        for statement in sql_setup:
            conn.execute(statement)
        with pytest.raises(sqlite3.IntegrityError) as excinfo:
            conn.execute(failing_sql)
        return excinfo.value
    finally:
        conn.close()


def test_primary_key_collision_maps_to_duplicate_key() -> None:
    exc = _integrity_error(
        ("CREATE TABLE t (id TEXT PRIMARY KEY)", "INSERT INTO t VALUES ('a')"),
        "INSERT INTO t VALUES ('a')",
    )

    error = translate_sqlite_error(exc, operation="insert t")

    assert isinstance(error, DuplicateKeyError)
    assert error.kind is ErrorKind.DUPLICATE_KEY
    assert str(error).startswith("insert t: ")


def test_not_null_and_foreign_key_map_to_constraint_violation() -> None:
    not_null = _integrity_error(
        ("CREATE TABLE t (id TEXT PRIMARY KEY, name TEXT NOT NULL)",),
        "INSERT INTO t (id) VALUES ('a')",
    )
    foreign_key = _integrity_error(
        (
            "CREATE TABLE p (id TEXT PRIMARY KEY)",
            "CREATE TABLE c (id TEXT PRIMARY KEY, p_id TEXT REFERENCES p (id))",
        ),
        "INSERT INTO c VALUES ('c1', 'missing')",
    )

    assert isinstance(translate_sqlite_error(not_null, operation="x"), ConstraintViolationError)
    assert isinstance(translate_sqlite_error(foreign_key, operation="x"), ConstraintViolationError)


def test_unique_message_without_code_still_maps_to_duplicate_key() -> None:
    exc = sqlite3.IntegrityError("UNIQUE constraint failed: t.id")

    assert isinstance(translate_sqlite_error(exc, operation="x"), DuplicateKeyError)


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (sqlite3.OperationalError("unable to open database file"), StoreIOError),
        (sqlite3.OperationalError("no such table: clients"), EngineError),
        (sqlite3.DatabaseError("file is not a database"), EngineError),
    ],
)
def test_non_integrity_errors_map_by_message(
    exc: sqlite3.Error, expected: type[StoreError]
) -> None:
    assert type(translate_sqlite_error(exc, operation="op")) is expected


def test_error_kinds_are_stable_strings() -> None:
    assert {kind.value for kind in ErrorKind} == {
        "not_initialized",
        "duplicate_key",
        "constraint_violation",
        "not_found",
        "io_error",
        "engine_error",
    }
    assert NotFoundError("clients", "c-1").kind == "not_found"
