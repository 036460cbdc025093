"""
varbill-store: SQLite billing store

File: src/varbill_store/persistence/store.py

Purpose
- Own the single SQLite connection for one billing database file.
- Ensure the schema on open and expose typed CRUD per entity.

Concurrency
- One connection opened with ``check_same_thread=False`` and one lock held for
  the whole of every operation, statement execution and row materialization
  included. Each write is a single autocommitted statement.

Deletion
- Clients, VAR partners, VAR clients and additional licenses are soft-deleted
  and filtered out of list reads. Invoices are hard-deleted. Invoice tracking
  rows are upserted and never deleted through this API.
"""

from __future__ import annotations

import dataclasses
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar, cast

from varbill_store.constants import (
    DEFAULT_BUSY_TIMEOUT_MS,
    DEFAULT_JOURNAL_MODE,
    JOURNAL_MODES,
)
from varbill_store.domain.models import (
    AdditionalLicense,
    Client,
    VarClient,
    VarClientInvoice,
    VarInvoiceTracking,
    VarPartner,
)
from varbill_store.observability.logging import get_logger
from varbill_store.persistence.errors import (
    EngineError,
    NotFoundError,
    translate_sqlite_error,
)
from varbill_store.persistence.schema import ensure_schema
from varbill_store.persistence.tables import (
    ADDITIONAL_LICENSES,
    CLIENTS,
    VAR_CLIENT_INVOICES,
    VAR_CLIENTS,
    VAR_INVOICE_TRACKING,
    VAR_PARTNERS,
    TableSpec,
)

if TYPE_CHECKING:
    from varbill_store.domain.models import CanonicalModel

try:
    from datetime import UTC
except ImportError:
    UTC = timezone.utc  # noqa: UP017

SQLValue = str | int | float | bytes | None
TRecord = TypeVar("TRecord", bound="CanonicalModel")

_SET_INVOICED_SQL = f"""
INSERT INTO {VAR_INVOICE_TRACKING.name} (var_client_id, is_invoiced)
VALUES (?, ?)
ON CONFLICT(var_client_id) DO UPDATE SET is_invoiced = excluded.is_invoiced
"""


class Store:
    """Billing database bound to one file and one shared connection."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        path: Path,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        logger: Any | None = None,
    ) -> None:
        self._conn: sqlite3.Connection | None = conn
        self._path = path
        self._busy_timeout_ms = busy_timeout_ms
        self._lock = threading.Lock()
        self._logger = logger if logger is not None else get_logger(__name__)

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        enforce_foreign_keys: bool = True,
        journal_mode: str = DEFAULT_JOURNAL_MODE,
        read_only: bool = False,
        logger: Any | None = None,
    ) -> Store:
        """Open or create ``path`` and make sure all six tables exist.

        With ``read_only`` the file must already exist and is opened with
        ``mode=ro``: nothing is created, the schema is left as found and the
        journal mode is not changed.

        Raises ``StoreIOError`` when the file cannot be opened or created and
        ``EngineError`` when it exists but is not a usable database.
        """

        if busy_timeout_ms < 0:
            raise ValueError("busy_timeout_ms must be >= 0")
        normalized_mode = journal_mode.lower()
        if normalized_mode not in JOURNAL_MODES:
            allowed = ", ".join(JOURNAL_MODES)
            raise ValueError(f"journal_mode must be one of: {allowed}; got {journal_mode!r}")

        db_path = Path(path).expanduser()
        log = logger if logger is not None else get_logger(__name__)
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(
                f"{db_path.resolve().as_uri()}?mode=ro" if read_only else db_path,
                timeout=busy_timeout_ms / 1000.0,
                isolation_level=None,
                check_same_thread=False,
                uri=read_only,
            )
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA foreign_keys={'ON' if enforce_foreign_keys else 'OFF'}")
            conn.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
            if read_only:
                # Fails here, not on first use, when the file is not a database.
                conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
            else:
                conn.execute(f"PRAGMA journal_mode={normalized_mode}").fetchone()
                ensure_schema(conn)
        except sqlite3.Error as exc:
            if conn is not None:
                conn.close()
            error = translate_sqlite_error(exc, operation=f"open {db_path}")
            log.warning("store_open_failed", path=str(db_path), error_kind=error.kind.value)
            raise error from exc

        log.debug(
            "store_opened",
            path=str(db_path),
            enforce_foreign_keys=enforce_foreign_keys,
            journal_mode=normalized_mode,
            read_only=read_only,
        )
        return cls(conn, db_path, busy_timeout_ms=busy_timeout_ms, logger=log)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._conn is None

    def close(self) -> None:
        """Release the connection. Closing twice is a no-op."""

        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        self._logger.debug("store_closed", path=str(self._path))

    def __enter__(self) -> Store:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        del exc_type, exc, tb
        self.close()

    # Clients

    def list_clients(self) -> list[Client]:
        return self._list(CLIENTS)

    def add_client(self, client: Client) -> Client:
        return self._insert(CLIENTS, client)

    def update_client(self, client: Client) -> Client:
        return self._update(CLIENTS, client)

    def delete_client(self, client_id: str) -> None:
        self._delete(CLIENTS, client_id)

    # VAR partners

    def list_var_partners(self) -> list[VarPartner]:
        return self._list(VAR_PARTNERS)

    def add_var_partner(self, partner: VarPartner) -> VarPartner:
        return self._insert(VAR_PARTNERS, partner)

    def update_var_partner(self, partner: VarPartner) -> VarPartner:
        return self._update(VAR_PARTNERS, partner)

    def delete_var_partner(self, partner_id: str) -> None:
        # VAR clients of this partner stay listable; nothing cascades.
        self._delete(VAR_PARTNERS, partner_id)

    # VAR clients

    def list_var_clients(self) -> list[VarClient]:
        return self._list(VAR_CLIENTS)

    def add_var_client(self, client: VarClient) -> VarClient:
        return self._insert(VAR_CLIENTS, client)

    def update_var_client(self, client: VarClient) -> VarClient:
        return self._update(VAR_CLIENTS, client)

    def delete_var_client(self, client_id: str) -> None:
        self._delete(VAR_CLIENTS, client_id)

    # Additional licenses

    def list_additional_licenses(self, client_id: str) -> list[AdditionalLicense]:
        """Active licenses of one client; the client itself may be inactive."""

        return self._list(ADDITIONAL_LICENSES, where="client_id = ?", params=(client_id,))

    def add_additional_license(self, license_: AdditionalLicense) -> AdditionalLicense:
        return self._insert(ADDITIONAL_LICENSES, license_)

    def update_additional_license(self, license_: AdditionalLicense) -> AdditionalLicense:
        return self._update(ADDITIONAL_LICENSES, license_)

    def delete_additional_license(self, license_id: str) -> None:
        self._delete(ADDITIONAL_LICENSES, license_id)

    # VAR client invoices

    def list_invoices(self) -> list[VarClientInvoice]:
        """All invoices, newest billing month first, then newest creation."""

        return self._list(VAR_CLIENT_INVOICES)

    def create_invoice(self, invoice: VarClientInvoice) -> VarClientInvoice:
        return self._insert(VAR_CLIENT_INVOICES, invoice)

    def update_invoice(self, invoice: VarClientInvoice) -> VarClientInvoice:
        """Replace mutable fields and stamp ``updated_at`` with the current UTC time."""

        stamped = dataclasses.replace(invoice, updated_at=_utc_now_iso())
        return self._update(VAR_CLIENT_INVOICES, stamped)

    def delete_invoice(self, invoice_id: str) -> None:
        self._delete(VAR_CLIENT_INVOICES, invoice_id)

    # Invoice tracking

    def list_invoice_tracking(self) -> list[VarInvoiceTracking]:
        return self._list(VAR_INVOICE_TRACKING)

    def set_invoiced(self, var_client_id: str, is_invoiced: bool) -> VarInvoiceTracking:
        """Upsert the tracking row, overwriting only the flag on conflict."""

        if not isinstance(is_invoiced, bool):
            raise TypeError(f"is_invoiced must be bool, got {type(is_invoiced).__name__}")
        operation = f"set_invoiced {var_client_id!r}"
        with self._locked(operation) as conn:
            conn.execute(_SET_INVOICED_SQL, (var_client_id, int(is_invoiced)))
            record = self._fetch_one(
                conn, VAR_INVOICE_TRACKING, var_client_id, operation=operation
            )
        self._logger.debug(
            "store_record_written",
            table=VAR_INVOICE_TRACKING.name,
            record_id=var_client_id,
            action="upsert",
            is_invoiced=is_invoiced,
        )
        return cast(VarInvoiceTracking, record)

    # Maintenance

    def backup(self, destination: str | Path) -> Path:
        """Write a consistent snapshot of the database to ``destination``."""

        destination_path = Path(destination).expanduser()
        if destination_path.resolve() == self._path.resolve():
            raise ValueError("backup destination must differ from the open database")
        operation = f"backup to {destination_path}"
        with self._locked(operation) as source:
            target = sqlite3.connect(
                destination_path,
                timeout=self._busy_timeout_ms / 1000.0,
                isolation_level=None,
            )
            try:
                source.backup(target)
            finally:
                target.close()
        self._logger.debug("store_backup_written", path=str(destination_path))
        return destination_path

    def integrity_check(self, *, max_errors: int = 100) -> tuple[str, ...]:
        """Return integrity-check messages; an empty tuple means healthy."""

        if max_errors <= 0:
            raise ValueError("max_errors must be > 0")
        with self._locked("integrity_check") as conn:
            rows = conn.execute(f"PRAGMA integrity_check({max_errors})").fetchall()
        messages = tuple(str(row[0]) for row in rows)
        if messages == ("ok",):
            return ()
        return messages

    # Internals

    @contextmanager
    def _locked(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._conn is None:
                raise EngineError(f"{operation}: store for {self._path} is closed")
            try:
                yield self._conn
            except sqlite3.Error as exc:
                error = translate_sqlite_error(exc, operation=operation)
                self._logger.warning(
                    "store_operation_failed",
                    operation=operation,
                    error_kind=error.kind.value,
                    error=str(exc),
                )
                raise error from exc

    def _list(
        self,
        spec: TableSpec,
        *,
        where: str | None = None,
        params: Sequence[SQLValue] = (),
    ) -> list[Any]:
        with self._locked(f"list {spec.name}") as conn:
            rows = conn.execute(spec.select_sql(where=where), tuple(params)).fetchall()
            return [self._row_to_record(spec, row) for row in rows]

    def _insert(self, spec: TableSpec, record: TRecord) -> TRecord:
        self._expect_model(spec, record)
        record_id = getattr(record, spec.key_column)
        with self._locked(f"insert {spec.name} {record_id!r}") as conn:
            conn.execute(spec.insert_sql(), _record_params(spec, record, spec.columns))
        self._logger.debug(
            "store_record_written", table=spec.name, record_id=record_id, action="insert"
        )
        return record

    def _update(self, spec: TableSpec, record: TRecord) -> TRecord:
        self._expect_model(spec, record)
        record_id = getattr(record, spec.key_column)
        operation = f"update {spec.name} {record_id!r}"
        params = (*_record_params(spec, record, spec.mutable_columns), record_id)
        with self._locked(operation) as conn:
            cursor = conn.execute(spec.update_sql(), params)
            if cursor.rowcount == 0:
                raise NotFoundError(spec.name, record_id)
            stored = self._fetch_one(conn, spec, record_id, operation=operation)
        self._logger.debug(
            "store_record_written", table=spec.name, record_id=record_id, action="update"
        )
        return cast(TRecord, stored)

    def _delete(self, spec: TableSpec, record_id: str) -> None:
        operation = f"delete {spec.name} {record_id!r}"
        with self._locked(operation) as conn:
            cursor = conn.execute(spec.delete_sql(), (record_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(spec.name, record_id)
        self._logger.debug(
            "store_record_deleted",
            table=spec.name,
            record_id=record_id,
            policy=spec.deletion.name,
        )

    def _fetch_one(
        self, conn: sqlite3.Connection, spec: TableSpec, key: str, *, operation: str
    ) -> Any:
        rows = conn.execute(spec.fetch_sql(), (key,)).fetchall()
        if not rows:
            raise EngineError(f"{operation}: row vanished after write")
        return self._row_to_record(spec, rows[0])

    @staticmethod
    def _expect_model(spec: TableSpec, record: object) -> None:
        if not isinstance(record, spec.model):
            raise TypeError(
                f"{spec.name} stores {spec.model.__name__}, got {type(record).__name__}"
            )

    @staticmethod
    def _row_to_record(spec: TableSpec, row: sqlite3.Row) -> Any:
        values: dict[str, object] = {column: row[column] for column in spec.columns}
        for column in spec.bool_columns:
            values[column] = bool(values[column])
        # Stored rows are returned as stored; input validation applies to writes only.
        return spec.model.from_stored(values)


def _record_params(
    spec: TableSpec, record: CanonicalModel, columns: Sequence[str]
) -> tuple[SQLValue, ...]:
    params: list[SQLValue] = []
    for column in columns:
        value = getattr(record, column)
        if column in spec.bool_columns:
            value = int(value)
        params.append(value)
    return tuple(params)


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


__all__ = ["Store"]
