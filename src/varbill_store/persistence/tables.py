"""Per-entity table specs: columns, key, list ordering and deletion policy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Protocol

from varbill_store.constants import (
    ADDITIONAL_LICENSES_TABLE,
    CLIENTS_TABLE,
    VAR_CLIENT_INVOICES_TABLE,
    VAR_CLIENTS_TABLE,
    VAR_INVOICE_TRACKING_TABLE,
    VAR_PARTNERS_TABLE,
)
from varbill_store.domain.models import (
    AdditionalLicense,
    Client,
    VarClient,
    VarClientInvoice,
    VarInvoiceTracking,
    VarPartner,
)

if TYPE_CHECKING:
    from varbill_store.domain.models import CanonicalModel


class DeletionPolicy(Protocol):
    """How a table removes rows and which rows its list reads return."""

    name: str

    def delete_sql(self, table: str, key_column: str) -> str: ...

    def list_filter(self) -> str | None: ...


@dataclass(frozen=True, slots=True)
class _SoftDelete:
    name: str = "soft"

    def delete_sql(self, table: str, key_column: str) -> str:
        return f"UPDATE {table} SET is_active = 0 WHERE {key_column} = ?"

    def list_filter(self) -> str | None:
        return "is_active = 1"


@dataclass(frozen=True, slots=True)
class _HardDelete:
    name: str = "hard"

    def delete_sql(self, table: str, key_column: str) -> str:
        return f"DELETE FROM {table} WHERE {key_column} = ?"

    def list_filter(self) -> str | None:
        return None


SOFT_DELETE: Final[DeletionPolicy] = _SoftDelete()
HARD_DELETE: Final[DeletionPolicy] = _HardDelete()


@dataclass(frozen=True, slots=True)
class TableSpec:
    """Static description of one table and the record type stored in it."""

    name: str
    model: type[CanonicalModel]
    deletion: DeletionPolicy
    key_column: str = "id"
    order_by: str | None = None
    bool_columns: tuple[str, ...] = ("is_active",)
    # Columns fixed at insert time and never rewritten by update.
    immutable_columns: tuple[str, ...] = ("id", "created_at")

    @property
    def columns(self) -> tuple[str, ...]:
        return self.model.field_names()

    @property
    def mutable_columns(self) -> tuple[str, ...]:
        return tuple(column for column in self.columns if column not in self.immutable_columns)

    def insert_sql(self) -> str:
        placeholders = ", ".join("?" for _ in self.columns)
        return f"INSERT INTO {self.name} ({', '.join(self.columns)}) VALUES ({placeholders})"

    def update_sql(self) -> str:
        assignments = ", ".join(f"{column} = ?" for column in self.mutable_columns)
        return f"UPDATE {self.name} SET {assignments} WHERE {self.key_column} = ?"

    def select_sql(self, *, where: str | None = None) -> str:
        clauses = [clause for clause in (self.deletion.list_filter(), where) if clause]
        sql = f"SELECT {', '.join(self.columns)} FROM {self.name}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        if self.order_by:
            sql += f" ORDER BY {self.order_by}"
        return sql

    def fetch_sql(self) -> str:
        """Select one row by key regardless of deletion state."""

        return f"SELECT {', '.join(self.columns)} FROM {self.name} WHERE {self.key_column} = ?"

    def delete_sql(self) -> str:
        return self.deletion.delete_sql(self.name, self.key_column)


CLIENTS: Final[TableSpec] = TableSpec(
    name=CLIENTS_TABLE,
    model=Client,
    deletion=SOFT_DELETE,
)

VAR_PARTNERS: Final[TableSpec] = TableSpec(
    name=VAR_PARTNERS_TABLE,
    model=VarPartner,
    deletion=SOFT_DELETE,
    immutable_columns=("id",),
)

VAR_CLIENTS: Final[TableSpec] = TableSpec(
    name=VAR_CLIENTS_TABLE,
    model=VarClient,
    deletion=SOFT_DELETE,
)

ADDITIONAL_LICENSES: Final[TableSpec] = TableSpec(
    name=ADDITIONAL_LICENSES_TABLE,
    model=AdditionalLicense,
    deletion=SOFT_DELETE,
)

VAR_CLIENT_INVOICES: Final[TableSpec] = TableSpec(
    name=VAR_CLIENT_INVOICES_TABLE,
    model=VarClientInvoice,
    deletion=HARD_DELETE,
    order_by="billing_month DESC, created_at DESC",
    bool_columns=(),
)

VAR_INVOICE_TRACKING: Final[TableSpec] = TableSpec(
    name=VAR_INVOICE_TRACKING_TABLE,
    model=VarInvoiceTracking,
    deletion=HARD_DELETE,
    key_column="var_client_id",
    bool_columns=("is_invoiced",),
    immutable_columns=("var_client_id",),
)

TABLE_SPECS: Final[tuple[TableSpec, ...]] = (
    CLIENTS,
    VAR_PARTNERS,
    VAR_CLIENTS,
    ADDITIONAL_LICENSES,
    VAR_CLIENT_INVOICES,
    VAR_INVOICE_TRACKING,
)


__all__ = [
    "ADDITIONAL_LICENSES",
    "CLIENTS",
    "HARD_DELETE",
    "SOFT_DELETE",
    "TABLE_SPECS",
    "VAR_CLIENTS",
    "VAR_CLIENT_INVOICES",
    "VAR_INVOICE_TRACKING",
    "VAR_PARTNERS",
    "DeletionPolicy",
    "TableSpec",
]
