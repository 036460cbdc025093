"""Stable constants shared across the store, command surface, and CLI."""

from __future__ import annotations

from typing import Final

# Table names.
CLIENTS_TABLE: Final[str] = "clients"
VAR_PARTNERS_TABLE: Final[str] = "var_partners"
VAR_CLIENTS_TABLE: Final[str] = "var_clients"
ADDITIONAL_LICENSES_TABLE: Final[str] = "additional_licenses"
VAR_CLIENT_INVOICES_TABLE: Final[str] = "var_client_invoices"
VAR_INVOICE_TRACKING_TABLE: Final[str] = "var_invoice_tracking"

TABLE_NAMES: Final[tuple[str, ...]] = (
    CLIENTS_TABLE,
    VAR_PARTNERS_TABLE,
    VAR_CLIENTS_TABLE,
    ADDITIONAL_LICENSES_TABLE,
    VAR_CLIENT_INVOICES_TABLE,
    VAR_INVOICE_TRACKING_TABLE,
)

# Monthly revenue columns, January through December.
MONTH_COLUMNS: Final[tuple[str, ...]] = (
    "jan",
    "feb",
    "mar",
    "apr",
    "may",
    "jun",
    "jul",
    "aug",
    "sep",
    "oct",
    "nov",
    "dec",
)

DEFAULT_INVOICE_STATUS: Final[str] = "pending"

# SQLite connection defaults.
DEFAULT_BUSY_TIMEOUT_MS: Final[int] = 5_000
DEFAULT_JOURNAL_MODE: Final[str] = "delete"
JOURNAL_MODES: Final[tuple[str, ...]] = ("delete", "truncate", "persist", "memory", "wal")

# Filters offered by OS file pickers that feed ``set_database_path``.
DATABASE_FILE_SUFFIXES: Final[tuple[str, ...]] = (".db", ".sqlite", ".sqlite3")
DEFAULT_DATABASE_FILENAME: Final[str] = "billing.db"

CONFIG_SCHEMA_VERSION: Final[int] = 1

__all__ = [
    "ADDITIONAL_LICENSES_TABLE",
    "CLIENTS_TABLE",
    "CONFIG_SCHEMA_VERSION",
    "DATABASE_FILE_SUFFIXES",
    "DEFAULT_BUSY_TIMEOUT_MS",
    "DEFAULT_DATABASE_FILENAME",
    "DEFAULT_INVOICE_STATUS",
    "DEFAULT_JOURNAL_MODE",
    "JOURNAL_MODES",
    "MONTH_COLUMNS",
    "TABLE_NAMES",
    "VAR_CLIENTS_TABLE",
    "VAR_CLIENT_INVOICES_TABLE",
    "VAR_INVOICE_TRACKING_TABLE",
    "VAR_PARTNERS_TABLE",
]
