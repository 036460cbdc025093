"""Idempotent DDL for the six billing tables.

Statements only ever create missing tables; existing data and columns are
left alone so a database written by an older build opens unchanged.
"""

from __future__ import annotations

import sqlite3
from typing import Final

_COMMERCIAL_COLUMNS_SQL: Final[str] = """
        client_name TEXT NOT NULL,
        debt_code TEXT,
        users INTEGER NOT NULL,
        billing_model TEXT NOT NULL,
        currency TEXT NOT NULL,
        jan REAL NOT NULL DEFAULT 0,
        feb REAL NOT NULL DEFAULT 0,
        mar REAL NOT NULL DEFAULT 0,
        apr REAL NOT NULL DEFAULT 0,
        may REAL NOT NULL DEFAULT 0,
        jun REAL NOT NULL DEFAULT 0,
        jul REAL NOT NULL DEFAULT 0,
        aug REAL NOT NULL DEFAULT 0,
        sep REAL NOT NULL DEFAULT 0,
        oct REAL NOT NULL DEFAULT 0,
        nov REAL NOT NULL DEFAULT 0,
        dec REAL NOT NULL DEFAULT 0,
        total REAL NOT NULL DEFAULT 0,
        comments TEXT,
        deal_start_date TEXT NOT NULL,
        anniversary_month INTEGER,
        billing_frequency TEXT,
        installment_months INTEGER,
        monthly_factor REAL,
        implementation_fee REAL,
        implementation_months INTEGER,
        implementation_start_date TEXT,
        implementation_complete_date TEXT,
        subscription_duration INTEGER,"""

SCHEMA_STATEMENTS: Final[tuple[str, ...]] = (
    f"""
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT PRIMARY KEY,{_COMMERCIAL_COLUMNS_SQL}
        subscription_start_date TEXT,
        monthly_license_rate REAL,
        commission_rate REAL,
        var_partner TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        custom_increase_rate REAL,
        future_year_data TEXT,
        base_year_data TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS var_partners (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        region TEXT NOT NULL,
        contact_person TEXT NOT NULL,
        email TEXT NOT NULL,
        phone TEXT,
        commission_rate REAL NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS var_clients (
        id TEXT PRIMARY KEY,{_COMMERCIAL_COLUMNS_SQL}
        var_partner_id TEXT NOT NULL,
        commission_rate REAL NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        custom_increase_rate REAL,
        future_year_data TEXT,
        base_year_data TEXT,
        FOREIGN KEY (var_partner_id) REFERENCES var_partners (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS additional_licenses (
        id TEXT PRIMARY KEY,
        client_id TEXT NOT NULL,
        license_type TEXT NOT NULL,
        quantity INTEGER NOT NULL,
        price_per_unit REAL NOT NULL,
        start_date TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        FOREIGN KEY (client_id) REFERENCES clients (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS var_client_invoices (
        id TEXT PRIMARY KEY,
        var_client_id TEXT NOT NULL,
        var_partner_id TEXT NOT NULL,
        billing_month TEXT NOT NULL,
        users INTEGER NOT NULL,
        client_revenue REAL NOT NULL,
        commission_rate REAL NOT NULL,
        commission_amount REAL NOT NULL,
        invoice_date TEXT,
        invoice_status TEXT NOT NULL DEFAULT 'pending',
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (var_client_id) REFERENCES var_clients (id),
        FOREIGN KEY (var_partner_id) REFERENCES var_partners (id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS var_invoice_tracking (
        var_client_id TEXT PRIMARY KEY,
        is_invoiced INTEGER NOT NULL DEFAULT 0,
        invoiced_date TEXT,
        FOREIGN KEY (var_client_id) REFERENCES var_clients (id)
    )
    """,
)


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create any missing tables on ``conn``."""

    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)


__all__ = ["SCHEMA_STATEMENTS", "ensure_schema"]
