"""Shared deterministic builders for persistence tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Final

from varbill_store.domain.models import (
    AdditionalLicense,
    Client,
    VarClient,
    VarClientInvoice,
    VarPartner,
)
from varbill_store.persistence.store import Store

if TYPE_CHECKING:
    from pathlib import Path

try:
    from datetime import UTC
except ImportError:
    UTC = timezone.utc  # noqa: UP017

_BASE_TS: Final[datetime] = datetime(2024, 1, 15, 9, 30, 0, tzinfo=UTC)


def fixed_ts(seed: int) -> str:
    moment = _BASE_TS + timedelta(seconds=seed)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def open_store(tmp_path: Path, name: str = "billing.db") -> Store:
    return Store.open(tmp_path / name)


def make_client(seed: int, **overrides: object) -> Client:
    client = Client(
        id=f"client-{seed}",
        client_name=f"Client {seed}",
        users=10 + seed,
        billing_model="per_user",
        currency="ZAR",
        jan=100.0 + seed,
        feb=100.0 + seed,
        mar=120.5,
        total=320.5 + 2 * seed,
        deal_start_date="2024-01-01",
        created_at=fixed_ts(seed),
    )
    return replace(client, **overrides) if overrides else client


def make_full_client(seed: int) -> Client:
    """Client with every optional field populated."""

    return make_client(
        seed,
        debt_code=f"DC{seed:04d}",
        apr=1.0,
        may=2.0,
        jun=3.0,
        jul=4.0,
        aug=5.0,
        sep=6.0,
        oct=7.0,
        nov=8.0,
        dec=9.0,
        comments="renewal pending",
        anniversary_month=3,
        billing_frequency="quarterly",
        installment_months=3,
        monthly_factor=1.05,
        implementation_fee=2500.0,
        implementation_months=2,
        implementation_start_date="2024-01-02",
        implementation_complete_date="2024-03-01",
        subscription_duration=36,
        subscription_start_date="2024-02-01",
        monthly_license_rate=42.5,
        commission_rate=0.1,
        var_partner="Acme Reseller",
        custom_increase_rate=0.08,
        future_year_data='{"2025":{"jan":110}}',
        base_year_data='{"2024":{"jan":100}}',
    )


def make_var_partner(seed: int, **overrides: object) -> VarPartner:
    partner = VarPartner(
        id=f"partner-{seed}",
        name=f"Partner {seed}",
        region="EMEA",
        contact_person=f"Contact {seed}",
        email=f"partner{seed}@example.com",
        commission_rate=0.15,
    )
    return replace(partner, **overrides) if overrides else partner


def make_var_client(seed: int, var_partner_id: str, **overrides: object) -> VarClient:
    client = VarClient(
        id=f"var-client-{seed}",
        client_name=f"VAR Client {seed}",
        users=5 + seed,
        billing_model="flat",
        currency="USD",
        jan=50.0,
        total=50.0,
        deal_start_date="2024-01-01",
        var_partner_id=var_partner_id,
        commission_rate=0.2,
        created_at=fixed_ts(seed),
    )
    return replace(client, **overrides) if overrides else client


def make_license(seed: int, client_id: str, **overrides: object) -> AdditionalLicense:
    license_ = AdditionalLicense(
        id=f"license-{seed}",
        client_id=client_id,
        license_type="analytics",
        quantity=seed + 1,
        price_per_unit=12.5,
        start_date="2024-02-01",
        created_at=fixed_ts(seed),
    )
    return replace(license_, **overrides) if overrides else license_


def make_invoice(
    seed: int,
    var_client_id: str,
    var_partner_id: str,
    *,
    billing_month: str = "2024-01",
    **overrides: object,
) -> VarClientInvoice:
    invoice = VarClientInvoice(
        id=f"invoice-{seed}",
        var_client_id=var_client_id,
        var_partner_id=var_partner_id,
        billing_month=billing_month,
        users=7,
        client_revenue=1000.0,
        commission_rate=0.2,
        commission_amount=200.0,
        created_at=fixed_ts(seed),
        updated_at=fixed_ts(seed),
    )
    return replace(invoice, **overrides) if overrides else invoice


def seed_var_graph(store: Store, seed: int = 1) -> tuple[VarPartner, VarClient]:
    """Insert one partner and one VAR client owned by it."""

    partner = store.add_var_partner(make_var_partner(seed))
    client = store.add_var_client(make_var_client(seed, partner.id))
    return partner, client


__all__ = [
    "fixed_ts",
    "make_client",
    "make_full_client",
    "make_invoice",
    "make_license",
    "make_var_client",
    "make_var_partner",
    "open_store",
    "seed_var_graph",
]
