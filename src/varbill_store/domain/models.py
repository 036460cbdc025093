"""Dataclass billing records with light type validation and canonical serialization.

Records mirror the on-disk columns one-to-one: every dataclass field name is a
column name in the matching table. Validation is limited to types and
non-empty identities; business rules such as ``total`` matching the monthly
amounts are left to callers and never enforced here.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import MISSING, dataclass, fields
from typing import NoReturn, TypeVar

from varbill_store.constants import DEFAULT_INVOICE_STATUS, MONTH_COLUMNS

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TModel = TypeVar("TModel", bound="CanonicalModel")


class CanonicalModel:
    """Mixin for canonical dict/json serialization of flat records."""

    __slots__ = ()

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {}
        for record_field in fields(self):  # type: ignore[arg-type]
            value = getattr(self, record_field.name)
            if isinstance(value, float) and not math.isfinite(value):
                _fail(f"{type(self).__name__}.{record_field.name}", "must be finite")
            out[record_field.name] = value
        return out

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(record_field.name for record_field in fields(cls))  # type: ignore[arg-type]

    @classmethod
    def from_json(cls: type[TModel], raw: str) -> TModel:
        if not isinstance(raw, str):
            _fail(cls.__name__, f"expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            _fail(cls.__name__, f"invalid JSON: {exc}")
        if not isinstance(parsed, dict):
            _fail(cls.__name__, "JSON root must be an object")
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls: type[TModel], data: Mapping[str, object]) -> TModel:
        required: set[str] = set()
        optional: set[str] = set()
        for record_field in fields(cls):  # type: ignore[arg-type]
            has_default = (
                record_field.default is not MISSING or record_field.default_factory is not MISSING
            )
            (optional if has_default else required).add(record_field.name)
        parsed = _expect_object(data, cls.__name__, required=required, optional=optional)
        return cls(**parsed)

    @classmethod
    def from_stored(cls: type[TModel], values: Mapping[str, object]) -> TModel:
        """Rebuild a record from a stored row without re-running input validation.

        Rows already in a database are returned as they are, even when they
        would be rejected as new input (blank ids written by another tool).
        """

        record = object.__new__(cls)
        for name in cls.field_names():
            setattr(record, name, values[name])
        return record


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_id(value: object, path: str) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    if not value.strip():
        _fail(path, "must not be empty")
    return value


def _as_text(value: object, path: str) -> str:
    # Text is stored verbatim: no stripping, normalization or length cap.
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    return value


def _as_optional_text(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_text(value, path)


def _as_bool(value: object, path: str) -> bool:
    if isinstance(value, bool):
        return value
    _fail(path, f"expected boolean, got {type(value).__name__}")


def _as_int(value: object, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    return value


def _as_optional_int(value: object, path: str) -> int | None:
    if value is None:
        return None
    return _as_int(value, path)


def _as_float(value: object, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        _fail(path, f"expected number, got {type(value).__name__}")
    parsed = float(value)
    if not math.isfinite(parsed):
        _fail(path, "must be finite")
    return parsed


def _as_optional_float(value: object, path: str) -> float | None:
    if value is None:
        return None
    return _as_float(value, path)


class _CommercialTermsMixin:
    """Validation shared by direct clients and VAR-managed clients."""

    __slots__ = ()

    def _validate_commercial_terms(self) -> None:
        name = type(self).__name__
        self.id = _as_id(self.id, f"{name}.id")
        self.client_name = _as_text(self.client_name, f"{name}.client_name")
        self.debt_code = _as_optional_text(self.debt_code, f"{name}.debt_code")
        self.users = _as_int(self.users, f"{name}.users")
        self.billing_model = _as_text(self.billing_model, f"{name}.billing_model")
        self.currency = _as_text(self.currency, f"{name}.currency")
        for month in MONTH_COLUMNS:
            setattr(self, month, _as_float(getattr(self, month), f"{name}.{month}"))
        self.total = _as_float(self.total, f"{name}.total")
        self.comments = _as_optional_text(self.comments, f"{name}.comments")
        self.deal_start_date = _as_text(self.deal_start_date, f"{name}.deal_start_date")
        self.anniversary_month = _as_optional_int(
            self.anniversary_month, f"{name}.anniversary_month"
        )
        self.billing_frequency = _as_optional_text(
            self.billing_frequency, f"{name}.billing_frequency"
        )
        self.installment_months = _as_optional_int(
            self.installment_months, f"{name}.installment_months"
        )
        self.monthly_factor = _as_optional_float(self.monthly_factor, f"{name}.monthly_factor")
        self.implementation_fee = _as_optional_float(
            self.implementation_fee, f"{name}.implementation_fee"
        )
        self.implementation_months = _as_optional_int(
            self.implementation_months, f"{name}.implementation_months"
        )
        self.implementation_start_date = _as_optional_text(
            self.implementation_start_date, f"{name}.implementation_start_date"
        )
        self.implementation_complete_date = _as_optional_text(
            self.implementation_complete_date, f"{name}.implementation_complete_date"
        )
        self.subscription_duration = _as_optional_int(
            self.subscription_duration, f"{name}.subscription_duration"
        )
        self.is_active = _as_bool(self.is_active, f"{name}.is_active")
        self.created_at = _as_text(self.created_at, f"{name}.created_at")
        self.custom_increase_rate = _as_optional_float(
            self.custom_increase_rate, f"{name}.custom_increase_rate"
        )
        self.future_year_data = _as_optional_text(
            self.future_year_data, f"{name}.future_year_data"
        )
        self.base_year_data = _as_optional_text(self.base_year_data, f"{name}.base_year_data")

    @property
    def monthly_amounts(self) -> tuple[float, ...]:
        """Monthly revenue vector, January first."""

        return tuple(getattr(self, month) for month in MONTH_COLUMNS)


@dataclass(slots=True, kw_only=True)
class Client(_CommercialTermsMixin, CanonicalModel):
    """A direct (non-reseller) billing relationship."""

    id: str
    client_name: str
    debt_code: str | None = None
    users: int
    billing_model: str
    currency: str
    jan: float = 0.0
    feb: float = 0.0
    mar: float = 0.0
    apr: float = 0.0
    may: float = 0.0
    jun: float = 0.0
    jul: float = 0.0
    aug: float = 0.0
    sep: float = 0.0
    oct: float = 0.0
    nov: float = 0.0
    dec: float = 0.0
    total: float = 0.0
    comments: str | None = None
    deal_start_date: str
    anniversary_month: int | None = None
    billing_frequency: str | None = None
    installment_months: int | None = None
    monthly_factor: float | None = None
    implementation_fee: float | None = None
    implementation_months: int | None = None
    implementation_start_date: str | None = None
    implementation_complete_date: str | None = None
    subscription_duration: int | None = None
    subscription_start_date: str | None = None
    monthly_license_rate: float | None = None
    commission_rate: float | None = None
    var_partner: str | None = None
    is_active: bool = True
    created_at: str
    custom_increase_rate: float | None = None
    future_year_data: str | None = None
    base_year_data: str | None = None

    def __post_init__(self) -> None:
        self._validate_commercial_terms()
        self.subscription_start_date = _as_optional_text(
            self.subscription_start_date, "Client.subscription_start_date"
        )
        self.monthly_license_rate = _as_optional_float(
            self.monthly_license_rate, "Client.monthly_license_rate"
        )
        self.commission_rate = _as_optional_float(self.commission_rate, "Client.commission_rate")
        # Free-text partner reference; never checked against var_partners.
        self.var_partner = _as_optional_text(self.var_partner, "Client.var_partner")


@dataclass(slots=True, kw_only=True)
class VarPartner(CanonicalModel):
    """A reseller earning commission on the deals it manages."""

    id: str
    name: str
    region: str
    contact_person: str
    email: str
    phone: str | None = None
    commission_rate: float
    is_active: bool = True

    def __post_init__(self) -> None:
        self.id = _as_id(self.id, "VarPartner.id")
        self.name = _as_text(self.name, "VarPartner.name")
        self.region = _as_text(self.region, "VarPartner.region")
        self.contact_person = _as_text(self.contact_person, "VarPartner.contact_person")
        self.email = _as_text(self.email, "VarPartner.email")
        self.phone = _as_optional_text(self.phone, "VarPartner.phone")
        self.commission_rate = _as_float(self.commission_rate, "VarPartner.commission_rate")
        self.is_active = _as_bool(self.is_active, "VarPartner.is_active")


@dataclass(slots=True, kw_only=True)
class VarClient(_CommercialTermsMixin, CanonicalModel):
    """A client deal owned by a VAR partner."""

    id: str
    client_name: str
    debt_code: str | None = None
    users: int
    billing_model: str
    currency: str
    jan: float = 0.0
    feb: float = 0.0
    mar: float = 0.0
    apr: float = 0.0
    may: float = 0.0
    jun: float = 0.0
    jul: float = 0.0
    aug: float = 0.0
    sep: float = 0.0
    oct: float = 0.0
    nov: float = 0.0
    dec: float = 0.0
    total: float = 0.0
    comments: str | None = None
    deal_start_date: str
    anniversary_month: int | None = None
    billing_frequency: str | None = None
    installment_months: int | None = None
    monthly_factor: float | None = None
    implementation_fee: float | None = None
    implementation_months: int | None = None
    implementation_start_date: str | None = None
    implementation_complete_date: str | None = None
    subscription_duration: int | None = None
    var_partner_id: str
    commission_rate: float
    is_active: bool = True
    created_at: str
    custom_increase_rate: float | None = None
    future_year_data: str | None = None
    base_year_data: str | None = None

    def __post_init__(self) -> None:
        self._validate_commercial_terms()
        self.var_partner_id = _as_id(self.var_partner_id, "VarClient.var_partner_id")
        self.commission_rate = _as_float(self.commission_rate, "VarClient.commission_rate")


@dataclass(slots=True, kw_only=True)
class AdditionalLicense(CanonicalModel):
    """An add-on license line attached to a direct client."""

    id: str
    client_id: str
    license_type: str
    quantity: int
    price_per_unit: float
    start_date: str
    is_active: bool = True
    created_at: str

    def __post_init__(self) -> None:
        self.id = _as_id(self.id, "AdditionalLicense.id")
        self.client_id = _as_id(self.client_id, "AdditionalLicense.client_id")
        self.license_type = _as_text(self.license_type, "AdditionalLicense.license_type")
        self.quantity = _as_int(self.quantity, "AdditionalLicense.quantity")
        self.price_per_unit = _as_float(self.price_per_unit, "AdditionalLicense.price_per_unit")
        self.start_date = _as_text(self.start_date, "AdditionalLicense.start_date")
        self.is_active = _as_bool(self.is_active, "AdditionalLicense.is_active")
        self.created_at = _as_text(self.created_at, "AdditionalLicense.created_at")


@dataclass(slots=True, kw_only=True)
class VarClientInvoice(CanonicalModel):
    """One billing-period commission invoice for a VAR client."""

    id: str
    var_client_id: str
    var_partner_id: str
    billing_month: str
    users: int
    client_revenue: float
    commission_rate: float
    commission_amount: float
    invoice_date: str | None = None
    invoice_status: str = DEFAULT_INVOICE_STATUS
    notes: str | None = None
    created_at: str
    updated_at: str

    def __post_init__(self) -> None:
        self.id = _as_id(self.id, "VarClientInvoice.id")
        self.var_client_id = _as_id(self.var_client_id, "VarClientInvoice.var_client_id")
        self.var_partner_id = _as_id(self.var_partner_id, "VarClientInvoice.var_partner_id")
        self.billing_month = _as_text(self.billing_month, "VarClientInvoice.billing_month")
        self.users = _as_int(self.users, "VarClientInvoice.users")
        self.client_revenue = _as_float(self.client_revenue, "VarClientInvoice.client_revenue")
        self.commission_rate = _as_float(self.commission_rate, "VarClientInvoice.commission_rate")
        self.commission_amount = _as_float(
            self.commission_amount, "VarClientInvoice.commission_amount"
        )
        self.invoice_date = _as_optional_text(self.invoice_date, "VarClientInvoice.invoice_date")
        self.invoice_status = _as_text(self.invoice_status, "VarClientInvoice.invoice_status")
        self.notes = _as_optional_text(self.notes, "VarClientInvoice.notes")
        self.created_at = _as_text(self.created_at, "VarClientInvoice.created_at")
        self.updated_at = _as_text(self.updated_at, "VarClientInvoice.updated_at")


@dataclass(slots=True, kw_only=True)
class VarInvoiceTracking(CanonicalModel):
    """Per-VAR-client "invoiced" flag; one row per client."""

    var_client_id: str
    is_invoiced: bool = False
    invoiced_date: str | None = None

    def __post_init__(self) -> None:
        self.var_client_id = _as_id(self.var_client_id, "VarInvoiceTracking.var_client_id")
        self.is_invoiced = _as_bool(self.is_invoiced, "VarInvoiceTracking.is_invoiced")
        self.invoiced_date = _as_optional_text(
            self.invoiced_date, "VarInvoiceTracking.invoiced_date"
        )


__all__ = [
    "AdditionalLicense",
    "CanonicalModel",
    "Client",
    "JSONScalar",
    "JSONValue",
    "VarClient",
    "VarClientInvoice",
    "VarInvoiceTracking",
    "VarPartner",
]
