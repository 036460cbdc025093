"""
varbill-store: command surface

File: src/varbill_store/commands.py

Purpose
- Pass-through boundary between a UI shell and the store.
- Records arrive and leave as plain dicts; every call returns a
  ``CommandResult`` instead of raising.

Behavior
- Each command runs against the active store of the injected ``StoreHandle``,
  which holds that store open for the whole call, and forwards its arguments
  unchanged. No business logic lives here.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from varbill_store.domain.models import (
    AdditionalLicense,
    Client,
    JSONValue,
    VarClient,
    VarClientInvoice,
    VarPartner,
)
from varbill_store.observability.logging import get_logger
from varbill_store.persistence.errors import StoreError
from varbill_store.persistence.handle import StoreHandle
from varbill_store.persistence.store import Store

INVALID_PAYLOAD: Final[str] = "invalid_payload"
UNKNOWN_COMMAND: Final[str] = "unknown_command"

COMMAND_NAMES: Final[tuple[str, ...]] = (
    "set_database_path",
    "get_clients",
    "add_client",
    "update_client",
    "delete_client",
    "get_var_partners",
    "add_var_partner",
    "update_var_partner",
    "delete_var_partner",
    "get_var_clients",
    "add_var_client",
    "update_var_client",
    "delete_var_client",
    "get_additional_licenses",
    "add_additional_license",
    "update_additional_license",
    "delete_additional_license",
    "get_var_client_invoices",
    "create_var_client_invoice",
    "update_var_client_invoice",
    "delete_var_client_invoice",
    "toggle_var_invoice_status",
    "get_var_invoice_tracking",
)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one command; ``error`` holds the rendered failure message."""

    ok: bool
    value: JSONValue = None
    error: str | None = None
    error_kind: str | None = None

    @classmethod
    def success(cls, value: JSONValue = None) -> CommandResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, error_kind: str) -> CommandResult:
        return cls(ok=False, error=error, error_kind=error_kind)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "ok": self.ok,
            "value": self.value,
            "error": self.error,
            "error_kind": self.error_kind,
        }


class CommandSurface:
    """Named commands over a ``StoreHandle``."""

    def __init__(self, handle: StoreHandle, *, logger: Any | None = None) -> None:
        self._handle = handle
        self._logger = logger if logger is not None else get_logger(__name__)

    def set_database_path(self, path: str) -> CommandResult:
        return self._guard(
            "set_database_path", lambda: str(self._handle.initialize(Path(path)).path)
        )

    # Clients

    def get_clients(self) -> CommandResult:
        return self._run(
            "get_clients",
            lambda store: [record.to_dict() for record in store.list_clients()],
        )

    def add_client(self, client: Mapping[str, object]) -> CommandResult:
        return self._run(
            "add_client",
            lambda store: store.add_client(Client.from_dict(client)).to_dict(),
        )

    def update_client(self, client: Mapping[str, object]) -> CommandResult:
        return self._run(
            "update_client",
            lambda store: store.update_client(Client.from_dict(client)).to_dict(),
        )

    def delete_client(self, id: str) -> CommandResult:  # noqa: A002
        return self._run("delete_client", lambda store: store.delete_client(id))

    # VAR partners

    def get_var_partners(self) -> CommandResult:
        return self._run(
            "get_var_partners",
            lambda store: [record.to_dict() for record in store.list_var_partners()],
        )

    def add_var_partner(self, partner: Mapping[str, object]) -> CommandResult:
        return self._run(
            "add_var_partner",
            lambda store: store.add_var_partner(VarPartner.from_dict(partner)).to_dict(),
        )

    def update_var_partner(self, partner: Mapping[str, object]) -> CommandResult:
        return self._run(
            "update_var_partner",
            lambda store: store.update_var_partner(VarPartner.from_dict(partner)).to_dict(),
        )

    def delete_var_partner(self, id: str) -> CommandResult:  # noqa: A002
        return self._run("delete_var_partner", lambda store: store.delete_var_partner(id))

    # VAR clients

    def get_var_clients(self) -> CommandResult:
        return self._run(
            "get_var_clients",
            lambda store: [record.to_dict() for record in store.list_var_clients()],
        )

    def add_var_client(self, client: Mapping[str, object]) -> CommandResult:
        return self._run(
            "add_var_client",
            lambda store: store.add_var_client(VarClient.from_dict(client)).to_dict(),
        )

    def update_var_client(self, client: Mapping[str, object]) -> CommandResult:
        return self._run(
            "update_var_client",
            lambda store: store.update_var_client(VarClient.from_dict(client)).to_dict(),
        )

    def delete_var_client(self, id: str) -> CommandResult:  # noqa: A002
        return self._run("delete_var_client", lambda store: store.delete_var_client(id))

    # Additional licenses

    def get_additional_licenses(self, client_id: str) -> CommandResult:
        return self._run(
            "get_additional_licenses",
            lambda store: [
                record.to_dict() for record in store.list_additional_licenses(client_id)
            ],
        )

    def add_additional_license(self, license: Mapping[str, object]) -> CommandResult:  # noqa: A002
        return self._run(
            "add_additional_license",
            lambda store: store.add_additional_license(
                AdditionalLicense.from_dict(license)
            ).to_dict(),
        )

    def update_additional_license(
        self, license: Mapping[str, object]  # noqa: A002
    ) -> CommandResult:
        return self._run(
            "update_additional_license",
            lambda store: store.update_additional_license(
                AdditionalLicense.from_dict(license)
            ).to_dict(),
        )

    def delete_additional_license(self, id: str) -> CommandResult:  # noqa: A002
        return self._run(
            "delete_additional_license", lambda store: store.delete_additional_license(id)
        )

    # VAR client invoices

    def get_var_client_invoices(self) -> CommandResult:
        return self._run(
            "get_var_client_invoices",
            lambda store: [record.to_dict() for record in store.list_invoices()],
        )

    def create_var_client_invoice(self, invoice: Mapping[str, object]) -> CommandResult:
        return self._run(
            "create_var_client_invoice",
            lambda store: store.create_invoice(VarClientInvoice.from_dict(invoice)).to_dict(),
        )

    def update_var_client_invoice(self, invoice: Mapping[str, object]) -> CommandResult:
        return self._run(
            "update_var_client_invoice",
            lambda store: store.update_invoice(VarClientInvoice.from_dict(invoice)).to_dict(),
        )

    def delete_var_client_invoice(self, id: str) -> CommandResult:  # noqa: A002
        return self._run("delete_var_client_invoice", lambda store: store.delete_invoice(id))

    # Invoice tracking

    def toggle_var_invoice_status(self, var_client_id: str, is_invoiced: bool) -> CommandResult:
        return self._run(
            "toggle_var_invoice_status",
            lambda store: store.set_invoiced(var_client_id, is_invoiced).to_dict(),
        )

    def get_var_invoice_tracking(self) -> CommandResult:
        return self._run(
            "get_var_invoice_tracking",
            lambda store: [record.to_dict() for record in store.list_invoice_tracking()],
        )

    def dispatch(self, command: str, **kwargs: object) -> CommandResult:
        """Route ``command`` by name, rejecting unknown names and bad arguments."""

        if command not in COMMAND_NAMES:
            self._logger.warning("command_unknown", command=command)
            return CommandResult.failure(f"unknown command: {command!r}", UNKNOWN_COMMAND)
        method: Callable[..., CommandResult] = getattr(self, command)
        try:
            inspect.signature(method).bind(**kwargs)
        except TypeError as exc:
            return CommandResult.failure(f"{command}: {exc}", INVALID_PAYLOAD)
        return method(**kwargs)

    def _run(self, command: str, call: Callable[[Store], JSONValue]) -> CommandResult:
        # The active store cannot be swapped or closed until call returns.
        return self._guard(command, lambda: self._handle.run(call))

    def _guard(self, command: str, call: Callable[[], JSONValue]) -> CommandResult:
        try:
            value = call()
        except StoreError as exc:
            self._logger.warning(
                "command_failed", command=command, error_kind=exc.kind.value, error=str(exc)
            )
            return CommandResult.failure(str(exc), exc.kind.value)
        except (TypeError, ValueError) as exc:
            self._logger.warning(
                "command_failed", command=command, error_kind=INVALID_PAYLOAD, error=str(exc)
            )
            return CommandResult.failure(str(exc), INVALID_PAYLOAD)
        self._logger.debug("command_completed", command=command)
        return CommandResult.success(value)


__all__ = [
    "COMMAND_NAMES",
    "INVALID_PAYLOAD",
    "UNKNOWN_COMMAND",
    "CommandResult",
    "CommandSurface",
]
