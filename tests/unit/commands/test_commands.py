"""Command surface tests: dict payloads in, ``CommandResult`` out."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from varbill_store.commands import (
    COMMAND_NAMES,
    INVALID_PAYLOAD,
    UNKNOWN_COMMAND,
    CommandResult,
    CommandSurface,
)
from varbill_store.persistence.handle import StoreHandle

from ..persistence import (
    make_client,
    make_invoice,
    make_license,
    make_var_client,
    make_var_partner,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def handle() -> Iterator[StoreHandle]:
    store_handle = StoreHandle()
    yield store_handle
    store_handle.close()


@pytest.fixture
def surface(handle: StoreHandle, tmp_path: Path) -> CommandSurface:
    commands = CommandSurface(handle)
    opened = commands.set_database_path(str(tmp_path / "billing.db"))
    assert opened.ok, opened.error
    return commands


def test_every_command_before_initialization_reports_not_initialized(
    handle: StoreHandle,
) -> None:
    commands = CommandSurface(handle)

    result = commands.get_clients()

    assert result == CommandResult(
        ok=False, value=None, error="Database not initialized", error_kind="not_initialized"
    )
    assert commands.delete_client("client-1").error_kind == "not_initialized"
    assert commands.get_var_invoice_tracking().error_kind == "not_initialized"


def test_set_database_path_returns_opened_path(handle: StoreHandle, tmp_path: Path) -> None:
    commands = CommandSurface(handle)

    result = commands.set_database_path(str(tmp_path / "billing.db"))

    assert result.ok
    assert result.value == str(tmp_path / "billing.db")
    assert (tmp_path / "billing.db").exists()


def test_set_database_path_failure_is_io_error(handle: StoreHandle, tmp_path: Path) -> None:
    commands = CommandSurface(handle)

    result = commands.set_database_path(str(tmp_path / "missing" / "billing.db"))

    assert not result.ok
    assert result.error_kind == "io_error"
    assert not handle.is_initialized


def test_client_round_trip_through_dicts(surface: CommandSurface) -> None:
    payload = make_client(1).to_dict()

    added = surface.add_client(payload)
    listed = surface.get_clients()

    assert added.ok
    assert added.value == payload
    assert listed.value == [payload]


def test_duplicate_client_reports_duplicate_key(surface: CommandSurface) -> None:
    payload = make_client(1).to_dict()
    surface.add_client(payload)

    result = surface.add_client(payload)

    assert not result.ok
    assert result.error_kind == "duplicate_key"
    assert result.value is None


def test_malformed_payload_reports_invalid_payload(surface: CommandSurface) -> None:
    payload = make_client(1).to_dict()
    payload["users"] = "ten"

    result = surface.add_client(payload)

    assert not result.ok
    assert result.error_kind == INVALID_PAYLOAD
    assert "Client.users" in str(result.error)
    assert surface.get_clients().value == []


def test_update_and_delete_missing_rows_report_not_found(surface: CommandSurface) -> None:
    update = surface.update_client(make_client(9).to_dict())
    delete = surface.delete_var_client_invoice("invoice-404")

    assert update.error_kind == "not_found"
    assert delete.error_kind == "not_found"


def test_soft_deleted_client_disappears_from_list(surface: CommandSurface) -> None:
    surface.add_client(make_client(1).to_dict())
    surface.add_client(make_client(2).to_dict())

    deleted = surface.delete_client("client-1")

    assert deleted == CommandResult.success(None)
    assert [row["id"] for row in surface.get_clients().value] == ["client-2"]


def test_licenses_are_listed_per_client(surface: CommandSurface) -> None:
    surface.add_client(make_client(1).to_dict())
    surface.add_client(make_client(2).to_dict())
    surface.add_additional_license(make_license(1, "client-1").to_dict())
    surface.add_additional_license(make_license(2, "client-2").to_dict())

    result = surface.get_additional_licenses("client-1")

    assert [row["id"] for row in result.value] == ["license-1"]
    assert surface.get_additional_licenses("client-404").value == []


def test_var_workflow_through_commands(surface: CommandSurface) -> None:
    partner = make_var_partner(1).to_dict()
    var_client = make_var_client(1, "partner-1").to_dict()
    assert surface.add_var_partner(partner).ok
    assert surface.add_var_client(var_client).ok

    created = surface.create_var_client_invoice(
        make_invoice(1, "var-client-1", "partner-1").to_dict()
    )
    toggled = surface.toggle_var_invoice_status("var-client-1", True)

    assert created.ok
    assert created.value["invoice_status"] == "pending"
    assert toggled.value == {
        "var_client_id": "var-client-1",
        "is_invoiced": True,
        "invoiced_date": None,
    }
    assert surface.get_var_invoice_tracking().value == [toggled.value]
    assert [row["id"] for row in surface.get_var_client_invoices().value] == ["invoice-1"]


def test_invoice_for_unknown_var_client_reports_constraint_violation(
    surface: CommandSurface,
) -> None:
    result = surface.create_var_client_invoice(
        make_invoice(1, "var-client-404", "partner-404").to_dict()
    )

    assert result.error_kind == "constraint_violation"


def test_toggle_rejects_non_boolean_flag(surface: CommandSurface) -> None:
    surface.add_var_partner(make_var_partner(1).to_dict())
    surface.add_var_client(make_var_client(1, "partner-1").to_dict())

    result = surface.toggle_var_invoice_status("var-client-1", 1)  # type: ignore[arg-type]

    assert result.error_kind == INVALID_PAYLOAD


def test_dispatch_routes_by_name(surface: CommandSurface) -> None:
    surface.dispatch("add_client", client=make_client(1).to_dict())

    result = surface.dispatch("get_clients")

    assert [row["id"] for row in result.value] == ["client-1"]


def test_dispatch_rejects_unknown_command_and_bad_arguments(surface: CommandSurface) -> None:
    unknown = surface.dispatch("drop_everything")
    private = surface.dispatch("_run")
    missing = surface.dispatch("delete_client")
    extra = surface.dispatch("get_clients", id="client-1")

    assert unknown.error_kind == UNKNOWN_COMMAND
    assert private.error_kind == UNKNOWN_COMMAND
    assert missing.error_kind == INVALID_PAYLOAD
    assert extra.error_kind == INVALID_PAYLOAD


def test_every_command_name_is_a_surface_method() -> None:
    assert len(COMMAND_NAMES) == len(set(COMMAND_NAMES)) == 23
    for name in COMMAND_NAMES:
        assert callable(getattr(CommandSurface, name))


def test_result_to_dict_is_json_shaped() -> None:
    assert CommandResult.failure("boom", "engine_error").to_dict() == {
        "ok": False,
        "value": None,
        "error": "boom",
        "error_kind": "engine_error",
    }
