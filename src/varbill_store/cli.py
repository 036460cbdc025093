"""Command-line interface for inspecting and maintaining billing databases."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from varbill_store.commands import CommandResult, CommandSurface
from varbill_store.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from varbill_store.observability.logging import LoggingConfig, setup_logging, shutdown_logging
from varbill_store.persistence import StoreError, StoreHandle

# CLI entity name -> list command on the command surface.
LIST_COMMANDS: Final[Mapping[str, str]] = {
    "clients": "get_clients",
    "var-partners": "get_var_partners",
    "var-clients": "get_var_clients",
    "licenses": "get_additional_licenses",
    "invoices": "get_var_client_invoices",
    "tracking": "get_var_invoice_tracking",
}


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="varbill",
        description=(
            "varbill: billing database maintenance.\n\n"
            "Common workflows:\n"
            "  varbill init billing.db              Create a database with all tables\n"
            "  varbill list clients --db billing.db Print active clients as JSON\n"
            "  varbill backup billing.db copy.db    Write a consistent snapshot\n"
            "  varbill check billing.db             Run an integrity check\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to varbill TOML config (default: ./varbill.toml if present).",
    )
    common.add_argument(
        "--log-level",
        default=None,
        help="Override logging.level (DEBUG, INFO, WARNING, ERROR).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init", parents=[common], help="Create or open a database and ensure its schema"
    )
    init_parser.add_argument(
        "db", nargs="?", default=None, help="Database file (default: database.path)"
    )
    init_parser.set_defaults(handler=_cmd_init)

    list_parser = subparsers.add_parser(
        "list", parents=[common], help="Print the rows of one entity as JSON"
    )
    list_parser.add_argument("entity", choices=sorted(LIST_COMMANDS))
    list_parser.add_argument("--db", default=None, help="Database file (default: database.path)")
    list_parser.add_argument(
        "--client-id", default=None, help="Client whose licenses to list (licenses only)"
    )
    list_parser.set_defaults(handler=_cmd_list)

    backup_parser = subparsers.add_parser(
        "backup", parents=[common], help="Write a consistent snapshot of a database"
    )
    backup_parser.add_argument("db", help="Source database file")
    backup_parser.add_argument("destination", help="Snapshot file to write")
    backup_parser.set_defaults(handler=_cmd_backup)

    check_parser = subparsers.add_parser(
        "check", parents=[common], help="Run PRAGMA integrity_check"
    )
    check_parser.add_argument(
        "db", nargs="?", default=None, help="Database file (default: database.path)"
    )
    check_parser.set_defaults(handler=_cmd_check)

    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Print the effective configuration as JSON"
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return the exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)

    try:
        config = _load_effective_config(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code

    logging_handle = setup_logging(LoggingConfig.from_mapping(config["logging"]))
    handle = StoreHandle(
        busy_timeout_ms=config["database"]["busy_timeout_ms"],
        enforce_foreign_keys=config["database"]["enforce_foreign_keys"],
        journal_mode=config["database"]["journal_mode"],
    )
    try:
        return int(namespace.handler(namespace, config, handle))
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    finally:
        handle.close()
        shutdown_logging(logging_handle)


def _cmd_init(args: argparse.Namespace, config: Mapping[str, object], handle: StoreHandle) -> int:
    surface = CommandSurface(handle)
    result = surface.set_database_path(_database_path(args.db, config))
    _emit_result(result)
    return 0 if result.ok else 1


def _cmd_list(args: argparse.Namespace, config: Mapping[str, object], handle: StoreHandle) -> int:
    surface = CommandSurface(handle)
    opened = surface.set_database_path(_existing_database(_database_path(args.db, config)))
    if not opened.ok:
        _emit_result(opened)
        return 1

    kwargs: dict[str, object] = {}
    if args.entity == "licenses":
        if not args.client_id:
            raise CLIError("list licenses requires --client-id", exit_code=2)
        kwargs["client_id"] = args.client_id
    elif args.client_id:
        raise CLIError("--client-id only applies to licenses", exit_code=2)

    result = surface.dispatch(LIST_COMMANDS[args.entity], **kwargs)
    _emit_result(result)
    return 0 if result.ok else 1


def _cmd_backup(args: argparse.Namespace, config: Mapping[str, object], handle: StoreHandle) -> int:
    del config
    try:
        store = handle.initialize(_existing_database(args.db), read_only=True)
        written = store.backup(args.destination)
    except (StoreError, ValueError) as exc:
        raise CLIError(str(exc)) from exc
    _emit_json({"command": "backup", "source": str(store.path), "destination": str(written)})
    return 0


def _cmd_check(args: argparse.Namespace, config: Mapping[str, object], handle: StoreHandle) -> int:
    try:
        store = handle.initialize(
            _existing_database(_database_path(args.db, config)), read_only=True
        )
        problems = store.integrity_check()
    except StoreError as exc:
        raise CLIError(str(exc)) from exc
    _emit_json(
        {
            "command": "check",
            "path": str(store.path),
            "ok": not problems,
            "problems": list(problems),
        }
    )
    return 0 if not problems else 1


def _cmd_config(args: argparse.Namespace, config: Mapping[str, object], handle: StoreHandle) -> int:
    del args, handle
    print(dump_effective_config(config))
    return 0


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, object] = {}
    if args.log_level is not None:
        overrides["logging.level"] = args.log_level
    try:
        return load_config(args.config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _database_path(explicit: str | None, config: Mapping[str, object]) -> str:
    if explicit:
        return explicit
    database = config.get("database")
    configured = database.get("path") if isinstance(database, Mapping) else None
    if isinstance(configured, str) and configured:
        return configured
    raise CLIError("no database given and database.path is not configured", exit_code=2)


def _existing_database(path: str) -> str:
    if not Path(path).expanduser().is_file():
        raise CLIError(f"database not found: {path}")
    return path


def _emit_result(result: CommandResult) -> None:
    if result.ok:
        _emit_json(result.value)
        return
    print(f"error [{result.error_kind}]: {result.error}", file=sys.stderr)


def _emit_json(payload: object) -> None:
    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


__all__ = ["LIST_COMMANDS", "CLIError", "build_parser", "run_cli"]
