"""
varbill-store: config schema

File: src/varbill_store/config/schema.py

Purpose
- Built-in defaults, deep merge and strict validation of the effective config.

Layout
- ``[meta]`` schema_version
- ``[database]`` path, busy_timeout_ms, enforce_foreign_keys, journal_mode
- ``[logging]`` level, log_dir, log_to_stderr

Validation never raises on the first problem; every issue is collected with a
dotted path so the CLI can report them all at once.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, NotRequired, TypedDict

from varbill_store.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_BUSY_TIMEOUT_MS,
    DEFAULT_JOURNAL_MODE,
    JOURNAL_MODES,
)

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("database", "path"),
    ("logging", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class DatabaseConfig(TypedDict):
    path: NotRequired[str]
    busy_timeout_ms: int
    enforce_foreign_keys: bool
    journal_mode: str


class LoggingSectionConfig(TypedDict):
    level: str
    log_dir: NotRequired[str]
    log_to_stderr: bool


class StoreConfig(TypedDict):
    meta: MetaConfig
    database: DatabaseConfig
    logging: LoggingSectionConfig


DEFAULT_CONFIG: Final[StoreConfig] = {
    "meta": {"schema_version": CONFIG_SCHEMA_VERSION},
    "database": {
        "busy_timeout_ms": DEFAULT_BUSY_TIMEOUT_MS,
        "enforce_foreign_keys": True,
        "journal_mode": DEFAULT_JOURNAL_MODE,
    },
    "logging": {
        "level": "INFO",
        "log_to_stderr": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> StoreConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> tuple[ConfigValidationIssue, ...]:
    """Return every validation issue; an empty tuple means the config is valid."""

    issues = _IssueCollector()
    _validate_root(config, issues)
    return issues.items()


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    issues = _IssueCollector()
    normalized = _validate_root(config, issues)
    if normalized is None or issues.has_issues:
        raise ConfigValidationError(issues.items())
    return normalized


def _validate_root(config: object, issues: _IssueCollector) -> dict[str, Any] | None:
    root = _as_object(config, "<root>", issues)
    if root is None:
        return None
    _reject_unknown_keys(root, {"meta", "database", "logging"}, "", issues)

    out: dict[str, Any] = {}
    _section(root, key="meta", issues=issues, validator=_validate_meta, out=out)
    _section(root, key="database", issues=issues, validator=_validate_database, out=out)
    _section(root, key="logging", issues=issues, validator=_validate_logging, out=out)
    for key in ("meta", "database", "logging"):
        if key not in root:
            issues.add(key, "missing required section")
    return out


def _section(
    payload: Mapping[str, object],
    *,
    key: str,
    issues: _IssueCollector,
    validator: Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]],
    out: dict[str, Any],
) -> None:
    raw = payload.get(key)
    if raw is None:
        return
    section_obj = _as_object(raw, key, issues)
    if section_obj is None:
        return
    out[key] = validator(section_obj, key, issues)


def _validate_meta(
    payload: dict[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)
    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != CONFIG_SCHEMA_VERSION:
                issues.add(
                    _join(path, "schema_version"),
                    f"unsupported schema version {parsed}; expected {CONFIG_SCHEMA_VERSION}",
                )
    return out


def _validate_database(
    payload: dict[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    required = {"busy_timeout_ms", "enforce_foreign_keys", "journal_mode"}
    _reject_unknown_keys(payload, required | {"path"}, path, issues)
    _require_keys(payload, required, path, issues)

    out: dict[str, Any] = {}
    if "path" in payload:
        parsed_path = _as_path_text(payload["path"], _join(path, "path"), issues)
        if parsed_path is not None:
            out["path"] = parsed_path
    if "busy_timeout_ms" in payload:
        parsed_timeout = _as_int(
            payload["busy_timeout_ms"], _join(path, "busy_timeout_ms"), issues, minimum=0
        )
        if parsed_timeout is not None:
            out["busy_timeout_ms"] = parsed_timeout
    if "enforce_foreign_keys" in payload:
        parsed_fk = _as_bool(
            payload["enforce_foreign_keys"], _join(path, "enforce_foreign_keys"), issues
        )
        if parsed_fk is not None:
            out["enforce_foreign_keys"] = parsed_fk
    if "journal_mode" in payload:
        raw_mode = payload["journal_mode"]
        parsed_mode = _as_enum(
            raw_mode.lower() if isinstance(raw_mode, str) else raw_mode,
            _join(path, "journal_mode"),
            issues,
            allowed_values=JOURNAL_MODES,
        )
        if parsed_mode is not None:
            out["journal_mode"] = parsed_mode
    return out


def _validate_logging(
    payload: dict[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    required = {"level", "log_to_stderr"}
    _reject_unknown_keys(payload, required | {"log_dir"}, path, issues)
    _require_keys(payload, required, path, issues)

    out: dict[str, Any] = {}
    if "level" in payload:
        raw_level = payload["level"]
        parsed_level = _as_enum(
            raw_level.upper() if isinstance(raw_level, str) else raw_level,
            _join(path, "level"),
            issues,
            allowed_values=LOG_LEVELS,
        )
        if parsed_level is not None:
            out["level"] = parsed_level
    if "log_dir" in payload:
        parsed_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_dir is not None:
            out["log_dir"] = parsed_dir
    if "log_to_stderr" in payload:
        parsed_stderr = _as_bool(payload["log_to_stderr"], _join(path, "log_to_stderr"), issues)
        if parsed_stderr is not None:
            out["log_to_stderr"] = parsed_stderr
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            _merge_into(current, value)
        elif isinstance(value, Mapping):
            nested: dict[str, Any] = {}
            _merge_into(nested, value)
            target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _join(base: str, key: str) -> str:
    return f"{base}.{key}" if base else key


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DatabaseConfig",
    "LoggingSectionConfig",
    "StoreConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
