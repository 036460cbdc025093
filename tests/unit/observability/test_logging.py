"""Queue-backed JSON-lines logging tests."""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING

import pytest
import structlog

from varbill_store.observability.logging import (
    LoggingConfig,
    get_active_logging_handle,
    get_logger,
    setup_logging,
    shutdown_logging,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()


def _read_json_lines(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def _file_only(tmp_path: Path, **overrides: object) -> LoggingConfig:
    return LoggingConfig(log_dir=tmp_path / "logs", log_to_stderr=False, **overrides)


def test_structlog_events_land_as_json_lines_with_fields(tmp_path: Path) -> None:
    handle = setup_logging(_file_only(tmp_path))

    structlog.get_logger("varbill_store.persistence.store").info(
        "store_record_deleted", table="clients", record_id="client-1", policy="soft"
    )
    shutdown_logging(handle)

    assert handle.log_path == tmp_path / "logs" / "varbill.jsonl"
    [event] = _read_json_lines(handle.log_path)
    assert event["message"] == "store_record_deleted"
    assert event["level"] == "INFO"
    assert event["logger"] == "varbill_store.persistence.store"
    assert event["fields"] == {"table": "clients", "record_id": "client-1", "policy": "soft"}
    assert str(event["timestamp"]).endswith("Z")


def test_level_filter_drops_debug_events(tmp_path: Path) -> None:
    handle = setup_logging(_file_only(tmp_path, level="WARNING"))
    logger = structlog.get_logger("varbill_store.commands")

    logger.debug("command_completed", command="get_clients")
    logger.info("store_handle_initialized", path="x.db")
    logger.warning("command_failed", command="add_client", error_kind="duplicate_key")
    shutdown_logging(handle)

    events = _read_json_lines(handle.log_path)
    assert [event["message"] for event in events] == ["command_failed"]


def test_exception_info_is_rendered(tmp_path: Path) -> None:
    handle = setup_logging(_file_only(tmp_path))
    logger = logging.getLogger("varbill_store.cli")

    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("cli_failed")
    shutdown_logging(handle)

    [event] = _read_json_lines(handle.log_path)
    assert event["level"] == "ERROR"
    assert "RuntimeError: boom" in str(event["exception"])


def test_non_json_extras_are_normalized(tmp_path: Path) -> None:
    handle = setup_logging(_file_only(tmp_path))

    structlog.get_logger("varbill_store").info(
        "store_opened", path=tmp_path / "billing.db", ratio=float("inf"), columns=("a", "b")
    )
    shutdown_logging(handle)

    [event] = _read_json_lines(handle.log_path)
    assert event["fields"] == {
        "path": str(tmp_path / "billing.db"),
        "ratio": "inf",
        "columns": ["a", "b"],
    }


def test_concurrent_writers_produce_one_valid_line_each(tmp_path: Path) -> None:
    handle = setup_logging(_file_only(tmp_path))
    logger = structlog.get_logger("varbill_store.tests")

    def worker(index: int) -> None:
        for step in range(25):
            logger.info("tick", worker=index, step=step)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    shutdown_logging(handle)

    events = _read_json_lines(handle.log_path)
    assert handle.dropped_records == 0
    assert len(events) == 100
    assert {(event["fields"]["worker"], event["fields"]["step"]) for event in events} == {
        (index, step) for index in range(4) for step in range(25)
    }


def test_setup_replaces_previous_handle(tmp_path: Path) -> None:
    first = setup_logging(_file_only(tmp_path / "one"))
    second = setup_logging(_file_only(tmp_path / "two"))

    assert first.is_shutdown
    assert get_active_logging_handle() is second

    shutdown_logging()
    assert second.is_shutdown
    assert get_active_logging_handle() is None
    shutdown_logging()


def test_stderr_only_setup_has_no_log_path() -> None:
    handle = setup_logging(LoggingConfig(log_to_stderr=True))

    assert handle.log_path is None


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"level": "CHATTY"}, "unsupported logging level"),
        ({"log_filename": "nested/out.jsonl"}, "path separators"),
        ({"logger_name": "  "}, "logger_name must not be empty"),
        ({"queue_size": 0}, "queue_size must be > 0"),
    ],
)
def test_invalid_logging_config_is_rejected(
    tmp_path: Path, overrides: dict[str, object], message: str
) -> None:
    with pytest.raises(ValueError, match=message):
        setup_logging(_file_only(tmp_path, **overrides))


def test_from_mapping_reads_logging_section(tmp_path: Path) -> None:
    config = LoggingConfig.from_mapping(
        {"level": "DEBUG", "log_dir": str(tmp_path), "log_to_stderr": False}
    )

    assert config.level == "DEBUG"
    assert config.log_dir == str(tmp_path)
    assert config.log_to_stderr is False
    assert LoggingConfig.from_mapping({}).log_dir is None


def test_exception_with_format_args_keeps_message_and_traceback(tmp_path: Path) -> None:
    handle = setup_logging(_file_only(tmp_path))
    logger = logging.getLogger("varbill_store.persistence.store")

    try:
        raise ValueError("bad row")
    except ValueError:
        logger.warning("decode failed for %s", "clients", exc_info=True)
    shutdown_logging(handle)

    [event] = _read_json_lines(handle.log_path)
    assert event["message"] == "decode failed for clients"
    assert "ValueError: bad row" in str(event["exception"])
    assert "fields" not in event


def test_package_logger_follows_stdlib_routing(tmp_path: Path) -> None:
    logger = get_logger("varbill_store.persistence.handle")
    handle = setup_logging(_file_only(tmp_path))

    logger.debug("store_opened", path="billing.db")
    logger.info("store_handle_initialized", path="billing.db")
    shutdown_logging(handle)

    [event] = _read_json_lines(handle.log_path)
    assert event["message"] == "store_handle_initialized"
    assert event["logger"] == "varbill_store.persistence.handle"
    assert event["fields"] == {"path": "billing.db"}


def test_package_logger_is_silent_without_setup(capsys: pytest.CaptureFixture[str]) -> None:
    structlog.reset_defaults()
    logger = get_logger("varbill_store.commands")

    logger.debug("command_completed", command="get_clients")
    logger.info("store_handle_initialized", path="billing.db")

    assert capsys.readouterr().out == ""
