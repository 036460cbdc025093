"""Logging setup for varbill-store."""

from varbill_store.observability.logging import (
    LoggingConfig,
    LoggingHandle,
    configure_structlog,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "LoggingHandle",
    "configure_structlog",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
]
