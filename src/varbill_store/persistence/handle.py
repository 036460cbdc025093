"""Replaceable holder for the active store."""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from varbill_store.constants import DEFAULT_BUSY_TIMEOUT_MS, DEFAULT_JOURNAL_MODE
from varbill_store.observability.logging import get_logger
from varbill_store.persistence.errors import NotInitializedError
from varbill_store.persistence.store import Store

T = TypeVar("T")


class StoreHandle:
    """Holds at most one open ``Store`` and swaps it when the path changes.

    The handle is created once by the host application and passed to whatever
    needs the database. Until ``initialize`` succeeds, ``require`` and ``run``
    raise ``NotInitializedError``. A store is never closed or replaced while an
    operation started through ``run`` is still using it.
    """

    def __init__(
        self,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        enforce_foreign_keys: bool = True,
        journal_mode: str = DEFAULT_JOURNAL_MODE,
        logger: Any | None = None,
    ) -> None:
        self._busy_timeout_ms = busy_timeout_ms
        self._enforce_foreign_keys = enforce_foreign_keys
        self._journal_mode = journal_mode
        self._logger = logger if logger is not None else get_logger(__name__)
        self._lock = threading.RLock()
        self._store: Store | None = None

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._store is not None

    def initialize(self, path: str | Path, *, read_only: bool = False) -> Store:
        """Open ``path`` and make it the active store, closing the previous one.

        When opening fails the previous store stays active. The swap waits for
        operations running through ``run`` on the previous store to finish.
        """

        store = Store.open(
            path,
            busy_timeout_ms=self._busy_timeout_ms,
            enforce_foreign_keys=self._enforce_foreign_keys,
            journal_mode=self._journal_mode,
            read_only=read_only,
            logger=self._logger,
        )
        with self._lock:
            previous, self._store = self._store, store
        if previous is not None:
            previous.close()
        self._logger.info("store_handle_initialized", path=str(store.path))
        return store

    def run(self, operation: Callable[[Store], T]) -> T:
        """Call ``operation`` with the active store, holding it for the whole call."""

        with self._lock:
            if self._store is None:
                raise NotInitializedError()
            return operation(self._store)

    def require(self) -> Store:
        with self._lock:
            if self._store is None:
                raise NotInitializedError()
            return self._store

    def close(self) -> None:
        with self._lock:
            store, self._store = self._store, None
        if store is not None:
            store.close()


__all__ = ["StoreHandle"]
