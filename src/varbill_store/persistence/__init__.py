"""SQLite persistence for billing records."""

from varbill_store.persistence.errors import (
    ConstraintViolationError,
    DuplicateKeyError,
    EngineError,
    ErrorKind,
    NotFoundError,
    NotInitializedError,
    StoreError,
    StoreIOError,
)
from varbill_store.persistence.handle import StoreHandle
from varbill_store.persistence.store import Store
from varbill_store.persistence.tables import HARD_DELETE, SOFT_DELETE, DeletionPolicy, TableSpec

__all__ = [
    "HARD_DELETE",
    "SOFT_DELETE",
    "ConstraintViolationError",
    "DeletionPolicy",
    "DuplicateKeyError",
    "EngineError",
    "ErrorKind",
    "NotFoundError",
    "NotInitializedError",
    "Store",
    "StoreError",
    "StoreHandle",
    "StoreIOError",
    "TableSpec",
]
