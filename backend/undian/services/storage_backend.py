# Overview: Key-value storage backends behind the record store and the session domains.

"""
Storage backends

Every backend stores opaque strings under string keys, the way a browser's
local storage does. Two implementations:

- MemoryStorage: dict-backed, lives as long as the process. Used for the
  ephemeral kasir session domain and for isolated tests.
- SqlStorage: one row per key in the storage_entries table. Durable across
  restarts; every write commits.
"""

from __future__ import annotations

import threading
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import StorageEntry


class StorageError(Exception):
    """Raised when the underlying storage cannot be read or written."""


class StorageBackend(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStorage:
    """Process-local storage; contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._items)


class SqlStorage:
    """
    Durable storage on the storage_entries table.

    Must be used inside a Flask app context (it goes through db.session).
    """

    def get_item(self, key: str) -> str | None:
        try:
            entry = db.session.get(StorageEntry, key)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"Failed to read storage key {key!r}") from exc
        return entry.value if entry is not None else None

    def set_item(self, key: str, value: str) -> None:
        try:
            entry = db.session.get(StorageEntry, key)
            if entry is None:
                db.session.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"Failed to write storage key {key!r}") from exc

    def remove_item(self, key: str) -> None:
        try:
            db.session.query(StorageEntry).filter_by(key=key).delete()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"Failed to remove storage key {key!r}") from exc

    def keys(self) -> list[str]:
        try:
            rows = db.session.query(StorageEntry.key).order_by(StorageEntry.key).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError("Failed to list storage keys") from exc
        return [row.key for row in rows]
