# Overview: Service-layer record store; generic CRUD and search over the four entity collections.

"""
Record Store

Each entity kind (users, transactions, customers, vouchers) is one JSON array
stored under its own key in a StorageBackend. Every mutating call reads the
whole collection, changes it, and writes the whole collection back, holding
the kind's lock for the duration. There is no cross-kind transaction.

READS FAIL SOFT: a missing, unreadable or corrupt collection reads as [].
With strict=True corruption raises StoreCorruptedError instead.

WRITES FAIL HARD: insert/update/delete never treat an unreadable or corrupt
collection as empty. They raise StorageError / StoreCorruptedError and leave
the stored value untouched.

NOT-FOUND IS DATA: get_by_id/find_one_by return None, update returns False,
delete returns False. Callers branch on these; nothing raises for absence.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from datetime import datetime
from typing import Any, Callable

from ..entities import (
    ENTITY_POLICIES,
    EntityKind,
    STATUS_ACTIVE,
    TIER_BESAR,
    TIER_SEDANG,
)
from ..validation import ConflictError, UnknownFieldError
from ..time_utils import to_iso_millis, utcnow
from .identity_service import generate_id
from .storage_backend import StorageBackend, StorageError


logger = logging.getLogger(__name__)


class StoreCorruptedError(Exception):
    """Raised in strict mode when a stored collection cannot be decoded."""


class ProtectedRecordError(ConflictError):
    """Raised when deleting a record that must never be removed."""


def _values_equal(left: Any, right: Any) -> bool:
    # True == 1 in Python; stored flags only match flags
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    return left == right


def _matches_criterion(record_value: Any, wanted: Any) -> bool:
    if isinstance(wanted, str) and isinstance(record_value, str):
        return wanted.lower() in record_value.lower()
    return _values_equal(record_value, wanted)


class RecordStore:
    """Persistent keyed store, partitioned by entity kind."""

    def __init__(
        self,
        backend: StorageBackend,
        *,
        namespace: str = "undian",
        strict: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.backend = backend
        self.namespace = namespace
        self.strict = strict
        self.clock = clock
        self._locks = {kind: threading.RLock() for kind in EntityKind}

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def _key(self, kind: EntityKind) -> str:
        return kind.storage_key(self.namespace)

    def _now(self) -> str:
        return to_iso_millis(self.clock())

    def _load(self, kind: EntityKind, *, soft: bool = True) -> list[dict]:
        """
        Read one collection. Reads (soft=True) degrade to [] unless the store
        is strict; mutations pass soft=False so that a failed or corrupt read
        raises instead of being written back over the stored collection.
        """
        soft = soft and not self.strict
        key = self._key(kind)
        try:
            raw = self.backend.get_item(key)
        except StorageError:
            if not soft:
                raise
            logger.warning("Storage unavailable for %s; reading as empty", key, exc_info=True)
            return []

        if not raw:
            return []

        try:
            records = json.loads(raw)
        except ValueError as exc:
            if not soft:
                raise StoreCorruptedError(f"Collection {key} is not valid JSON") from exc
            logger.warning("Collection %s is corrupt; reading as empty", key)
            return []

        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            if not soft:
                raise StoreCorruptedError(f"Collection {key} is not an array of records")
            logger.warning("Collection %s has an unexpected shape; reading as empty", key)
            return []
        return records

    def _save(self, kind: EntityKind, records: list[dict]) -> None:
        payload = json.dumps(records, ensure_ascii=False, separators=(",", ":"))
        self.backend.set_item(self._key(kind), payload)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self, kind) -> list[dict]:
        return self._load(EntityKind.parse(kind))

    def get_by_id(self, kind, record_id: str) -> dict | None:
        for record in self.get_all(kind):
            if record.get("id") == record_id:
                return record
        return None

    def find_by(self, kind, field: str, value: Any) -> list[dict]:
        return [r for r in self.get_all(kind) if _values_equal(r.get(field), value)]

    def find_one_by(self, kind, field: str, value: Any) -> dict | None:
        for record in self.get_all(kind):
            if _values_equal(record.get(field), value):
                return record
        return None

    def search(self, kind, criteria: dict[str, Any]) -> list[dict]:
        """
        AND over the non-empty criteria. Strings match case-insensitively by
        substring, everything else by equality.
        """
        active = [(field, value) for field, value in (criteria or {}).items() if value]
        return [
            record for record in self.get_all(kind)
            if all(_matches_criterion(record.get(field), value) for field, value in active)
        ]

    def count(self, kind) -> int:
        return len(self.get_all(kind))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, kind, data: dict) -> dict:
        kind = EntityKind.parse(kind)
        unknown = ENTITY_POLICIES[kind].unknown_on_insert(data)
        if unknown:
            raise UnknownFieldError(kind.value, unknown)

        with self._locks[kind]:
            records = self._load(kind, soft=False)
            if kind is EntityKind.USERS and data.get("is_super"):
                if any(r.get("is_super") is True for r in records):
                    raise ConflictError("A super admin already exists")

            record = {"id": generate_id(), **data, "created_at": self._now()}
            records.append(record)
            self._save(kind, records)

        logger.debug("Inserted %s %s", kind.value, record["id"])
        return record

    def update(self, kind, record_id: str, patch: dict) -> dict | bool:
        kind = EntityKind.parse(kind)
        unknown = ENTITY_POLICIES[kind].unknown_on_update(patch)
        if unknown:
            raise UnknownFieldError(kind.value, unknown)

        with self._locks[kind]:
            records = self._load(kind, soft=False)
            index = next((i for i, r in enumerate(records) if r.get("id") == record_id), None)
            if index is None:
                return False

            current = records[index]
            now = self._now()
            created_at = current.get("created_at")
            # updated_at never predates created_at, even if the clock steps back
            if isinstance(created_at, str) and created_at > now:
                now = created_at
            records[index] = {**current, **patch, "updated_at": now}
            self._save(kind, records)
            return records[index]

    def delete(self, kind, record_id: str) -> bool:
        kind = EntityKind.parse(kind)
        with self._locks[kind]:
            records = self._load(kind, soft=False)
            remaining = [r for r in records if r.get("id") != record_id]
            if len(remaining) == len(records):
                return False
            if kind is EntityKind.USERS:
                target = next(r for r in records if r.get("id") == record_id)
                if target.get("is_super") is True:
                    raise ProtectedRecordError("The super admin account cannot be deleted")
            self._save(kind, remaining)

        logger.debug("Deleted %s %s", kind.value, record_id)
        return True

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def is_super_admin(self, user_id: str) -> bool:
        user = self.get_by_id(EntityKind.USERS, user_id)
        return bool(user) and user.get("is_super") is True

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self, toko_name: str | None = None) -> dict:
        today = self.clock().strftime("%Y-%m-%d")
        transactions = self.get_all(EntityKind.TRANSACTIONS)
        vouchers = self.get_all(EntityKind.VOUCHERS)
        customers = self.get_all(EntityKind.CUSTOMERS)

        if toko_name:
            transactions = [t for t in transactions if t.get("toko_name") == toko_name]
            vouchers = [v for v in vouchers if v.get("toko_name") == toko_name]
            customers = [c for c in customers if c.get("toko_name") == toko_name]

        by_status = Counter(v.get("status") for v in vouchers if v.get("status"))

        return {
            "total_transactions": len(transactions),
            "today_transactions": sum(
                1 for t in transactions
                if isinstance(t.get("created_at"), str) and t["created_at"].startswith(today)
            ),
            "claimed_coupons": sum(1 for t in transactions if t.get("is_claimed")),
            "total_vouchers": len(vouchers),
            "active_vouchers": by_status.get(STATUS_ACTIVE, 0),
            "voucher_besar": sum(1 for v in vouchers if v.get("tipe_hadiah") == TIER_BESAR),
            "voucher_sedang": sum(1 for v in vouchers if v.get("tipe_hadiah") == TIER_SEDANG),
            "vouchers_by_status": dict(sorted(by_status.items())),
            "total_customers": len(customers),
            "total_nominal": sum(
                t.get("nominal") or 0 for t in transactions
                if isinstance(t.get("nominal"), int) and not isinstance(t.get("nominal"), bool)
            ),
        }
