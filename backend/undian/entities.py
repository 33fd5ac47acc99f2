# Overview: Entity kinds, their field policies, and the shared vocabulary.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


ROLE_ADMIN = "admin"
ROLE_KASIR = "kasir"
ROLES = (ROLE_ADMIN, ROLE_KASIR)

TIER_BESAR = "BESAR"
TIER_SEDANG = "SEDANG"
TIERS = (TIER_BESAR, TIER_SEDANG)

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"  # claimed / printed
STATUS_REDEEMED = "redeemed"
VOUCHER_STATUSES = (STATUS_PENDING, STATUS_ACTIVE, STATUS_REDEEMED)

SYSTEM_FIELDS = frozenset({"id", "created_at", "updated_at"})


class UnknownEntityKind(LookupError):
    """Raised for an entity kind outside the four known collections."""


class EntityKind(str, Enum):
    USERS = "users"
    TRANSACTIONS = "transactions"
    CUSTOMERS = "customers"
    VOUCHERS = "vouchers"

    @classmethod
    def parse(cls, value) -> "EntityKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnknownEntityKind(f"Unknown entity kind: {value!r}") from None

    def storage_key(self, namespace: str) -> str:
        return f"{namespace}_{self.value}"


@dataclass(frozen=True)
class EntityPolicy:
    """
    Writable fields per entity kind.

    - fields: everything an insert may carry
    - insert_only: subset that an update may not touch
    """
    fields: frozenset
    insert_only: frozenset = field(default_factory=frozenset)

    def unknown_on_insert(self, data: dict) -> set:
        return set(data) - self.fields

    def unknown_on_update(self, patch: dict) -> set:
        return set(patch) - (self.fields - self.insert_only)


ENTITY_POLICIES = {
    EntityKind.USERS: EntityPolicy(
        fields=frozenset({"username", "password_digest", "role", "toko_name", "nama", "is_super"}),
        insert_only=frozenset({"is_super"}),
    ),
    EntityKind.TRANSACTIONS: EntityPolicy(
        fields=frozenset({
            "no_transaksi", "nominal", "customer_id", "toko_name",
            "is_claimed", "kode_kupon", "kasir_id",
        }),
    ),
    EntityKind.CUSTOMERS: EntityPolicy(
        fields=frozenset({"nama", "nik", "no_telepon", "alamat", "toko_name"}),
    ),
    EntityKind.VOUCHERS: EntityPolicy(
        fields=frozenset({
            "kode_voucher", "tipe_hadiah", "status", "toko_name",
            "customer_id", "transaction_id",
        }),
        insert_only=frozenset({"kode_voucher", "transaction_id"}),
    ),
}
