# Overview: Service-layer operations for vouchers; tier allocation, codes, issuing and claiming.

"""
Voucher Service

ALLOCATION RULE (integer arithmetic only):
- every full 200,000 of spending grants one BESAR and one SEDANG voucher
- a remainder of at least 100,000 grants one extra SEDANG voucher

    besar  = nominal // 200000
    sedang = besar + (nominal % 200000) // 100000

ISSUING writes the customer, then the transaction, then its vouchers. These
are separate persists; reconcile_missing_vouchers() repairs transactions whose
vouchers were never written.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import NamedTuple

from ..entities import (
    EntityKind,
    STATUS_ACTIVE,
    STATUS_PENDING,
    STATUS_REDEEMED,
    TIER_BESAR,
    TIER_SEDANG,
    TIERS,
)
from ..validation import (
    ConflictError,
    ValidationError,
    parse_nominal,
    validate_nik,
    validate_phone,
)
from .record_store import RecordStore


logger = logging.getLogger(__name__)

BESAR_THRESHOLD = 200_000
SEDANG_THRESHOLD = 100_000
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
MAX_CODE_ATTEMPTS = 10

_rng = random.SystemRandom()


class VoucherAllocation(NamedTuple):
    besar: int
    sedang: int

    @property
    def total(self) -> int:
        return self.besar + self.sedang

    def for_tier(self, tier: str) -> int:
        return self.besar if tier == TIER_BESAR else self.sedang


def allocate(nominal: int) -> VoucherAllocation:
    if isinstance(nominal, bool) or not isinstance(nominal, int):
        raise ValidationError("nominal must be an integer")
    if nominal < 0:
        raise ValidationError("nominal must not be negative")
    besar = nominal // BESAR_THRESHOLD
    sedang = besar + (nominal % BESAR_THRESHOLD) // SEDANG_THRESHOLD
    return VoucherAllocation(besar=besar, sedang=sedang)


def random_string(length: int, rng: random.Random | None = None) -> str:
    rng = rng or _rng
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(length))


def coupon_code(store_name: str, rng: random.Random | None = None) -> str:
    """{STORE}-KUPON-XXX-XXX"""
    suffix = f"{random_string(3, rng)}-{random_string(3, rng)}"
    return f"{store_name}-KUPON-{suffix}".upper()


def voucher_code(store_name: str, tier: str, rng: random.Random | None = None) -> str:
    """{STORE}-HADIAH-{TIER}-XXX-XXX-X"""
    suffix = f"{random_string(3, rng)}-{random_string(3, rng)}-{random_string(1, rng)}"
    return f"{store_name}-HADIAH-{tier}-{suffix}".upper()


@dataclass
class IssuedTransaction:
    transaction: dict
    customer: dict
    vouchers: list[dict] = field(default_factory=list)
    allocation: VoucherAllocation = VoucherAllocation(0, 0)

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction,
            "customer": self.customer,
            "vouchers": self.vouchers,
            "allocation": self.allocation._asdict(),
        }


class VoucherService:
    def __init__(self, store: RecordStore, rng: random.Random | None = None):
        self.store = store
        self.rng = rng

    # ------------------------------------------------------------------
    # Codes
    # ------------------------------------------------------------------

    def _unique_code(self, make, field_name: str, kind: EntityKind) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = make()
            if not self.store.find_one_by(kind, field_name, code):
                return code
        raise ConflictError(f"Could not generate a unique {field_name}")

    def _new_voucher_code(self, toko_name: str, tier: str) -> str:
        return self._unique_code(
            lambda: voucher_code(toko_name, tier, self.rng), "kode_voucher", EntityKind.VOUCHERS
        )

    def _new_coupon_code(self, toko_name: str) -> str:
        return self._unique_code(
            lambda: coupon_code(toko_name, self.rng), "kode_kupon", EntityKind.TRANSACTIONS
        )

    # ------------------------------------------------------------------
    # Issuing
    # ------------------------------------------------------------------

    def _resolve_customer(self, customer: dict, toko_name: str) -> dict:
        nama = (customer.get("nama") or "").strip()
        nik = (customer.get("nik") or "").strip()
        no_telepon = (customer.get("no_telepon") or "").strip()
        alamat = (customer.get("alamat") or "").strip()

        if not nama:
            raise ValidationError("Customer name is required")
        if not validate_nik(nik):
            raise ValidationError("NIK must be exactly 16 digits")
        if not validate_phone(no_telepon):
            raise ValidationError("Invalid phone number")

        existing = self.store.find_one_by(EntityKind.CUSTOMERS, "nik", nik)
        if existing:
            patch = {k: v for k, v in (("nama", nama), ("no_telepon", no_telepon), ("alamat", alamat)) if v}
            updated = self.store.update(EntityKind.CUSTOMERS, existing["id"], patch)
            return updated or existing

        return self.store.insert(EntityKind.CUSTOMERS, {
            "nama": nama,
            "nik": nik,
            "no_telepon": no_telepon,
            "alamat": alamat,
            "toko_name": toko_name,
        })

    def _issue_vouchers(self, transaction: dict, tier: str, count: int) -> list[dict]:
        issued = []
        for _ in range(count):
            issued.append(self.store.insert(EntityKind.VOUCHERS, {
                "kode_voucher": self._new_voucher_code(transaction["toko_name"], tier),
                "tipe_hadiah": tier,
                "status": STATUS_PENDING,
                "toko_name": transaction["toko_name"],
                "customer_id": transaction["customer_id"],
                "transaction_id": transaction["id"],
            }))
        return issued

    def record_transaction(self, session: dict, no_transaksi: str, nominal, customer: dict) -> IssuedTransaction:
        """
        Record a purchase made at the session's store and issue its vouchers.

        Raises ValidationError before anything is written when the amount,
        receipt number or customer data is invalid.
        """
        toko_name = (session or {}).get("toko_name")
        if not toko_name:
            raise ValidationError("A store-scoped session is required")

        no_transaksi = (no_transaksi or "").strip()
        if not no_transaksi:
            raise ValidationError("Transaction number is required")
        amount = parse_nominal(nominal)
        allocation = allocate(amount)

        if any(t.get("toko_name") == toko_name for t in self.store.find_by(EntityKind.TRANSACTIONS, "no_transaksi", no_transaksi)):
            raise ConflictError("Transaction number already recorded for this store")

        customer_record = self._resolve_customer(customer or {}, toko_name)
        transaction = self.store.insert(EntityKind.TRANSACTIONS, {
            "no_transaksi": no_transaksi,
            "nominal": amount,
            "customer_id": customer_record["id"],
            "toko_name": toko_name,
            "is_claimed": False,
            "kode_kupon": self._new_coupon_code(toko_name),
            "kasir_id": session.get("id"),
        })

        vouchers = []
        for tier in TIERS:
            vouchers.extend(self._issue_vouchers(transaction, tier, allocation.for_tier(tier)))

        logger.info(
            "Recorded transaction %s at %s: %d BESAR, %d SEDANG",
            no_transaksi, toko_name, allocation.besar, allocation.sedang,
        )
        return IssuedTransaction(
            transaction=transaction,
            customer=customer_record,
            vouchers=vouchers,
            allocation=allocation,
        )

    def reconcile_missing_vouchers(self) -> list[dict]:
        """Issue any vouchers a transaction is owed but does not have."""
        vouchers = self.store.get_all(EntityKind.VOUCHERS)
        repaired = []
        for transaction in self.store.get_all(EntityKind.TRANSACTIONS):
            nominal = transaction.get("nominal")
            if isinstance(nominal, bool) or not isinstance(nominal, int) or nominal < 0:
                continue
            allocation = allocate(nominal)
            owned = [v for v in vouchers if v.get("transaction_id") == transaction["id"]]
            for tier in TIERS:
                missing = allocation.for_tier(tier) - sum(1 for v in owned if v.get("tipe_hadiah") == tier)
                if missing > 0:
                    repaired.extend(self._issue_vouchers(transaction, tier, missing))

        if repaired:
            logger.warning("Reconciled %d missing vouchers", len(repaired))
        return repaired

    # ------------------------------------------------------------------
    # Lookup and claims
    # ------------------------------------------------------------------

    def find_voucher_by_code(self, code: str) -> dict | None:
        code = (code or "").strip().upper()
        if not code:
            return None
        return self.store.find_one_by(EntityKind.VOUCHERS, "kode_voucher", code)

    def claim_voucher(self, voucher_id: str, toko_name: str | None = None) -> dict | bool:
        """
        Mark a voucher as claimed (status active); updated_at records the
        claim time. A store-scoped caller may only claim its own vouchers.
        """
        voucher = self.store.get_by_id(EntityKind.VOUCHERS, voucher_id)
        if not voucher:
            return False
        if toko_name and voucher.get("toko_name") != toko_name:
            raise ConflictError("Voucher belongs to another store")
        if voucher.get("status") == STATUS_REDEEMED:
            raise ConflictError("Voucher has already been redeemed")
        if voucher.get("status") == STATUS_ACTIVE:
            return voucher
        return self.store.update(EntityKind.VOUCHERS, voucher_id, {"status": STATUS_ACTIVE})

    def redeem_voucher(self, voucher_id: str) -> dict | bool:
        voucher = self.store.get_by_id(EntityKind.VOUCHERS, voucher_id)
        if not voucher:
            return False
        if voucher.get("status") != STATUS_ACTIVE:
            raise ConflictError("Only claimed vouchers can be redeemed")
        return self.store.update(EntityKind.VOUCHERS, voucher_id, {"status": STATUS_REDEEMED})

    def claim_coupon(self, transaction_id: str, toko_name: str | None = None) -> dict | bool:
        transaction = self.store.get_by_id(EntityKind.TRANSACTIONS, transaction_id)
        if not transaction:
            return False
        if toko_name and transaction.get("toko_name") != toko_name:
            raise ConflictError("Transaction belongs to another store")
        return self.store.update(EntityKind.TRANSACTIONS, transaction_id, {"is_claimed": True})
