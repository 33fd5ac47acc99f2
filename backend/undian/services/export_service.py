# Overview: Service-layer voucher export; joins vouchers with transactions and customers for reporting.

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime

from ..entities import EntityKind, STATUS_ACTIVE
from ..time_utils import parse_iso_datetime
from .record_store import RecordStore


ALL_STORES = "all"
ALL_STORES_LABEL = "Semua_Toko"
PLACEHOLDER = "-"

COL_NO = "No"
COL_CLAIMED_AT = "Tanggal & Jam"
COL_NO_TRANSAKSI = "No. Transaksi"
COL_NAMA = "Nama Lengkap"
COL_NIK = "NIK"
COL_TELEPON = "No. Telepon / WA"
COL_ALAMAT = "Alamat Lengkap"
COL_NOMINAL = "Nominal Belanja"
COL_KODE = "Kode Voucher"
COL_TOKO = "Toko Asal"

COLUMNS = (
    COL_NO, COL_CLAIMED_AT, COL_NO_TRANSAKSI, COL_NAMA, COL_NIK,
    COL_TELEPON, COL_ALAMAT, COL_NOMINAL, COL_KODE, COL_TOKO,
)


@dataclass(frozen=True)
class ColumnHints:
    """Which columns the presentation layer should format specially."""
    date: tuple = (COL_CLAIMED_AT,)
    currency: tuple = (COL_NOMINAL,)
    text: tuple = (COL_NIK, COL_TELEPON, COL_KODE, COL_NO_TRANSAKSI)
    wrap: tuple = (COL_ALAMAT,)

    def to_dict(self) -> dict:
        return {
            "date_columns": list(self.date),
            "currency_columns": list(self.currency),
            "text_columns": list(self.text),
            "wrap_columns": list(self.wrap),
        }


@dataclass
class VoucherExport:
    rows: list[dict]
    scope_label: str
    column_hints: ColumnHints = field(default_factory=ColumnHints)

    def to_dict(self) -> dict:
        return {
            "columns": list(COLUMNS),
            "rows": [
                {
                    key: (value.isoformat() if isinstance(value, datetime) else value)
                    for key, value in row.items()
                }
                for row in self.rows
            ],
            "scope_label": self.scope_label,
            "column_hints": self.column_hints.to_dict(),
        }


def _claim_time(voucher: dict) -> datetime:
    return parse_iso_datetime(voucher.get("updated_at") or voucher.get("created_at")) or datetime.min


def _resolve_store_filter(toko_name: str | None, session: dict | None) -> str | None:
    if toko_name == ALL_STORES:
        return None
    if toko_name:
        return toko_name
    return (session or {}).get("toko_name") or None


def build_voucher_export(
    store: RecordStore,
    *,
    type: str | None = None,
    toko_name: str | None = None,
    session: dict | None = None,
) -> VoucherExport:
    """
    Build the claimed-voucher export.

    toko_name selects one store; ALL_STORES disables the store filter; when
    omitted the caller's session store applies (admins have none). Only
    vouchers with status active are exported, newest claim first.
    """
    scope = _resolve_store_filter(toko_name, session)

    vouchers = store.get_all(EntityKind.VOUCHERS)
    if type:
        tier = type.upper()
        vouchers = [v for v in vouchers if v.get("tipe_hadiah") == tier]
    if scope:
        vouchers = [v for v in vouchers if v.get("toko_name") == scope]
    vouchers = [v for v in vouchers if v.get("status") == STATUS_ACTIVE]
    vouchers.sort(key=_claim_time, reverse=True)

    transactions = {t.get("id"): t for t in store.get_all(EntityKind.TRANSACTIONS)}
    customers = {c.get("id"): c for c in store.get_all(EntityKind.CUSTOMERS)}

    rows = []
    for index, voucher in enumerate(vouchers, start=1):
        transaction = transactions.get(voucher.get("transaction_id")) or {}
        customer = customers.get(voucher.get("customer_id")) or {}
        rows.append({
            COL_NO: index,
            COL_CLAIMED_AT: parse_iso_datetime(voucher.get("updated_at") or voucher.get("created_at")),
            COL_NO_TRANSAKSI: transaction.get("no_transaksi") or PLACEHOLDER,
            COL_NAMA: customer.get("nama") or PLACEHOLDER,
            COL_NIK: customer.get("nik") or PLACEHOLDER,
            COL_TELEPON: customer.get("no_telepon") or PLACEHOLDER,
            COL_ALAMAT: customer.get("alamat") or PLACEHOLDER,
            COL_NOMINAL: transaction.get("nominal") or 0,
            COL_KODE: voucher.get("kode_voucher"),
            COL_TOKO: voucher.get("toko_name") or PLACEHOLDER,
        })

    return VoucherExport(rows=rows, scope_label=scope or ALL_STORES_LABEL)


def export_filename(export: VoucherExport, type: str | None = None) -> str:
    tier = type.upper() if type else "SEMUA"
    label = export.scope_label.replace(" ", "_")
    return f"Voucher_{tier}_{label}"


def render_csv(export: VoucherExport) -> str:
    """Plain CSV rendering; dates as DD/MM/YYYY HH:MM, text columns kept as text."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(COLUMNS), quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writeheader()
    for row in export.rows:
        out = {}
        for column in COLUMNS:
            value = row.get(column)
            if column in export.column_hints.date:
                value = value.strftime("%d/%m/%Y %H:%M") if isinstance(value, datetime) else ""
            elif column in export.column_hints.currency:
                value = value if isinstance(value, int) else 0
            elif column in export.column_hints.text:
                value = str(value) if value else PLACEHOLDER
            out[column] = value
        writer.writerow(out)
    return buffer.getvalue()
