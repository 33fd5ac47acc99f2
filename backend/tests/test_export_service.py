from datetime import datetime

from conftest import insert_voucher
from undian.entities import EntityKind
from undian.services import export_service
from undian.services.export_service import ALL_STORES, COLUMNS, build_voucher_export, render_csv


def _seed_join(store):
    customer = store.insert(EntityKind.CUSTOMERS, {
        "nama": "Budi", "nik": "3201234567890001", "no_telepon": "081234567890", "alamat": "Jl. Mawar 1",
    })
    transaction = store.insert(EntityKind.TRANSACTIONS, {
        "no_transaksi": "TRX-77", "nominal": 450000, "customer_id": customer["id"],
        "toko_name": "A", "is_claimed": False,
    })
    return customer, transaction


class TestFilters:
    def test_store_filter_returns_only_that_store(self, store):
        insert_voucher(store, kode_voucher="A-1", tipe_hadiah="BESAR", toko_name="A")
        insert_voucher(store, kode_voucher="B-1", tipe_hadiah="SEDANG", toko_name="B")

        export = build_voucher_export(store, toko_name="A")

        assert len(export.rows) == 1
        assert export.rows[0]["Kode Voucher"] == "A-1"
        assert export.scope_label == "A"

    def test_only_active_vouchers(self, store):
        insert_voucher(store, kode_voucher="V-ACTIVE", status="active")
        insert_voucher(store, kode_voucher="V-PENDING", status="pending")
        insert_voucher(store, kode_voucher="V-REDEEMED", status="redeemed")
        assert [r["Kode Voucher"] for r in build_voucher_export(store, toko_name=ALL_STORES).rows] == ["V-ACTIVE"]

    def test_type_filter_is_case_insensitive(self, store):
        insert_voucher(store, kode_voucher="V-B", tipe_hadiah="BESAR")
        insert_voucher(store, kode_voucher="V-S", tipe_hadiah="SEDANG")
        export = build_voucher_export(store, type="sedang", toko_name=ALL_STORES)
        assert [r["Kode Voucher"] for r in export.rows] == ["V-S"]

    def test_all_stores_sentinel(self, store):
        insert_voucher(store, kode_voucher="A-1", toko_name="A")
        insert_voucher(store, kode_voucher="B-1", toko_name="B")
        export = build_voucher_export(store, toko_name=ALL_STORES, session={"role": "kasir", "toko_name": "A"})
        assert len(export.rows) == 2
        assert export.scope_label == "Semua_Toko"

    def test_omitted_store_defaults_to_session_store(self, store):
        insert_voucher(store, kode_voucher="A-1", toko_name="A")
        insert_voucher(store, kode_voucher="B-1", toko_name="B")
        export = build_voucher_export(store, session={"role": "kasir", "toko_name": "B"})
        assert [r["Kode Voucher"] for r in export.rows] == ["B-1"]
        assert export.scope_label == "B"

    def test_admin_session_without_store_sees_all(self, store):
        insert_voucher(store, kode_voucher="A-1", toko_name="A")
        insert_voucher(store, kode_voucher="B-1", toko_name="B")
        export = build_voucher_export(store, session={"role": "admin", "toko_name": None})
        assert len(export.rows) == 2


class TestProjection:
    def test_rows_sorted_by_claim_time_descending(self, store, clock):
        first = insert_voucher(store, kode_voucher="OLD")
        clock.advance(minutes=10)
        insert_voucher(store, kode_voucher="NEW")
        clock.advance(minutes=10)
        # Claiming later moves a voucher to the top
        store.update(EntityKind.VOUCHERS, first["id"], {"status": "active"})

        rows = build_voucher_export(store, toko_name=ALL_STORES).rows

        assert [r["Kode Voucher"] for r in rows] == ["OLD", "NEW"]
        assert [r["No"] for r in rows] == [1, 2]
        assert rows[0]["Tanggal & Jam"] == datetime(2026, 10, 19, 8, 20)

    def test_join_with_transaction_and_customer(self, store):
        customer, transaction = _seed_join(store)
        insert_voucher(store, kode_voucher="A-HADIAH-BESAR-123-456-7", customer_id=customer["id"],
                       transaction_id=transaction["id"])

        row = build_voucher_export(store, toko_name="A").rows[0]

        assert list(row) == list(COLUMNS)
        assert row == {
            "No": 1,
            "Tanggal & Jam": datetime(2026, 10, 19, 8, 0),
            "No. Transaksi": "TRX-77",
            "Nama Lengkap": "Budi",
            "NIK": "3201234567890001",
            "No. Telepon / WA": "081234567890",
            "Alamat Lengkap": "Jl. Mawar 1",
            "Nominal Belanja": 450000,
            "Kode Voucher": "A-HADIAH-BESAR-123-456-7",
            "Toko Asal": "A",
        }

    def test_missing_references_render_placeholders(self, store):
        insert_voucher(store, kode_voucher="ORPHAN", customer_id="gone", transaction_id="gone", toko_name=None)

        row = build_voucher_export(store, toko_name=ALL_STORES).rows[0]

        assert row["No. Transaksi"] == "-"
        assert row["Nama Lengkap"] == "-"
        assert row["NIK"] == "-"
        assert row["Alamat Lengkap"] == "-"
        assert row["Nominal Belanja"] == 0
        assert row["Toko Asal"] == "-"

    def test_column_hints(self, store):
        hints = build_voucher_export(store).column_hints.to_dict()
        assert hints == {
            "date_columns": ["Tanggal & Jam"],
            "currency_columns": ["Nominal Belanja"],
            "text_columns": ["NIK", "No. Telepon / WA", "Kode Voucher", "No. Transaksi"],
            "wrap_columns": ["Alamat Lengkap"],
        }

    def test_to_dict_serializes_dates(self, store):
        insert_voucher(store)
        payload = build_voucher_export(store, toko_name=ALL_STORES).to_dict()
        assert payload["rows"][0]["Tanggal & Jam"] == "2026-10-19T08:00:00"
        assert payload["columns"] == list(COLUMNS)


class TestCsv:
    def test_render_csv(self, store):
        customer, transaction = _seed_join(store)
        insert_voucher(store, kode_voucher="A-1", customer_id=customer["id"], transaction_id=transaction["id"])

        lines = render_csv(build_voucher_export(store, toko_name="A")).splitlines()

        assert lines[0] == ",".join(f'"{c}"' for c in COLUMNS)
        assert lines[1] == (
            '"1","19/10/2026 08:00","TRX-77","Budi","3201234567890001","081234567890",'
            '"Jl. Mawar 1","450000","A-1","A"'
        )

    def test_empty_export_is_header_only(self, store):
        assert len(render_csv(build_voucher_export(store)).splitlines()) == 1

    def test_filename(self, store):
        export = build_voucher_export(store, toko_name="Toko A")
        assert export_service.export_filename(export, "besar") == "Voucher_BESAR_Toko_A"
        assert export_service.export_filename(build_voucher_export(store), None) == "Voucher_SEMUA_Semua_Toko"
