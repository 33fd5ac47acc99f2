import json

from conftest import customer_payload
from undian.entities import EntityKind
from undian.extensions import get_core


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


def test_system_init_is_idempotent(app):
    result = _invoke(app, "system", "init")
    assert result.exit_code == 0
    assert "Users already exist" in result.output
    assert len(get_core().store.get_all(EntityKind.USERS)) == 1


def test_users_create_and_list(app):
    result = _invoke(app, "users", "create", "--username", "kasir1", "--password", "pw",
                     "--role", "kasir", "--toko", "Toko A")
    assert result.exit_code == 0, result.output
    assert "Created kasir kasir1" in result.output

    listing = _invoke(app, "users", "list")
    assert "kasir1" in listing.output
    assert "@ Toko A" in listing.output
    assert "[super]" in listing.output


def test_users_create_kasir_without_store_fails(app):
    result = _invoke(app, "users", "create", "--username", "k", "--password", "pw", "--role", "kasir")
    assert result.exit_code != 0
    assert get_core().store.find_one_by(EntityKind.USERS, "username", "k") is None


def test_users_delete_super_admin_refused(app):
    admin = get_core().store.find_one_by(EntityKind.USERS, "username", "admin")
    result = _invoke(app, "users", "delete", admin["id"])
    assert result.exit_code != 0
    assert "cannot be deleted" in result.output


def _claimed_purchase():
    core = get_core()
    kasir = core.auth.create_user("kasir1", "pw", "kasir", toko_name="Toko A")
    issued = core.vouchers.record_transaction(kasir, "TRX-1", 200000, customer_payload())
    for voucher in issued.vouchers:
        core.vouchers.claim_voucher(voucher["id"])
    return issued


def test_vouchers_export_to_stdout(app):
    issued = _claimed_purchase()

    result = _invoke(app, "vouchers", "export", "--type", "sedang")

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith('"No","Tanggal & Jam"')
    assert len(lines) == 2
    sedang = next(v for v in issued.vouchers if v["tipe_hadiah"] == "SEDANG")
    assert sedang["kode_voucher"] in lines[1]


def test_vouchers_export_to_file(app, tmp_path):
    _claimed_purchase()
    out = tmp_path / "vouchers.csv"

    result = _invoke(app, "vouchers", "export", "--toko", "Toko A", "--out", str(out))

    assert result.exit_code == 0, result.output
    assert len(out.read_text(encoding="utf-8").splitlines()) == 3


def test_system_stats_and_reconcile(app):
    issued = _claimed_purchase()
    get_core().store.delete(EntityKind.VOUCHERS, issued.vouchers[0]["id"])

    stats = json.loads(_invoke(app, "system", "stats", "--toko", "Toko A").output)
    assert stats["total_transactions"] == 1
    assert stats["total_vouchers"] == 1

    result = _invoke(app, "system", "reconcile")
    assert "Issued 1 missing voucher(s)" in result.output
    assert get_core().store.count(EntityKind.VOUCHERS) == 2


def test_system_purge_sessions_keeps_live_sessions(app):
    admin_domain = get_core().sessions.admin
    admin_domain.backend.set_item(
        f"{admin_domain.key}:old-browser",
        json.dumps({"id": "u1", "username": "admin", "role": "admin", "logged_in_at": "2020-01-01T00:00:00.000Z"}),
    )
    get_core().auth.login("admin", "admin123", terminal="current-browser")

    result = _invoke(app, "system", "purge-sessions")

    assert result.exit_code == 0, result.output
    # Logging in already swept the stale key
    assert "Deleted 0 expired session(s)." in result.output
    assert get_core().auth.is_logged_in(terminal="current-browser") is True


def test_system_purge_sessions_removes_stale_keys(app):
    admin_domain = get_core().sessions.admin
    admin_domain.backend.set_item(
        f"{admin_domain.key}:old-browser",
        json.dumps({"id": "u1", "username": "admin", "role": "admin", "logged_in_at": "2020-01-01T00:00:00.000Z"}),
    )

    result = _invoke(app, "system", "purge-sessions")

    assert "Deleted 1 expired session(s)." in result.output
    assert admin_domain.backend.get_item(f"{admin_domain.key}:old-browser") is None
