# Overview: Flask API routes for vouchers; lookup, claim and redemption.

from flask import Blueprint, request, jsonify

from ..decorators import require_session, store_scope
from ..entities import EntityKind, ROLE_ADMIN, ROLE_KASIR
from ..extensions import get_core
from ..validation import ConflictError


vouchers_bp = Blueprint("vouchers", __name__, url_prefix="/api/vouchers")


def _visible(voucher: dict | None) -> bool:
    scope = store_scope()
    return bool(voucher) and (not scope or voucher.get("toko_name") == scope)


@vouchers_bp.get("")
@require_session(ROLE_ADMIN, ROLE_KASIR)
def list_vouchers():
    criteria = {
        "kode_voucher": request.args.get("kode_voucher"),
        "tipe_hadiah": (request.args.get("tipe_hadiah") or "").upper() or None,
        "status": request.args.get("status"),
        "toko_name": request.args.get("toko_name"),
        "transaction_id": request.args.get("transaction_id"),
    }
    vouchers = [v for v in get_core().store.search(EntityKind.VOUCHERS, criteria) if _visible(v)]
    return jsonify({"vouchers": vouchers}), 200


@vouchers_bp.get("/code/<code>")
@require_session(ROLE_ADMIN, ROLE_KASIR)
def voucher_by_code(code):
    voucher = get_core().vouchers.find_voucher_by_code(code)
    if not _visible(voucher):
        return jsonify({"error": "Voucher not found"}), 404
    return jsonify({"voucher": voucher}), 200


@vouchers_bp.post("/<voucher_id>/claim")
@require_session(ROLE_KASIR, ROLE_ADMIN)
def claim_voucher(voucher_id):
    try:
        updated = get_core().vouchers.claim_voucher(voucher_id, store_scope())
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    if not updated:
        return jsonify({"error": "Voucher not found"}), 404
    return jsonify({"voucher": updated}), 200


@vouchers_bp.post("/<voucher_id>/redeem")
@require_session(ROLE_KASIR, ROLE_ADMIN)
def redeem_voucher(voucher_id):
    services = get_core()
    if not _visible(services.store.get_by_id(EntityKind.VOUCHERS, voucher_id)):
        return jsonify({"error": "Voucher not found"}), 404
    try:
        updated = services.vouchers.redeem_voucher(voucher_id)
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    if not updated:
        return jsonify({"error": "Voucher not found"}), 404
    return jsonify({"voucher": updated}), 200
