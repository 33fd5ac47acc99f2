# Overview: Flask API routes for transactions; recording purchases and claiming coupons.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_session, store_scope
from ..entities import EntityKind, ROLE_ADMIN, ROLE_KASIR
from ..extensions import get_core
from ..validation import ConflictError, ValidationError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_session(ROLE_KASIR)
def create_transaction():
    """
    Record a purchase at the kasir's store and issue its vouchers.

    Body: no_transaksi, nominal, customer {nama, nik, no_telepon, alamat}
    """
    data = request.get_json(silent=True) or {}
    try:
        issued = get_core().vouchers.record_transaction(
            g.auth_session,
            data.get("no_transaksi"),
            data.get("nominal"),
            data.get("customer") or {},
        )
        return jsonify(issued.to_dict()), 201
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    except Exception:
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
@require_session(ROLE_ADMIN, ROLE_KASIR)
def list_transactions():
    store = get_core().store
    scope = store_scope()
    criteria = {
        "no_transaksi": request.args.get("no_transaksi"),
        "toko_name": request.args.get("toko_name"),
        "customer_id": request.args.get("customer_id"),
    }
    transactions = store.search(EntityKind.TRANSACTIONS, criteria)
    if scope:
        transactions = [t for t in transactions if t.get("toko_name") == scope]
    return jsonify({"transactions": transactions}), 200


@transactions_bp.get("/<transaction_id>")
@require_session(ROLE_ADMIN, ROLE_KASIR)
def get_transaction(transaction_id):
    store = get_core().store
    transaction = store.get_by_id(EntityKind.TRANSACTIONS, transaction_id)
    scope = store_scope()
    if not transaction or (scope and transaction.get("toko_name") != scope):
        return jsonify({"error": "Transaction not found"}), 404

    return jsonify({
        "transaction": transaction,
        "customer": store.get_by_id(EntityKind.CUSTOMERS, transaction.get("customer_id")),
        "vouchers": store.find_by(EntityKind.VOUCHERS, "transaction_id", transaction_id),
    }), 200


@transactions_bp.post("/<transaction_id>/claim-coupon")
@require_session(ROLE_KASIR)
def claim_coupon(transaction_id):
    try:
        updated = get_core().vouchers.claim_coupon(transaction_id, store_scope())
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    if not updated:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"transaction": updated}), 200
