# Overview: Flask API routes for admin operations; user account management.

"""
Admin routes: kasir and admin accounts.

The super admin created at first start can never be deleted.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_session
from ..entities import EntityKind, ROLE_ADMIN
from ..extensions import get_core
from ..validation import ConflictError, ValidationError


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def public_user(user: dict) -> dict:
    return {key: value for key, value in user.items() if key != "password_digest"}


@admin_bp.get("/users")
@require_session(ROLE_ADMIN)
def list_users():
    criteria = {
        "username": request.args.get("username"),
        "role": request.args.get("role"),
        "toko_name": request.args.get("toko_name"),
    }
    users = get_core().store.search(EntityKind.USERS, criteria)
    return jsonify({"users": [public_user(u) for u in users]}), 200


@admin_bp.post("/users")
@require_session(ROLE_ADMIN)
def create_user():
    data = request.get_json(silent=True) or {}
    try:
        user = get_core().auth.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role"),
            nama=data.get("nama"),
            toko_name=data.get("toko_name"),
        )
        return jsonify({"user": public_user(user)}), 201
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/users/<user_id>")
@require_session(ROLE_ADMIN)
def delete_user(user_id):
    try:
        deleted = get_core().auth.delete_user(user_id)
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    if not deleted:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"message": "User deleted"}), 200


@admin_bp.post("/users/<user_id>/password")
@require_session(ROLE_ADMIN)
def change_password(user_id):
    data = request.get_json(silent=True) or {}
    try:
        updated = get_core().auth.change_password(user_id, data.get("password"))
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    if not updated:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": public_user(updated)}), 200
