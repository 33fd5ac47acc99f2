# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/undian/routes/auth.py
"""
Authentication API routes

- /api/auth/login, /logout, /session: admin domain (durable)
- /api/auth/kasir/login, /logout, /session: kasir domain (ephemeral), with
  store-affinity validation on login
- /api/auth/stores: store names for the kasir store picker
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import admin_terminal, kasir_terminal
from ..entities import ROLE_ADMIN
from ..extensions import get_core


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _credentials():
    data = request.get_json(silent=True) or {}
    return (data.get("username") or "").strip(), data.get("password") or "", data


@auth_bp.post("/login")
def login_route():
    """Admin login. Only admin-role accounts may open the admin domain."""
    try:
        username, password, _ = _credentials()
        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        result = get_core().auth.login(username, password, ROLE_ADMIN, terminal=admin_terminal())
        return jsonify(result.to_dict()), 200 if result.success else 401

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    get_core().auth.logout(terminal=admin_terminal())
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/session")
def session_route():
    session = get_core().auth.get_session(terminal=admin_terminal())
    if not session:
        return jsonify({"error": "Not logged in"}), 401
    return jsonify({"session": session}), 200


@auth_bp.post("/kasir/login")
def kasir_login_route():
    """
    Kasir login with store validation.

    Body: username, password, toko_name (the store chosen at the terminal).
    """
    try:
        username, password, data = _credentials()
        selected_store = data.get("toko_name") or ""
        if not all([username, password, selected_store]):
            return jsonify({"error": "username, password and toko_name required"}), 400

        result = get_core().auth.login_with_store_validation(
            username, password, selected_store, terminal=kasir_terminal()
        )
        return jsonify(result.to_dict()), 200 if result.success else 401

    except Exception:
        current_app.logger.exception("Failed to login kasir")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/kasir/logout")
def kasir_logout_route():
    get_core().auth.logout_kasir(terminal=kasir_terminal())
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/kasir/session")
def kasir_session_route():
    session = get_core().auth.get_kasir_session(terminal=kasir_terminal())
    if not session:
        return jsonify({"error": "Not logged in"}), 401
    return jsonify({"session": session}), 200


@auth_bp.get("/stores")
def stores_route():
    return jsonify({"stores": get_core().auth.get_active_stores()}), 200
