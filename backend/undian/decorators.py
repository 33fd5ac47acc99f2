# Overview: Request decorators for API routes; session gating per role.

import re
import secrets
from functools import wraps
from flask import after_this_request, jsonify, g, request, session

from .entities import ROLE_KASIR
from .extensions import get_core
from .services.auth_service import GATE_FORBIDDEN
from .services.identity_service import generate_id


KASIR_TERMINAL_COOKIE = "undian_kasir_terminal"
KASIR_TERMINAL_PATTERN = re.compile(r"^[A-Za-z0-9_-]{32,64}$")


def admin_terminal() -> str:
    """
    Stable id for the calling browser, kept in Flask's signed (permanent)
    session cookie. Keys the durable admin domain.
    """
    terminal = session.get("terminal_id")
    if not terminal:
        terminal = generate_id()
        session["terminal_id"] = terminal
        session.permanent = True
    return terminal


def kasir_terminal() -> str:
    """
    Id for the kasir domain, kept in a browser-session cookie (no expiry).

    Closing the browser drops the cookie, so a kasir login at a shared till
    does not survive a browser restart.
    """
    terminal = g.get("kasir_terminal") or request.cookies.get(KASIR_TERMINAL_COOKIE)
    if not terminal or not KASIR_TERMINAL_PATTERN.match(terminal):
        terminal = secrets.token_urlsafe(32)

        @after_this_request
        def set_kasir_terminal(response):
            response.set_cookie(KASIR_TERMINAL_COOKIE, terminal, httponly=True, samesite="Lax")
            return response

    g.kasir_terminal = terminal
    return terminal


def terminal_for_role(role: str | None) -> str:
    return kasir_terminal() if role == ROLE_KASIR else admin_terminal()


def require_session(*roles):
    """
    Require an authenticated session in one of the given roles.

    Each role is checked against its own session domain (kasir ->
    ephemeral, admin -> durable). Sets g.auth_session to the first match.

    Returns 401 when no domain holds a session, 403 when the caller is
    logged in but not in a role this route accepts.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            auth = get_core().auth
            forbidden = False

            for role in roles or (None,):
                gate = auth.require_auth(role, terminal=terminal_for_role(role))
                if gate:
                    g.auth_session = gate.session
                    return f(*args, **kwargs)
                if gate.outcome == GATE_FORBIDDEN:
                    forbidden = True

            # Logged in, just not in a domain this route accepts
            if (
                forbidden
                or auth.is_logged_in(terminal=admin_terminal())
                or auth.is_kasir_logged_in(terminal=kasir_terminal())
            ):
                return jsonify({"error": "Access denied"}), 403
            return jsonify({"error": "Authentication required"}), 401

        return decorated_function
    return decorator


def store_scope() -> str | None:
    """Store the current caller is confined to (None for admins)."""
    auth_session = getattr(g, "auth_session", None) or {}
    if auth_session.get("role") == ROLE_KASIR:
        return auth_session.get("toko_name")
    return None
