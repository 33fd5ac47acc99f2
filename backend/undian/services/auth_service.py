# Overview: Service-layer operations for auth; credential checks, session gating, and user accounts.

"""
Authentication Service

Login flows share one credential pipeline and differ only in the session
domain they open and the validator hook they run after the password check:

- login(): admin domain, optional plain role check.
- login_with_store_validation(): kasir domain, role must be kasir AND the
  kasir's assigned store must equal the store selected at the terminal.
  A kasir account for store A cannot open store B's terminal even with the
  right password.

Checks short-circuit in order: username, password, validator. Failures come
back as AuthResult(success=False, error=...), never as exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..entities import EntityKind, ROLE_ADMIN, ROLE_KASIR, ROLES
from ..validation import ConflictError, ValidationError, validate_store_name
from .identity_service import make_password_digest, verify_password
from .record_store import RecordStore
from .session_service import DEFAULT_TERMINAL, SessionDomain, SessionService


logger = logging.getLogger(__name__)

ERR_USERNAME_NOT_FOUND = "Username not found"
ERR_WRONG_PASSWORD = "Wrong password"
ERR_ACCESS_DENIED = "Access denied"
ERR_ROLE_DENIED = "Access denied for this role"
ERR_STORE_MISMATCH = (
    "Access denied: your account is not registered to operate at this store. "
    "Please select the store you are assigned to."
)

GATE_OK = "ok"
GATE_UNAUTHENTICATED = "unauthenticated"
GATE_FORBIDDEN = "forbidden"

# Hook run after the password matched; returns an error message or None
UserValidator = Callable[[dict], Optional[str]]


@dataclass
class AuthResult:
    success: bool
    user: dict | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "user": self.user}
        return {"success": False, "error": self.error}


@dataclass
class GateResult:
    """Outcome of require_auth; truthy only when access is granted."""
    outcome: str
    session: dict | None = None

    def __bool__(self) -> bool:
        return self.outcome == GATE_OK


def role_validator(required_role: str | None) -> UserValidator:
    def check(user: dict) -> str | None:
        if required_role and user.get("role") != required_role:
            return ERR_ACCESS_DENIED
        return None
    return check


def store_affinity_validator(selected_store: str) -> UserValidator:
    def check(user: dict) -> str | None:
        if user.get("role") != ROLE_KASIR:
            return ERR_ROLE_DENIED
        # Exact string equality, no normalization
        if user.get("toko_name") != selected_store:
            return ERR_STORE_MISMATCH
        return None
    return check


class AuthService:
    def __init__(self, store: RecordStore, sessions: SessionService, *, password_scheme: str = "legacy"):
        self.store = store
        self.sessions = sessions
        self.password_scheme = password_scheme

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def _authenticate(
        self,
        username: str,
        password: str,
        domain: SessionDomain,
        validator: UserValidator,
        terminal: str,
    ) -> AuthResult:
        user = self.store.find_one_by(EntityKind.USERS, "username", username)
        if not user:
            return AuthResult(success=False, error=ERR_USERNAME_NOT_FOUND)

        if not verify_password(password or "", user.get("password_digest") or ""):
            logger.info("Failed %s login for %s: wrong password", domain.name, username)
            return AuthResult(success=False, error=ERR_WRONG_PASSWORD)

        error = validator(user)
        if error:
            logger.info("Rejected %s login for %s: %s", domain.name, username, error)
            return AuthResult(success=False, error=error)

        return AuthResult(success=True, user=domain.open(user, terminal))

    def login(
        self,
        username: str,
        password: str,
        required_role: str | None = None,
        *,
        terminal: str = DEFAULT_TERMINAL,
    ) -> AuthResult:
        return self._authenticate(
            username, password, self.sessions.admin, role_validator(required_role), terminal
        )

    def login_with_store_validation(
        self,
        username: str,
        password: str,
        selected_store: str,
        *,
        terminal: str = DEFAULT_TERMINAL,
    ) -> AuthResult:
        return self._authenticate(
            username, password, self.sessions.kasir, store_affinity_validator(selected_store), terminal
        )

    def logout(self, *, terminal: str = DEFAULT_TERMINAL) -> None:
        self.sessions.admin.clear(terminal)

    def logout_kasir(self, *, terminal: str = DEFAULT_TERMINAL) -> None:
        self.sessions.kasir.clear(terminal)

    # ------------------------------------------------------------------
    # Session queries
    # ------------------------------------------------------------------

    def get_session(self, *, terminal: str = DEFAULT_TERMINAL) -> dict | None:
        return self.sessions.admin.get(terminal)

    def get_kasir_session(self, *, terminal: str = DEFAULT_TERMINAL) -> dict | None:
        return self.sessions.kasir.get(terminal)

    def is_logged_in(self, *, terminal: str = DEFAULT_TERMINAL) -> bool:
        return self.get_session(terminal=terminal) is not None

    def is_kasir_logged_in(self, *, terminal: str = DEFAULT_TERMINAL) -> bool:
        return self.get_kasir_session(terminal=terminal) is not None

    def has_role(self, role: str, *, terminal: str = DEFAULT_TERMINAL) -> bool:
        session = self.get_session(terminal=terminal)
        return bool(session) and session.get("role") == role

    def has_kasir_role(self, *, terminal: str = DEFAULT_TERMINAL) -> bool:
        session = self.get_kasir_session(terminal=terminal)
        return bool(session) and session.get("role") == ROLE_KASIR

    def require_auth(self, required_role: str | None = None, *, terminal: str = DEFAULT_TERMINAL) -> GateResult:
        """
        Gate for protected views. The kasir domain is consulted when
        required_role is "kasir", the admin domain otherwise.
        """
        session = self.sessions.domain_for_role(required_role).get(terminal)
        if not session:
            return GateResult(GATE_UNAUTHENTICATED)
        if required_role and session.get("role") != required_role:
            return GateResult(GATE_FORBIDDEN, session)
        return GateResult(GATE_OK, session)

    def get_active_stores(self) -> list[str]:
        kasirs = self.store.find_by(EntityKind.USERS, "role", ROLE_KASIR)
        return sorted({k["toko_name"] for k in kasirs if isinstance(k.get("toko_name"), str) and k["toko_name"]})

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def ensure_super_admin(self, username: str, password: str, nama: str = "Super Administrator") -> dict | None:
        """Create the bootstrap admin if, and only if, there are no users yet."""
        if self.store.count(EntityKind.USERS):
            return None
        user = self.store.insert(EntityKind.USERS, {
            "username": username,
            "password_digest": make_password_digest(password, self.password_scheme),
            "role": ROLE_ADMIN,
            "toko_name": None,
            "nama": nama,
            "is_super": True,
        })
        logger.info("Created super admin %s", username)
        return user

    def create_user(
        self,
        username: str,
        password: str,
        role: str,
        nama: str | None = None,
        toko_name: str | None = None,
    ) -> dict:
        """
        Create an admin or kasir account.

        Raises ValidationError for bad input and ConflictError when the
        username is taken. Kasir accounts must name a valid store.
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError("username is required")
        if not password:
            raise ValidationError("password is required")
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

        if role == ROLE_KASIR:
            toko_name = (toko_name or "").strip()
            if not validate_store_name(toko_name):
                raise ValidationError("A kasir account needs a valid store name")
        else:
            toko_name = None

        if self.store.find_one_by(EntityKind.USERS, "username", username):
            raise ConflictError("Username already exists")

        return self.store.insert(EntityKind.USERS, {
            "username": username,
            "password_digest": make_password_digest(password, self.password_scheme),
            "role": role,
            "toko_name": toko_name,
            "nama": (nama or username).strip(),
            "is_super": False,
        })

    def delete_user(self, user_id: str) -> bool:
        """False if absent; ProtectedRecordError for the super admin."""
        return self.store.delete(EntityKind.USERS, user_id)

    def change_password(self, user_id: str, new_password: str) -> dict | bool:
        if not new_password:
            raise ValidationError("password is required")
        return self.store.update(EntityKind.USERS, user_id, {
            "password_digest": make_password_digest(new_password, self.password_scheme),
        })
