# Overview: Service-layer session domains; admin (durable) and kasir (ephemeral) sessions.

"""
Session Service

Two independent session domains share one implementation:

- admin: stored in the durable backend, survives restarts until logout or
  expiry.
- kasir: stored in the ephemeral backend, gone when the process ends.

Each domain has its own storage key, so opening or clearing one never touches
the other. A domain key may be suffixed with a terminal id when several
browsers share one server process.

EXPIRY: a session older than its domain's max_age (measured from
logged_in_at) reads as logged out and its key is removed. Opening a session
also sweeps the domain's other expired keys, so abandoned terminals do not
accumulate.

State per domain and terminal: anonymous -> authenticated -> anonymous.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from ..entities import ROLE_KASIR
from ..time_utils import parse_iso_datetime, to_iso_millis, utcnow
from .storage_backend import StorageBackend, StorageError


logger = logging.getLogger(__name__)

DEFAULT_TERMINAL = "local"

ADMIN_SESSION_MAX_AGE = timedelta(hours=24)
KASIR_SESSION_MAX_AGE = timedelta(hours=12)


@dataclass
class SessionDomain:
    """One session namespace bound to a storage backend."""
    name: str
    key: str
    backend: StorageBackend
    max_age: timedelta
    clock: Callable[[], datetime] = field(default=utcnow)

    def _key_for(self, terminal: str) -> str:
        if not terminal or terminal == DEFAULT_TERMINAL:
            return self.key
        return f"{self.key}:{terminal}"

    def _owns(self, key: str) -> bool:
        return key == self.key or key.startswith(f"{self.key}:")

    def _decode(self, raw: str | None) -> dict | None:
        if not raw:
            return None
        session = json.loads(raw)
        if not isinstance(session, dict) or not session.get("id"):
            return None
        return session

    def _expired(self, session: dict) -> bool:
        logged_in_at = parse_iso_datetime(session.get("logged_in_at"))
        return logged_in_at is None or self.clock() - logged_in_at > self.max_age

    def open(self, user: dict, terminal: str = DEFAULT_TERMINAL) -> dict:
        self.purge_expired()
        session = {
            "id": user.get("id"),
            "username": user.get("username"),
            "role": user.get("role"),
            "toko_name": user.get("toko_name"),
            "logged_in_at": to_iso_millis(self.clock()),
        }
        self.backend.set_item(self._key_for(terminal), json.dumps(session, ensure_ascii=False))
        logger.info("Opened %s session for %s", self.name, session["username"])
        return session

    def get(self, terminal: str = DEFAULT_TERMINAL) -> dict | None:
        key = self._key_for(terminal)
        try:
            session = self._decode(self.backend.get_item(key))
        except (StorageError, ValueError):
            logger.warning("Unreadable %s session; treating as logged out", self.name, exc_info=True)
            return None
        if session is None:
            return None
        if self._expired(session):
            logger.info("Expired %s session for %s", self.name, session.get("username"))
            try:
                self.backend.remove_item(key)
            except StorageError:
                logger.warning("Could not remove expired %s session %s", self.name, key, exc_info=True)
            return None
        return session

    def clear(self, terminal: str = DEFAULT_TERMINAL) -> None:
        self.backend.remove_item(self._key_for(terminal))

    def purge_expired(self) -> int:
        """Remove this domain's expired or unreadable session keys."""
        removed = 0
        for key in self.backend.keys():
            if not self._owns(key):
                continue
            try:
                session = self._decode(self.backend.get_item(key))
            except ValueError:
                session = None
            if session is None or self._expired(session):
                self.backend.remove_item(key)
                removed += 1
        if removed:
            logger.info("Purged %d expired %s session(s)", removed, self.name)
        return removed


class SessionService:
    """Owns the admin and kasir domains."""

    def __init__(
        self,
        durable_backend: StorageBackend,
        ephemeral_backend: StorageBackend,
        *,
        namespace: str = "undian",
        admin_max_age: timedelta = ADMIN_SESSION_MAX_AGE,
        kasir_max_age: timedelta = KASIR_SESSION_MAX_AGE,
    ):
        self.admin = SessionDomain(
            name="admin",
            key=f"{namespace}_session",
            backend=durable_backend,
            max_age=admin_max_age,
        )
        self.kasir = SessionDomain(
            name="kasir",
            key=f"{namespace}_kasir_session",
            backend=ephemeral_backend,
            max_age=kasir_max_age,
        )

    @property
    def domains(self) -> tuple[SessionDomain, SessionDomain]:
        return self.admin, self.kasir

    def set_clock(self, clock: Callable[[], datetime]) -> None:
        for domain in self.domains:
            domain.clock = clock

    def domain_for_role(self, required_role: str | None) -> SessionDomain:
        return self.kasir if required_role == ROLE_KASIR else self.admin

    def purge_expired(self) -> int:
        return sum(domain.purge_expired() for domain in self.domains)
