# Overview: Service container wiring the record store, sessions, auth and vouchers together.

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from .services.auth_service import AuthService
from .services.record_store import RecordStore
from .services.session_service import SessionService
from .services.storage_backend import MemoryStorage, StorageBackend
from .services.voucher_service import VoucherService


@dataclass
class Core:
    store: RecordStore
    sessions: SessionService
    auth: AuthService
    vouchers: VoucherService


def build_core(
    config: Mapping,
    durable_backend: StorageBackend,
    ephemeral_backend: StorageBackend | None = None,
) -> Core:
    """
    Construct one service graph per process.

    The durable backend holds the entity collections and the admin session;
    the ephemeral backend holds kasir sessions.
    """
    namespace = config.get("STORE_NAMESPACE", "undian")
    store = RecordStore(
        durable_backend,
        namespace=namespace,
        strict=bool(config.get("STORE_STRICT", False)),
    )
    sessions = SessionService(
        durable_backend,
        ephemeral_backend if ephemeral_backend is not None else MemoryStorage(),
        namespace=namespace,
        admin_max_age=timedelta(hours=config.get("ADMIN_SESSION_HOURS", 24)),
        kasir_max_age=timedelta(hours=config.get("KASIR_SESSION_HOURS", 12)),
    )
    auth = AuthService(store, sessions, password_scheme=config.get("PASSWORD_SCHEME", "legacy"))
    return Core(store=store, sessions=sessions, auth=auth, vouchers=VoucherService(store))


def bootstrap(core: Core, config: Mapping) -> dict | None:
    """First-run initialization: the super admin, only when no users exist."""
    return core.auth.ensure_super_admin(
        config.get("SUPER_ADMIN_USERNAME", "admin"),
        config.get("SUPER_ADMIN_PASSWORD", "admin123"),
        config.get("SUPER_ADMIN_NAME", "Super Administrator"),
    )
