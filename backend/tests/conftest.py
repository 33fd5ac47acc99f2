"""
Pytest fixtures for the Undian backend tests.

Provides an in-memory Flask app, memory-backed service graphs for unit tests,
a controllable clock, and login helpers for the API tests.
"""

from datetime import datetime, timedelta

import pytest

from undian import create_app
from undian.core import bootstrap, build_core
from undian.entities import EntityKind, ROLE_KASIR
from undian.services.record_store import RecordStore
from undian.services.storage_backend import MemoryStorage


TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test",
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    "STORE_NAMESPACE": "undian",
    "STORE_STRICT": False,
    "PASSWORD_SCHEME": "legacy",
    "SUPER_ADMIN_USERNAME": "admin",
    "SUPER_ADMIN_PASSWORD": "admin123",
}


class FakeClock:
    """Callable clock that tests can move around."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 10, 19, 8, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope='function')
def app():
    """Fresh application (and fresh in-memory database) per test."""
    app = create_app(TEST_CONFIG)
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


@pytest.fixture(scope='function')
def backend():
    return MemoryStorage()


@pytest.fixture(scope='function')
def clock():
    return FakeClock()


@pytest.fixture(scope='function')
def store(backend, clock):
    """Memory-backed record store with a controllable clock."""
    return RecordStore(backend, clock=clock)


@pytest.fixture(scope='function')
def core(backend, clock):
    """Memory-backed service graph with the super admin bootstrapped."""
    core = build_core(TEST_CONFIG, backend, MemoryStorage())
    core.store.clock = clock
    core.sessions.set_clock(clock)
    bootstrap(core, TEST_CONFIG)
    return core


@pytest.fixture(scope='function')
def kasir_a(core):
    return core.auth.create_user("kasir1", "pw", ROLE_KASIR, nama="Kasir Satu", toko_name="StoreA")


@pytest.fixture(scope='function')
def kasir_b(core):
    return core.auth.create_user("kasir2", "pw", ROLE_KASIR, nama="Kasir Dua", toko_name="StoreB")


def customer_payload(**overrides) -> dict:
    payload = {
        "nama": "Budi Santoso",
        "nik": "3201234567890001",
        "no_telepon": "081234567890",
        "alamat": "Jl. Mawar No. 1, Bandung",
    }
    payload.update(overrides)
    return payload


def insert_voucher(store, **fields) -> dict:
    data = {
        "kode_voucher": "X-HADIAH-BESAR-AAA-BBB-C",
        "tipe_hadiah": "BESAR",
        "status": "active",
        "toko_name": "A",
        "customer_id": None,
        "transaction_id": None,
    }
    data.update(fields)
    return store.insert(EntityKind.VOUCHERS, data)


def login_admin(client, username="admin", password="admin123"):
    return client.post('/api/auth/login', json={"username": username, "password": password})


def login_kasir(client, username, password, toko_name):
    return client.post('/api/auth/kasir/login', json={
        "username": username,
        "password": password,
        "toko_name": toko_name,
    })
