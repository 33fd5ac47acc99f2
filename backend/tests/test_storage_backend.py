import json
import unittest
from flask import Flask

from undian.core import bootstrap, build_core
from undian.entities import EntityKind
from undian.extensions import db
from undian.models import StorageEntry
from undian.services.record_store import RecordStore
from undian.services.storage_backend import MemoryStorage, SqlStorage


class SqlStorageTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from undian import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(StorageEntry).delete()
        db.session.commit()
        self.storage = SqlStorage()

    def test_get_missing_key_returns_none(self):
        self.assertIsNone(self.storage.get_item("undian_users"))

    def test_set_get_overwrite_remove(self):
        self.storage.set_item("undian_users", "[]")
        self.assertEqual(self.storage.get_item("undian_users"), "[]")

        self.storage.set_item("undian_users", '[{"id": "1"}]')
        self.assertEqual(self.storage.get_item("undian_users"), '[{"id": "1"}]')
        self.assertEqual(db.session.query(StorageEntry).count(), 1)

        self.storage.remove_item("undian_users")
        self.assertIsNone(self.storage.get_item("undian_users"))
        # Removing an absent key is not an error
        self.storage.remove_item("undian_users")

    def test_keys_sorted(self):
        self.storage.set_item("undian_vouchers", "[]")
        self.storage.set_item("undian_customers", "[]")
        self.assertEqual(self.storage.keys(), ["undian_customers", "undian_vouchers"])

    def test_records_survive_a_new_store(self):
        created = RecordStore(self.storage).insert(EntityKind.CUSTOMERS, {"nama": "Budi"})

        reopened = RecordStore(SqlStorage())
        self.assertEqual(reopened.get_all(EntityKind.CUSTOMERS), [created])

        raw = db.session.get(StorageEntry, "undian_customers").value
        self.assertEqual(json.loads(raw), [created])

    def test_admin_session_is_durable_kasir_session_is_not(self):
        config = {"SUPER_ADMIN_USERNAME": "admin", "SUPER_ADMIN_PASSWORD": "admin123"}
        core = build_core(config, self.storage, MemoryStorage())
        bootstrap(core, config)
        core.auth.create_user("kasir1", "pw", "kasir", toko_name="StoreA")
        core.auth.login("admin", "admin123")
        core.auth.login_with_store_validation("kasir1", "pw", "StoreA")

        restarted = build_core(config, SqlStorage(), MemoryStorage())
        self.assertEqual(restarted.auth.get_session()["username"], "admin")
        self.assertIsNone(restarted.auth.get_kasir_session())


class MemoryStorageTests(unittest.TestCase):
    def test_initial_contents_are_copied(self):
        seed = {"a": "1"}
        storage = MemoryStorage(seed)
        storage.set_item("b", "2")
        self.assertEqual(seed, {"a": "1"})
        self.assertEqual(storage.keys(), ["a", "b"])

    def test_remove_missing_key(self):
        storage = MemoryStorage()
        storage.remove_item("nope")
        self.assertIsNone(storage.get_item("nope"))


if __name__ == "__main__":
    unittest.main()
