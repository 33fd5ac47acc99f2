# Overview: Storage table backing the durable key-value backend.

from __future__ import annotations

from .extensions import db


class StorageEntry(db.Model):
    """
    One durable storage key.

    Entity collections and the admin session blob live here as JSON text,
    one row per key (undian_users, undian_vouchers, undian_session, ...).
    """
    __tablename__ = "storage_entries"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
