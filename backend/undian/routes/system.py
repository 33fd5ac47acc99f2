# backend/undian/routes/system.py
"""
System health endpoint.

Reports whether the durable storage answers and how many records each
collection holds.
"""

import time
from flask import Blueprint, current_app, jsonify

from ..entities import EntityKind
from ..extensions import db, get_core
from ..models import StorageEntry

system_bp = Blueprint("system", __name__)


def check_storage_health() -> dict:
    start_time = time.time()
    try:
        entry_count = db.session.query(StorageEntry).count()
        store = get_core().store
        counts = {kind.value: store.count(kind) for kind in EntityKind}
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"storage_keys": entry_count, **counts},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Storage error",
        }


@system_bp.get("/health")
def health():
    storage = check_storage_health()
    status_code = 200 if storage["status"] == "healthy" else 503
    return jsonify({"status": storage["status"], "storage": storage}), status_code
