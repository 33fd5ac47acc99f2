# backend/undian/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB holding the key-value storage table
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///undian.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Prefix for every storage key (undian_users, undian_session, ...)
    STORE_NAMESPACE = os.environ.get("STORE_NAMESPACE", "undian")

    # Raise on corrupt collections instead of reading them as empty
    STORE_STRICT = _env_flag("STORE_STRICT")

    # "legacy" keeps the hash_<hex> digest, "bcrypt" for new passwords
    PASSWORD_SCHEME = os.environ.get("PASSWORD_SCHEME", "legacy")

    SUPER_ADMIN_USERNAME = os.environ.get("SUPER_ADMIN_USERNAME", "admin")
    SUPER_ADMIN_PASSWORD = os.environ.get("SUPER_ADMIN_PASSWORD", "admin123")
    SUPER_ADMIN_NAME = "Super Administrator"

    # Session lifetime from login; expired sessions read as logged out
    ADMIN_SESSION_HOURS = int(os.environ.get("ADMIN_SESSION_HOURS", "24"))
    KASIR_SESSION_HOURS = int(os.environ.get("KASIR_SESSION_HOURS", "12"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
