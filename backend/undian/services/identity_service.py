# Overview: Row identifiers and password digests.

"""
Identity & Password Service

ROW IDS: base36 millisecond clock followed by nine random base36 characters.
Ids are row identifiers only, never security tokens.

PASSWORD DIGEST (legacy scheme): a rolling 32-bit multiply-add fold over the
UTF-16 code units of the password, stored as "hash_<hex>". It is fast,
unsalted and NOT collision resistant. It exists so that plaintext is not
stored and so that digests written by earlier installs keep verifying.
Deployments that care about credential security should set
PASSWORD_SCHEME=bcrypt; verify_password accepts both formats.
"""

import secrets
import threading
import time

import bcrypt


BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
LEGACY_PREFIX = "hash_"
RANDOM_ID_LENGTH = 9

_clock_lock = threading.Lock()
_last_millis = 0


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def _monotonic_millis() -> int:
    global _last_millis
    with _clock_lock:
        now = time.time_ns() // 1_000_000
        if now < _last_millis:
            now = _last_millis
        _last_millis = now
        return now


def generate_id() -> str:
    """Opaque row id, unique with overwhelming probability."""
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(RANDOM_ID_LENGTH))
    return _base36(_monotonic_millis()) + suffix


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _utf16_code_units(text: str):
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def hash_password(password: str) -> str:
    """Legacy digest: h = int32(h * 31 + unit) over UTF-16 code units."""
    h = 0
    for unit in _utf16_code_units(password):
        h = _to_int32(h * 31 + unit)
    return f"{LEGACY_PREFIX}{abs(h):x}"


def hash_password_bcrypt(password: str) -> str:
    """Salted bcrypt hash (cost factor 12)."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def is_bcrypt_digest(digest: str) -> bool:
    return isinstance(digest, str) and digest.startswith("$2")


def verify_password(password: str, digest: str) -> bool:
    """Recompute and compare; bcrypt digests go through bcrypt.checkpw."""
    if not isinstance(password, str) or not isinstance(digest, str):
        return False
    if is_bcrypt_digest(digest):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            return False
    return hash_password(password) == digest


def make_password_digest(password: str, scheme: str = "legacy") -> str:
    if scheme == "bcrypt":
        return hash_password_bcrypt(password)
    if scheme == "legacy":
        return hash_password(password)
    raise ValueError(f"Unknown password scheme: {scheme!r}")
