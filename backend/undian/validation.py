# Overview: Boundary validators and the error types shared by the services.

from __future__ import annotations

import re


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""


class UnknownFieldError(ValidationError):
    """Raised when an insert or patch names a field the entity does not have."""

    def __init__(self, kind: str, fields):
        self.kind = kind
        self.fields = sorted(fields)
        super().__init__(f"Unknown or read-only field(s) for {kind}: {', '.join(self.fields)}")


NIK_PATTERN = re.compile(r"^\d{16}$")
PHONE_PATTERN = re.compile(r"^(08|628|\+628)\d{8,12}$")
STORE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 ._-]{0,63}$")
# "1.250.000": dots only as thousands separators, never as a decimal point
GROUPED_AMOUNT_PATTERN = re.compile(r"^\d{1,3}(\.\d{3})+$")
PLAIN_AMOUNT_PATTERN = re.compile(r"^[0-9]+$")


def validate_nik(nik) -> bool:
    """National id: exactly 16 digits."""
    return isinstance(nik, str) and bool(NIK_PATTERN.match(nik))


def validate_phone(phone) -> bool:
    """Indonesian mobile number; whitespace is ignored."""
    if not isinstance(phone, str):
        return False
    return bool(PHONE_PATTERN.match(re.sub(r"\s", "", phone)))


def validate_store_name(name) -> bool:
    if not isinstance(name, str):
        return False
    return bool(STORE_NAME_PATTERN.match(name.strip()))


def parse_nominal(value) -> int:
    """
    Coerce a transaction amount to a non-negative integer.

    Accepts ints and plain digit strings ("250000", "250.000" with dot
    grouping). Rejects floats, booleans, negatives and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError("nominal must be an integer")
    if isinstance(value, int):
        if value < 0:
            raise ValidationError("nominal must not be negative")
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if GROUPED_AMOUNT_PATTERN.match(stripped):
            stripped = stripped.replace(".", "")
        if not PLAIN_AMOUNT_PATTERN.match(stripped):
            raise ValidationError("nominal must be a plain integer amount")
        return int(stripped)
    if isinstance(value, float):
        raise ValidationError("nominal must be an integer, not a decimal")
    raise ValidationError("nominal must be an integer")
