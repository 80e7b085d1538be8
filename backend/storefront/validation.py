from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum unit price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

MAX_QUANTITY = 10_000

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{4,20}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level: the referenced order or user does not exist."""


class ConflictError(ValueError):
    """409-level uniqueness conflict (e.g., duplicate email or username)."""


class StorageError(RuntimeError):
    """503-level: the database could not complete the operation."""


def require_fields(payload: dict, fields: list[str]) -> None:
    """Raise ValidationError naming every field that is absent or blank."""
    missing = []
    for field in fields:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_price_cents(value: Any, *, field: str = "price") -> int:
    """
    Parse a unit price given as a number or decimal string into cents.

    Rejects booleans, blanks, NaN/Infinity, negatives and scientific
    notation instead of coercing them to 0.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain decimal (scientific notation not allowed)")
        raw = stripped
    elif isinstance(value, (int, float, Decimal)):
        raw = str(value)
    else:
        raise ValidationError(f"{field} must be a number")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")

    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")
    return cents


def parse_quantity(value: Any, *, field: str = "quantity") -> int:
    """Parse a strictly positive integer quantity (ints or digit strings only)."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        qty = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal")
        qty = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"{field} must be an integer")
        qty = int(stripped)
    else:
        raise ValidationError(f"{field} must be an integer")

    if qty <= 0:
        raise ValidationError(f"{field} must be > 0")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return qty


def normalize_email(email: Any) -> str:
    if not isinstance(email, str) or not EMAIL_PATTERN.match(email.strip()):
        raise ValidationError("email must be a valid email address")
    return email.strip().lower()


def validate_username(username: Any) -> str:
    """4-20 characters: letters, digits and underscore."""
    if not isinstance(username, str) or not USERNAME_PATTERN.match(username):
        raise ValidationError(
            "username must be 4-20 characters of letters, digits or underscore"
        )
    return username


def clean_text(value: Any, *, max_length: int | None = None, field: str = "value") -> str:
    """Strip a free-text field; None becomes the empty string."""
    if value is None:
        return ""
    text = str(value).strip()
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text
