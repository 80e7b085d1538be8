"""
Order code and tracking number derivation.

Pure functions, no database access.

ORDER CODE: "cu" + postal code (verbatim) + country code (lower) + the
first two letters of every item name (lower, in item order) + the
customer's order sequence + franchise id (or "none").

    [{"name": "Tofu"}], "1000", "PH", 1, "fr000001" -> "cu1000phto1fr000001"

Codes are a readable summary, not an identity: two orders with the same
inputs share a code. The tracking number is the opaque identifier.
"""

from __future__ import annotations

import random
import secrets
from typing import Any, Iterable


TRACKING_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
TRACKING_LENGTH = 10


def _item_name(item: Any) -> str:
    if isinstance(item, dict):
        return item["name"]
    return item.name


def item_codes(items: Iterable[Any]) -> list[str]:
    """First two characters of each item name, lower-cased; short names stay short."""
    return [_item_name(item)[:2].lower() for item in items]


def generate_order_code(
    items: Iterable[Any],
    postal_code: str,
    country_code: str,
    order_number: int,
    franchise_id: str | None,
) -> str:
    franchise_part = franchise_id if franchise_id else "none"
    return (
        f"cu{postal_code}{country_code.lower()}"
        f"{''.join(item_codes(items))}{order_number}{franchise_part}"
    )


def generate_tracking_number(rng: random.Random | None = None) -> str:
    """10 characters drawn uniformly from 0-9A-Z. No collision check."""
    choose = rng.choice if rng is not None else secrets.choice
    return "".join(choose(TRACKING_ALPHABET) for _ in range(TRACKING_LENGTH))
