# Overview: Service-layer operations for identifier; encapsulates business logic and database work.

"""
Identifier Service - sequential, category-prefixed user identifiers

FORMAT: prefix + 6-digit zero-padded sequence ("cu000001", "fr000042").

TWO ALLOCATION PATHS:
- Counter (customer "cu", franchise "fr"): one row per prefix in `counters`,
  bumped with a single atomic UPDATE. Used by signup, admin creation and
  category migration.
- Scan (webmaster "web", test "te"): highest existing suffix + 1. The
  users primary key is the uniqueness guarantee; callers insert inside
  the same retry loop and rescan when the insert collides.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Counter, User
from ..validation import ValidationError
from .concurrency import begin_write, run_with_retry


ID_PAD = 6

CATEGORY_PREFIXES = {
    "customer": "cu",
    "franchise": "fr",
    "webmaster": "web",
    "test": "te",
}

COUNTER_PREFIXES = {"cu", "fr"}
SCANNED_PREFIXES = {"web", "te"}


def format_id(prefix: str, number: int) -> str:
    return f"{prefix}{number:0{ID_PAD}d}"


def prefix_for_category(category: str) -> str:
    try:
        return CATEGORY_PREFIXES[category]
    except KeyError:
        raise ValidationError(
            f"Invalid category '{category}'. Must be one of: {', '.join(sorted(CATEGORY_PREFIXES))}"
        )


def detect_category(user_id: str) -> str:
    """Map an identifier back to its category by prefix."""
    if user_id:
        # Longest prefix first so "web" is not shadowed by a shorter one
        for category, prefix in sorted(CATEGORY_PREFIXES.items(), key=lambda kv: -len(kv[1])):
            suffix = user_id[len(prefix):]
            if user_id.startswith(prefix) and suffix.isdigit():
                return category
    raise ValidationError(f"Invalid user ID format: '{user_id}'")


def has_prefix(user_id: str | None, category: str) -> bool:
    if not user_id:
        return False
    try:
        return detect_category(user_id) == category
    except ValidationError:
        return False


def _increment_counter(prefix: str) -> int:
    stmt = (
        update(Counter)
        .where(Counter.name == prefix)
        .values(current_count=Counter.current_count + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        return db.session.query(Counter.current_count).filter_by(name=prefix).scalar()

    # Counter absent: it starts at 0, so this allocation is 1
    db.session.add(Counter(name=prefix, current_count=1))
    db.session.flush()
    return 1


def allocate_id(prefix: str, *, commit: bool = True) -> str:
    """
    Atomically allocate the next identifier for a counter namespace.

    With commit=False the increment joins the caller's open transaction
    (the caller must already hold the write lock and must commit).
    Raises StorageError if the transaction cannot complete.
    """
    if prefix not in COUNTER_PREFIXES:
        raise ValidationError(
            f"Unknown counter prefix '{prefix}'. Must be one of: {', '.join(sorted(COUNTER_PREFIXES))}"
        )

    if not commit:
        return format_id(prefix, _increment_counter(prefix))

    def _op() -> str:
        begin_write()
        try:
            number = _increment_counter(prefix)
        except IntegrityError:
            # Another writer created the counter first; increment theirs
            db.session.rollback()
            begin_write()
            number = _increment_counter(prefix)
        db.session.commit()
        return format_id(prefix, number)

    return run_with_retry(_op)


def next_scanned_id(prefix: str) -> str:
    """
    Next identifier after the highest existing one under a scanned prefix.

    Only ids whose remainder is all digits count, so "te000004" is seen
    under "te" but an unrelated id that merely starts with "te" is not.
    """
    if prefix not in SCANNED_PREFIXES:
        raise ValidationError(
            f"Unknown scanned prefix '{prefix}'. Must be one of: {', '.join(sorted(SCANNED_PREFIXES))}"
        )

    ids = db.session.query(User.id).filter(User.id.like(f"{prefix}%")).all()
    numbers = [int(row.id[len(prefix):]) for row in ids if row.id[len(prefix):].isdigit()]
    return format_id(prefix, max(numbers) + 1 if numbers else 1)


def current_count(prefix: str) -> int:
    """Last value handed out for a counter namespace (0 if none yet)."""
    value = db.session.query(Counter.current_count).filter_by(name=prefix).scalar()
    return value or 0
