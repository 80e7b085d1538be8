# Overview: Service-layer operations for users; signup, admin user management and schema backfill.

"""
User Service

ID ALLOCATION:
- customer / franchise: counter namespaces "cu" / "fr" (identifier_service)
- webmaster / test: highest existing suffix + 1 under "web" / "te"

Category changes never go through update_user(): they retire the record
and create a new one (see migration_service.py).

UNIQUENESS: email (always) and username (when set) are checked inside the
write transaction and backed by unique constraints; a constraint hit at
commit is reported as ConflictError too.
"""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CURRENT_SCHEMA_VERSION, User
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_text,
    normalize_email,
    validate_username,
)
from .auth_service import hash_password
from .concurrency import begin_write, run_with_retry
from .identifier_service import (
    COUNTER_PREFIXES,
    allocate_id,
    next_scanned_id,
    prefix_for_category,
)
from .session_service import revoke_user_sessions
from .store_service import close_stores


CONTACT_FIELDS = (
    "phone",
    "primary_phone",
    "secondary_phone",
    "address",
    "city",
    "state",
    "country",
    "country_code",
    "zip_code",
)

# Per-category account settings
CATEGORY_CONFIGS = {
    "webmaster": {"permissions": True, "requires_username": True},
    "franchise": {"permissions": False, "requires_username": True},
    "customer": {"permissions": False, "requires_username": False},
    "test": {"permissions": False, "requires_username": True},
}

USERNAME_MAX = 20
USERNAME_MIN = 4


def _category_config(category: str) -> dict:
    prefix_for_category(category)  # raises on unknown category
    return CATEGORY_CONFIGS[category]


def _clean_contact(contact: dict) -> dict:
    unknown = set(contact) - set(CONTACT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
    return {
        field: clean_text(contact.get(field), max_length=255, field=field)
        for field in CONTACT_FIELDS
    }


def _require_name(value: Any, field: str) -> str:
    name = clean_text(value, max_length=120, field=field)
    if not name:
        raise ValidationError(f"{field} is required")
    return name


def _ensure_available(email: str | None, username: str | None, *, exclude_id: str | None = None) -> None:
    if email is not None:
        q = db.session.query(User.id).filter(User.email == email)
        if exclude_id:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise ConflictError("Email already exists")
    if username is not None:
        q = db.session.query(User.id).filter(User.username == username)
        if exclude_id:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise ConflictError("Username already exists")


def is_username_available(username: str, *, exclude_id: str | None = None) -> bool:
    try:
        _ensure_available(None, username, exclude_id=exclude_id)
    except ConflictError:
        return False
    return True


def derive_username(first_name: str, prefix: str, *, exclude_id: str | None = None) -> str:
    """
    Build an unused username such as "fr_maria" for a user who needs one.

    Name characters outside [a-z0-9_] are dropped, short results are padded
    with zeros, and a numeric suffix is added until the name is free.
    """
    stem = re.sub(r"[^a-z0-9_]", "", (first_name or "").lower())
    base = f"{prefix}_{stem}"[:USERNAME_MAX].ljust(USERNAME_MIN, "0")

    candidate = base
    suffix = 1
    while not is_username_available(candidate, exclude_id=exclude_id):
        suffix += 1
        tail = str(suffix)
        candidate = f"{base[:USERNAME_MAX - len(tail)]}{tail}"
    return candidate


def _allocate_user_id(prefix: str) -> str:
    if prefix in COUNTER_PREFIXES:
        return allocate_id(prefix, commit=False)
    return next_scanned_id(prefix)


def create_user(
    category: str,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    username: str | None = None,
    **contact,
) -> User:
    """
    Create an account of any category (admin console path).

    Raises:
        ValidationError: bad category, email, password, names or username
        ConflictError: email or username already in use
        StorageError: the transaction could not complete
    """
    config = _category_config(category)
    prefix = prefix_for_category(category)

    email = normalize_email(email)
    first_name = _require_name(first_name, "first_name")
    last_name = _require_name(last_name, "last_name")
    if config["requires_username"]:
        if not username:
            raise ValidationError(f"username is required for {category} users")
        username = validate_username(username)
    elif username:
        raise ValidationError(f"{category} users do not have a username")
    else:
        username = None
    fields = _clean_contact(contact)
    password_hash = hash_password(password)

    def _op() -> User:
        begin_write()
        _ensure_available(email, username)
        user_id = _allocate_user_id(prefix)

        now = utcnow()
        user = User(
            id=user_id,
            category=category,
            email=email,
            username=username,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            permissions=config["permissions"],
            is_active=True,
            is_online=False,
            schema_version=CURRENT_SCHEMA_VERSION,
            store_name="" if category == "franchise" else None,
            store_slug="" if category == "franchise" else None,
            store_status="building" if category == "franchise" else None,
            created_at=now,
            updated_at=now,
            **fields,
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError("Email, username or user id already exists") from exc
        return user

    return run_with_retry(_op)


def register_customer(email: str, password: str, first_name: str, last_name: str, **contact) -> User:
    """Self-service signup. Always a customer with a counter-allocated "cu" id."""
    return create_user("customer", email, password, first_name, last_name, **contact)


def get_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def get_user_by_email(email: str) -> User | None:
    if not email:
        return None
    return db.session.query(User).filter_by(email=email.strip().lower()).first()


def get_user_by_username(username: str) -> User | None:
    if not username:
        return None
    return db.session.query(User).filter_by(username=username).first()


def list_users(category: str | None = None, active: bool | None = None) -> list[User]:
    query = db.session.query(User)
    if category is not None:
        _category_config(category)
        query = query.filter(User.category == category)
    if active is not None:
        query = query.filter(User.is_active.is_(active))
    return query.order_by(User.created_at.asc(), User.id.asc()).all()


UPDATABLE_FIELDS = {"email", "username", "first_name", "last_name", "password", *CONTACT_FIELDS}


def update_user(user_id: str, **changes) -> User:
    """
    Update profile fields in place. None values are ignored.

    Changing category is rejected here: it changes the user id and must go
    through migration_service.migrate_category().
    """
    changes = {k: v for k, v in changes.items() if v is not None}

    category = changes.pop("category", None)
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    def _op() -> User:
        begin_write()
        user = get_user(user_id)
        if category is not None and category != user.category:
            raise ValidationError("Category changes must use the migrate operation")

        if "email" in changes:
            email = normalize_email(changes["email"])
            _ensure_available(email, None, exclude_id=user.id)
            user.email = email
        if "username" in changes:
            if not CATEGORY_CONFIGS[user.category]["requires_username"]:
                raise ValidationError(f"{user.category} users do not have a username")
            username = validate_username(changes["username"])
            _ensure_available(None, username, exclude_id=user.id)
            user.username = username
        for field in ("first_name", "last_name"):
            if field in changes:
                setattr(user, field, _require_name(changes[field], field))
        for field in CONTACT_FIELDS:
            if field in changes:
                setattr(user, field, clean_text(changes[field], max_length=255, field=field))
        if "password" in changes:
            user.password_hash = hash_password(changes["password"])

        user.updated_at = utcnow()
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError("Email or username already exists") from exc
        return user

    return run_with_retry(_op)


def set_active(user_id: str, is_active: bool) -> User:
    """Deactivating also revokes the user's sessions."""
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean")

    def _op() -> User:
        user = get_user(user_id)
        user.is_active = is_active
        user.updated_at = utcnow()
        if not is_active:
            user.is_online = False
            revoke_user_sessions(user.id, "User deactivated", commit=False)
        db.session.commit()
        return user

    return run_with_retry(_op)


def delete_user(user_id: str) -> None:
    """Remove the account and its storefront. Orders placed under this id are kept."""
    def _op() -> None:
        user = get_user(user_id)
        close_stores(user_id)
        db.session.delete(user)
        revoke_user_sessions(user_id, "User deleted", commit=False)
        db.session.commit()

    run_with_retry(_op)


def needs_schema_update(user: User) -> bool:
    """True for records written before the current schema or with gaps in it."""
    if not user.schema_version or user.schema_version < CURRENT_SCHEMA_VERSION:
        return True
    if user.permissions is None or user.permissions != CATEGORY_CONFIGS.get(user.category, {}).get("permissions"):
        return True
    if any(getattr(user, field) is None for field in CONTACT_FIELDS):
        return True
    if user.category == "franchise" and user.store_status is None:
        return True
    return False


def backfill_schema(user_id: str) -> User:
    """Fill missing attributes with category defaults and stamp the schema version."""
    def _op() -> User:
        user = get_user(user_id)
        if user.category not in CATEGORY_CONFIGS:
            raise ValidationError(f"Invalid category '{user.category}'")

        for field in CONTACT_FIELDS:
            if getattr(user, field) is None:
                setattr(user, field, "")
        if user.is_active is None:
            user.is_active = True
        if user.is_online is None:
            user.is_online = False
        user.permissions = CATEGORY_CONFIGS[user.category]["permissions"]
        if user.category == "franchise":
            if user.store_status is None:
                user.store_status = "building"
            user.store_name = user.store_name or ""
            user.store_slug = user.store_slug or ""
        user.schema_version = CURRENT_SCHEMA_VERSION
        user.updated_at = utcnow()
        db.session.commit()
        return user

    return run_with_retry(_op)
