# Overview: Service-layer operations for user category migration.

"""
User Category Migration

A user's id encodes their category ("cu..." customer, "fr..." franchise),
so changing category changes the id. That is modeled as RETIRE + CREATE,
never as a primary-key rename:

    customer cu000010 --upgrade--> franchise fr000003   (previous_id=cu000010)
    franchise fr000003 --revert--> customer cu000010    (previous_franchise_id=fr000003)

RULES:
1. Only customer -> franchise and franchise -> customer are supported.
2. Creating the successor and deleting the retired record happen in one
   transaction; either both land or neither does.
3. Upgrading reuses previous_franchise_id when present, so a customer who
   reverts and upgrades again gets their old franchise id back.
4. Sessions issued for the retired id are revoked.
5. Orders are NOT re-pointed: historical orders keep the id they were
   placed under.
6. Storefronts published under the retired id are taken offline.
"""

from __future__ import annotations

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import begin_write, run_with_retry
from .identifier_service import allocate_id, has_prefix, prefix_for_category
from .session_service import revoke_user_sessions
from .store_service import close_stores
from .user_service import derive_username


SUPPORTED_MIGRATIONS = {
    ("customer", "franchise"),
    ("franchise", "customer"),
}


def _load(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def _swap(retired: User, new_id: str, **overrides) -> str:
    """
    Replace `retired` with a copy stored under `new_id`.

    The retired row is deleted and flushed before the successor is added,
    since both carry the same unique email/username. Storefronts published
    under the retired id go offline in the same transaction.
    """
    if db.session.get(User, new_id) is not None:
        raise ConflictError(f"Target user id {new_id} already exists")

    attributes = retired.copy_attributes()
    attributes.update(overrides)
    attributes["updated_at"] = utcnow()
    retired_id = retired.id

    close_stores(retired_id)
    db.session.delete(retired)
    db.session.flush()

    db.session.add(User(id=new_id, **attributes))
    revoke_user_sessions(retired_id, f"Migrated to {new_id}", commit=False)
    db.session.commit()
    return new_id


def upgrade_to_franchise(user_id: str) -> str:
    """
    Customer -> franchise. Returns the franchise id.

    Store fields start over in the "building" state; the username is kept
    or derived as fr_<firstname>.
    """
    def _op() -> str:
        begin_write()
        user = _load(user_id)
        if user.category != "customer" or not has_prefix(user.id, "customer"):
            raise ValidationError("Only customers can be upgraded to franchise")

        if has_prefix(user.previous_franchise_id, "franchise"):
            new_id = user.previous_franchise_id
        else:
            new_id = allocate_id(prefix_for_category("franchise"), commit=False)

        username = user.username or derive_username(user.first_name, "fr", exclude_id=user.id)

        return _swap(
            user,
            new_id,
            category="franchise",
            username=username,
            permissions=False,
            previous_id=user.id,
            previous_franchise_id=None,
            store_name="",
            store_slug="",
            store_status="building",
        )

    return run_with_retry(_op)


def revert_to_customer(user_id: str) -> str:
    """Franchise -> customer, back to the customer id recorded in previous_id."""
    def _op() -> str:
        begin_write()
        user = _load(user_id)
        if user.category != "franchise" or not has_prefix(user.id, "franchise"):
            raise ValidationError("Only franchises can be reverted to customer")
        if not has_prefix(user.previous_id, "customer"):
            raise ValidationError("Original customer ID not found or invalid")

        return _swap(
            user,
            user.previous_id,
            category="customer",
            username=None,
            permissions=False,
            previous_id=None,
            previous_franchise_id=user.id,
            store_name=None,
            store_slug=None,
            store_status=None,
        )

    return run_with_retry(_op)


def migrate_category(user_id: str, target_category: str) -> str:
    """
    Move a user to another category. Returns the user's new id.

    Raises:
        NotFoundError: no such user
        ValidationError: unsupported category pair, or missing previous_id
            when reverting
        ConflictError: the target id is already taken
        StorageError: the transaction could not complete (nothing changed)
    """
    if not target_category:
        raise ValidationError("target_category is required")
    target_category = target_category.strip().lower()
    prefix_for_category(target_category)

    user = _load(user_id)
    pair = (user.category, target_category)
    if pair not in SUPPORTED_MIGRATIONS:
        raise ValidationError(
            f"Cannot migrate {user.category} user to {target_category}: "
            "only customer <-> franchise is supported"
        )

    if target_category == "franchise":
        return upgrade_to_franchise(user_id)
    return revert_to_customer(user_id)
