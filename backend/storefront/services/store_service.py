from __future__ import annotations

import re

from ..extensions import db
from ..models import Store, User
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, clean_text
from .concurrency import begin_write, run_with_retry


SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def generate_store_slug(store_name: str | None) -> str:
    """'Mama's  Kitchen!' -> 'mama-s-kitchen'"""
    if not store_name:
        return ""
    slug = re.sub(r"[^a-z0-9-]", "-", store_name.lower().strip())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def validate_store_slug(slug: str | None) -> bool:
    return bool(slug) and SLUG_PATTERN.match(slug) is not None


def get_store_by_slug(slug: str) -> Store | None:
    return db.session.get(Store, slug)


def get_store_by_franchise_id(franchise_id: str) -> Store | None:
    return db.session.query(Store).filter_by(franchise_id=franchise_id).first()


def claim_store(franchise_id: str, store_name: str) -> str:
    """
    Name a franchise's storefront and publish it under a slug.

    If another franchise already owns the slug, the first four characters
    of this franchise's id are appended ("tofu-house-fr00"). Returns the
    final slug.
    """
    name = clean_text(store_name, max_length=120, field="store_name")
    slug = generate_store_slug(name)
    if not validate_store_slug(slug):
        raise ValidationError("store_name must contain at least one letter or digit")

    def _op() -> str:
        begin_write()
        user = db.session.get(User, franchise_id)
        if user is None:
            raise NotFoundError(f"User {franchise_id} not found")
        if user.category != "franchise":
            raise ValidationError("Only franchise users can claim a store")

        final_slug = slug
        existing = db.session.get(Store, final_slug)
        if existing is not None and existing.franchise_id != franchise_id:
            final_slug = f"{slug}-{franchise_id[:4]}"
            existing = db.session.get(Store, final_slug)
            if existing is not None and existing.franchise_id != franchise_id:
                raise ConflictError(f"Store slug '{final_slug}' is already taken")

        # One storefront per franchise: drop any slug claimed earlier
        db.session.query(Store).filter(
            Store.franchise_id == franchise_id,
            Store.slug != final_slug,
        ).delete(synchronize_session=False)

        now = utcnow()
        if existing is None:
            db.session.add(Store(
                slug=final_slug,
                franchise_id=franchise_id,
                store_name=name,
                status="active",
                created_at=now,
                updated_at=now,
            ))
        else:
            existing.store_name = name
            existing.status = "active"
            existing.updated_at = now

        user.store_name = name
        user.store_slug = final_slug
        user.store_status = "active"
        user.updated_at = now

        db.session.commit()
        return final_slug

    return run_with_retry(_op)


def close_stores(franchise_id: str) -> int:
    """
    Take a franchise's storefronts offline by deleting their Store rows.

    Joins the caller's transaction (no commit); used when the franchise id
    is retired by migration or deletion. Returns the number removed.
    """
    return db.session.query(Store).filter(
        Store.franchise_id == franchise_id,
    ).delete(synchronize_session="fetch")
