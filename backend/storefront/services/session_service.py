# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Each request carries an explicit SessionContext (who, and in which
category) resolved from its bearer token; nothing about the caller is read
from ambient state.

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout from SESSION_TTL_HOURS (default 24h)
- Revoked on logout, deactivation, or when a category migration retires
  the user id the session was issued for
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow
from ..validation import NotFoundError


@dataclass
class SessionContext:
    """
    Identity and role for one authenticated request.

    category comes from the session record captured at login, so a user
    cannot change role mid-session without logging in again.
    """
    user: User
    session: SessionToken
    user_id: str
    category: str


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _session_ttl() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))


def create_session(user_id: str) -> tuple[SessionToken, str]:
    """
    Returns (session_record, plaintext_token).

    Client receives plaintext_token, database stores only the hash.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        category=user.category,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + _session_ttl(),
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to a SessionContext.

    Returns None if the token is unknown, expired or revoked, or if its
    user no longer exists or is deactivated (the session is revoked then).
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if session is None:
        return None

    if session.expires_at < utcnow():
        return None

    user = db.session.get(User, session.user_id)
    if user is None or not user.is_active:
        _revoke(session, "User retired or deactivated")
        db.session.commit()
        return None

    user.last_active_at = utcnow()
    db.session.commit()

    return SessionContext(
        user=user,
        session=session,
        user_id=session.user_id,
        category=session.category,
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked, False if none matched."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if session is None:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_user_sessions(user_id: str, reason: str = "Revoke all sessions", *, commit: bool = True) -> int:
    """
    Revoke every live session for a user id. Returns the count revoked.

    With commit=False the change joins the caller's transaction.
    """
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        _revoke(session, reason)

    if commit:
        db.session.commit()
    return len(sessions)
