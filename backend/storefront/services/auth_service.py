# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

Passwords are hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12);
plaintext is never stored or compared. Login accepts an email address or a
username. Session tokens are managed separately (see session_service.py).
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ValidationError


MIN_PASSWORD_LENGTH = 8


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthenticationError(Exception):
    """Bad credentials or a deactivated account. Deliberately vague."""
    pass


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """Validate strength, then hash with a fresh bcrypt salt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. A malformed stored hash never matches."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(identifier: str, password: str) -> User:
    """
    Check credentials and stamp last_login_at.

    Args:
        identifier: email address (case-insensitive) or username
        password: plaintext password

    Raises:
        AuthenticationError: unknown identifier, wrong password or inactive user
    """
    if not identifier or not password:
        raise AuthenticationError("Invalid credentials")

    identifier = identifier.strip()
    user = db.session.query(User).filter(
        db.or_(User.email == identifier.lower(), User.username == identifier)
    ).first()

    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    now = utcnow()
    user.last_login_at = now
    user.last_active_at = now
    db.session.commit()
    return user
