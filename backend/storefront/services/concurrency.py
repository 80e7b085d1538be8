# Overview: Transaction helpers shared by every service that writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import StorageError


def begin_write():
    """
    Take the database write lock up front for read-then-write sequences.

    SQLite only: a deferred transaction would let two writers read the
    same state before either writes. Other dialects rely on row locks.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def _configured_attempts() -> int:
    try:
        return int(current_app.config.get("STORAGE_RETRY_ATTEMPTS", 3))
    except RuntimeError:
        return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Once attempts are exhausted the last
    failure is raised as StorageError. Any other exception rolls the
    session back and propagates unchanged.
    """
    if attempts is None:
        attempts = _configured_attempts()

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt < attempts - 1:
                time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    raise StorageError(f"Storage operation failed after {attempts} attempts") from last_exc

