# Overview: Row locking and retry helpers for check-and-write sequences on shared rows.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(stmt):
    """
    Apply row-level locking to a select() so stock checks and decrements
    see the same row state.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id optimistic
    lock on Product still catches lost updates there.
    """
    return stmt.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute a whole transaction with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic locking conflicts). ``func`` must open its own
    tenant_transaction so every attempt re-reads and re-checks.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent update conflict, retrying (attempt %s/%s): %s",
                attempt + 1,
                attempts,
                type(exc).__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))
