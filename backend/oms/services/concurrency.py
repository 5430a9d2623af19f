# Overview: Retry helper for database operations hitting transient lock errors.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on transient lock failures.

    Retries on OperationalError (e.g. "database is locked" on SQLite).
    Same-order updates are last-write-wins: there is no version check, so
    a retried operation simply re-reads and re-applies its change.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
