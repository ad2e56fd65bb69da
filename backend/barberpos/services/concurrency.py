# Overview: Service-layer helpers for concurrency; row locks and retry on conflicts.

from __future__ import annotations

import random
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Version columns still catch lost updates there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent update conflict (attempt %d/%d): %s", attempt + 1, attempts, exc
            )
            # jitter so writers that collided do not retry in lockstep
            time.sleep(backoff_base * (2 ** attempt) * random.uniform(0.5, 1.5))
    if last_exc:
        raise last_exc
