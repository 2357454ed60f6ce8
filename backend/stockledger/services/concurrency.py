# Overview: Service-layer helpers for concurrency; retries and storage error translation.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, TransientError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _retry_settings(attempts: int | None, backoff_base: float | None) -> tuple[int, float]:
    config = current_app.config
    if attempts is None:
        attempts = int(config.get("LEDGER_RETRY_ATTEMPTS", 3))
    if backoff_base is None:
        backoff_base = float(config.get("LEDGER_RETRY_BACKOFF_SECONDS", 0.05))
    return max(attempts, 1), backoff_base


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (lock timeouts, unavailable store) and
    StaleDataError (optimistic locking conflicts). When the budget is
    exhausted the storage error is translated:
    - StaleDataError  -> ConflictError
    - OperationalError -> TransientError
    """
    attempts, backoff_base = _retry_settings(attempts, backoff_base)

    for attempt in range(attempts):
        try:
            return func()
        except StaleDataError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConflictError(
                    f"Concurrent update conflict after {attempts} attempts",
                    attempts=attempts,
                ) from exc
            current_app.logger.debug("Stale version on attempt %s, retrying", attempt + 1)
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise TransientError(
                    "Storage unavailable or timed out; safe to retry",
                    attempts=attempts,
                ) from exc
            current_app.logger.debug("Storage busy on attempt %s, retrying", attempt + 1)
        time.sleep(backoff_base * (2 ** attempt))

