# Overview: Row locking, retry and unit-of-work helpers shared by the services.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the query's rows.

    NOTE: a no-op on SQLite, where the database-level write lock and the
    version_id columns serialize writers instead.
    """
    return query.with_for_update()


def capped_backoff(attempt: int, *, base: float, cap: float) -> float:
    """Exponential backoff delay for a zero-based attempt, never above cap."""
    return min(base * (2 ** attempt), cap)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, backoff_cap: float = 2.0):
    """
    Call func, re-running it after lock or optimistic-version conflicts.

    OperationalError (lock timeouts, deadlocks) and StaleDataError (a
    concurrent writer bumped version_id) roll back and retry with capped
    backoff; the last one is re-raised once attempts are used up. Any other
    exception rolls back and propagates unchanged.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.debug("Retrying after %s (attempt %d/%d)", type(exc).__name__, attempt + 1, attempts)
            time.sleep(capped_backoff(attempt, base=backoff_base, cap=backoff_cap))
        except Exception:
            db.session.rollback()
            raise


def run_in_unit_of_work(func):
    """
    Run func as one all-or-nothing unit.

    func does its reads and writes on db.session without committing. On
    success the session is committed and func's result returned; on any
    failure everything func did (stock, balances, ledger rows, allocated
    numbers) is rolled back. Lock and version conflicts re-run the whole unit.
    """
    def _op():
        result = func()
        db.session.commit()
        return result

    return run_with_retry(
        _op,
        attempts=current_app.config.get("UNIT_OF_WORK_ATTEMPTS", 3),
        backoff_base=current_app.config.get("SEQUENCE_BACKOFF_BASE", 0.1),
        backoff_cap=current_app.config.get("SEQUENCE_BACKOFF_CAP", 2.0),
    )
