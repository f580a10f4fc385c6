# Overview: Transaction helpers shared by the record, plan and bin services.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import StorageError


def lock_for_update(query):
    """
    Apply row-level locking for read-modify-write on a single record.

    NOTE: SQLite ignores SELECT ... FOR UPDATE and serializes writers instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock/contention failures.

    Retries on OperationalError (database is locked, deadlocks) and
    StaleDataError. Anything else propagates untouched.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run `func` and commit, as one all-or-nothing unit.

    - lock contention is retried (the whole unit re-runs from scratch)
    - IntegrityError is rolled back and re-raised so callers can apply the
      natural-key merge/reject policy
    - any other SQLAlchemy failure is rolled back and raised as StorageError
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError):
            raise
        except Exception:
            db.session.rollback()
            raise

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError(str(exc)) from exc
