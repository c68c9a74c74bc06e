# Overview: Transaction, retry and savepoint helpers shared by every workflow.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import PersistenceError, ServiceError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func(), retrying lock and stale-row failures with exponential backoff.

    The session is rolled back before each retry, so func() must rebuild
    everything it writes.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "Retrying transaction (attempt %d/%d): %s", attempt + 1, attempts, exc.__class__.__name__
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func() as one atomic unit of work and commit it.

    Any error rolls the whole unit back. ServiceErrors propagate unchanged;
    database failures surface as a generic PersistenceError.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except ServiceError:
            db.session.rollback()
            raise
        except (OperationalError, StaleDataError):
            # run_with_retry rolls back before retrying
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Transaction failed")
            raise PersistenceError() from exc
        except Exception:
            db.session.rollback()
            raise

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except (OperationalError, StaleDataError) as exc:
        current_app.logger.exception("Transaction failed after %d attempts", attempts)
        raise PersistenceError() from exc


@contextmanager
def savepoint():
    """
    Isolate a block in a SAVEPOINT.

    A failure inside rolls back only the block; the surrounding transaction
    stays usable for the statements that follow.
    """
    with db.session.begin_nested() as nested:
        yield nested
