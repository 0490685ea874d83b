# Overview: Transaction helpers shared by services: row locks, SQLite write locks and bounded retries.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import ConcurrencyConflictError, DomainError, PersistenceError

TRANSIENT_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
    "busy",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the equivalent is begin_immediate().
    """
    return query.with_for_update()


def begin_immediate(session=None) -> None:
    """
    Take the SQLite write lock up front.

    WHY: SQLite upgrades a read transaction to a write transaction lazily, and
    two readers that both try to upgrade deadlock. BEGIN IMMEDIATE makes the
    second writer wait (or fail with "database is locked", which
    run_with_retry treats as transient) before it reads anything.

    No-op on other dialects and when a transaction is already open on the
    DBAPI connection.
    """
    session = session or db.session
    if session.get_bind().dialect.name != "sqlite":
        return
    dbapi_connection = session.connection().connection.dbapi_connection
    if getattr(dbapi_connection, "in_transaction", False):
        return
    session.execute(text("BEGIN IMMEDIATE"))


def is_transient(exc: Exception) -> bool:
    """Lock, deadlock and stale-row failures are worth retrying; anything else is not."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, OperationalError):
        message = str(getattr(exc, "orig", exc)).lower()
        return any(marker in message for marker in TRANSIENT_MARKERS)
    return False


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None, session=None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    ``func`` must be a complete unit of work (it opens, mutates and commits).
    On every failure the session is rolled back before anything else happens.

    - DomainError: business rule rejected the operation; re-raised untouched.
    - Lock / deadlock / stale-row errors: retried with exponential backoff,
      then surfaced as ConcurrencyConflictError.
    - Any other SQLAlchemy error: wrapped in PersistenceError.
    """
    session = session or db.session
    config = current_app.config
    if attempts is None:
        attempts = int(config.get("RETRY_ATTEMPTS", 3))
    if backoff_base is None:
        backoff_base = float(config.get("RETRY_BACKOFF_BASE", 0.1))
    attempts = max(1, attempts)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except DomainError:
            session.rollback()
            raise
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if not is_transient(exc):
                current_app.logger.exception("Database operation failed")
                raise PersistenceError() from exc
            last_exc = exc
            if attempt >= attempts - 1:
                break
            current_app.logger.warning(
                "Concurrent write conflict (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            session.rollback()
            current_app.logger.exception("Database operation failed")
            raise PersistenceError() from exc
        except Exception:
            session.rollback()
            raise

    raise ConcurrencyConflictError(
        "The record was modified concurrently, please retry",
        details={"attempts": attempts},
    ) from last_exc
