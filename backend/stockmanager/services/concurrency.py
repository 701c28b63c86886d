# Overview: Service-layer primitives for atomic units, row locking and caller-side retry.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, StockManagerError, UnexpectedError
from ..extensions import db


logger = logging.getLogger(__name__)

# Lock waits, serialization failures and deadlocks (SQLite / PostgreSQL)
CONTENTION_MESSAGES = ("database is locked", "database table is locked", "database is busy")
CONTENTION_SQLSTATES = ("40001", "40P01", "55P03")

# Unique constraints that only collide when two writers race for the same
# sale number; SQLite reports the columns instead of the constraint name.
RACE_CONSTRAINTS = (
    "uq_sale_sequences_seller_date",
    "sale_sequences.seller_id, sale_sequences.sequence_date",
    "uq_sales_seller_sale_number",
    "sales.seller_id, sales.sale_number",
)


def is_contention(exc: Exception) -> bool:
    """
    True when exc means "lost a race against another writer".

    Everything else (missing tables, lost connections, full disk, ordinary
    constraint violations) is a storage fault and must not be retried.
    """
    if isinstance(exc, StaleDataError):
        return True
    orig = getattr(exc, "orig", None)
    message = str(orig if orig is not None else exc).lower()
    if isinstance(exc, OperationalError):
        sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if sqlstate in CONTENTION_SQLSTATES:
            return True
        return any(marker in message for marker in CONTENTION_MESSAGES)
    if isinstance(exc, IntegrityError):
        return any(marker in message for marker in RACE_CONSTRAINTS)
    return False


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_serialized() covers it.
    """
    return query.with_for_update()


def begin_serialized() -> None:
    """
    Start the current unit as a write transaction.

    SQLite has no row locks, so the read-check-write sequence of the ledger
    is serialized by taking the database write lock up front (BEGIN IMMEDIATE).
    Must be the first statement of the unit; a no-op when a transaction is
    already open on the connection or on other dialects.
    """
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.dbapi_connection
    if not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


@contextmanager
def atomic(*, commit: bool = True):
    """
    One all-or-nothing unit of work on db.session.

    - Success: commit (or flush only, when commit=False so an outer unit owns it)
    - Any failure: rollback, then re-raise as a typed error:
        StockManagerError                          -> unchanged
        contention (see is_contention)             -> ConflictError
        any other exception                        -> UnexpectedError
    """
    try:
        yield
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except StockManagerError:
        if commit:
            db.session.rollback()
        raise
    except (OperationalError, StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        if not is_contention(exc):
            logger.error("Storage fault in atomic unit: %s", exc)
            raise UnexpectedError(str(exc), details={"reason": exc.__class__.__name__}) from exc
        raise ConflictError(
            "Concurrent update conflict; retry the operation",
            details={"reason": exc.__class__.__name__},
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Storage fault in atomic unit: %s", exc)
        raise UnexpectedError(str(exc), details={"reason": exc.__class__.__name__}) from exc
    except Exception as exc:
        db.session.rollback()
        logger.exception("Unexpected failure in atomic unit")
        raise UnexpectedError(str(exc), details={"reason": exc.__class__.__name__}) from exc


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Caller-side retry policy: re-run the whole operation on ConflictError.

    Safe because a failed unit never leaves partial effects behind.
    """
    for attempt in range(attempts):
        try:
            return func()
        except ConflictError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Conflict on attempt %d/%d, retrying: %s",
                attempt + 1, attempts, exc.details.get("reason"),
            )
            time.sleep(backoff_base * (2 ** attempt))
