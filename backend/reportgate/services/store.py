"""
Transactional document store over SQLAlchemy.

``Store.run_transaction(fn)`` calls ``fn`` with a ``Transaction`` handle inside a single
database transaction. Everything ``fn`` does commits together or not at all:
``Session.begin()`` rolls back on any exception, cancellation included.

Write contention (locked database, serialization failure, lost unique-key race) aborts
the attempt and ``fn`` is run again from scratch on a fresh session. ``fn`` must
therefore re-read whatever it depends on, which makes retries idempotent.
"""

import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from sqlalchemy import delete, func, inspect, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from reportgate.config import settings
from reportgate.database import BEGIN_IMMEDIATE, SessionLocal
from reportgate.errors import StatusError, from_database_error, internal_server_error

logger = structlog.get_logger()

T = TypeVar("T")

# Errors that mean "another writer got there first", not "the store is broken"
RETRYABLE_ERRORS = (OperationalError, IntegrityError)


class Transaction:
    """Operations scoped to one running transaction."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, model: type[T], key: Any) -> T | None:
        """Read a row by primary key, locking it where the backend supports row locks."""
        return self.session.get(model, key, populate_existing=True, with_for_update=True)

    def set(
        self,
        model: type,
        key: Any,
        values: dict[str, Any],
        *,
        expected: dict[str, Any] | None = None,
    ) -> bool:
        """
        Update a row by primary key.

        If ``expected`` is given, the update only applies while every listed column still
        holds the expected value. Returns True if a row was updated.
        """
        pk = inspect(model).primary_key[0]
        stmt = update(model).where(pk == key)
        for column, value in (expected or {}).items():
            stmt = stmt.where(getattr(model, column) == value)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def create(self, obj: T) -> T:
        """Insert a new row. Key conflicts surface immediately as IntegrityError."""
        self.session.add(obj)
        self.session.flush()
        return obj

    def delete_where(self, model: type, *criteria) -> int:
        """Delete every row matching ``criteria``. Returns the number of rows deleted."""
        stmt = delete(model).where(*criteria).execution_options(synchronize_session=False)
        return self.session.execute(stmt).rowcount


class Store:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        *,
        max_attempts: int | None = None,
        backoff_seconds: float = 0.05,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.transaction_max_attempts
        self.backoff_seconds = backoff_seconds

    def get(self, model: type[T], key: Any) -> T | None:
        try:
            with self.session_factory() as session:
                return session.get(model, key)
        except Exception as e:
            raise from_database_error(e) from e

    def create(self, obj: T) -> T:
        return self.run_transaction(lambda txn: txn.create(obj))

    def count(self, model: type, *criteria) -> int:
        try:
            with self.session_factory() as session:
                return session.scalar(select(func.count()).select_from(model).where(*criteria))
        except Exception as e:
            raise from_database_error(e) from e

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """
        Run ``fn`` atomically, retrying on write contention.

        A ``StatusError`` raised by ``fn`` rolls the transaction back and propagates
        unchanged. Any other failure becomes an internal server error.
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.session_factory() as session:
                    # Results are handed back to callers after the session closes
                    session.expire_on_commit = False
                    with session.begin():
                        session.connection(execution_options={BEGIN_IMMEDIATE: True})
                        return fn(Transaction(session))
            except StatusError:
                raise
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(
                    "transaction_conflict",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error_type=type(e).__name__,
                )
                if attempt < self.max_attempts:
                    time.sleep(self.backoff_seconds * attempt * (1 + random.random()))
            except Exception as e:
                raise from_database_error(e) from e

        logger.error("transaction_retries_exhausted", attempts=self.max_attempts)
        raise internal_server_error(last_error) from last_error
