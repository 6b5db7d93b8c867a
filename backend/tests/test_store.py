"""Tests for the transactional store."""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from reportgate.database import Base, build_engine

from reportgate.errors import StatusError, StatusKind, challenge_used
from reportgate.models.challenge import Challenge
from reportgate.services.store import Store
from tests.test_utils import utcnow


def make_challenge(nonce: str = "ab" * 32) -> Challenge:
    now = utcnow()
    return Challenge(nonce=nonce, work_factor=8, issued_at=now, expires_at=now, consumed=False)


class TestRunTransaction:
    def test_commits_on_success(self, store):
        store.run_transaction(lambda txn: txn.create(make_challenge()))
        assert store.get(Challenge, "ab" * 32) is not None

    def test_returns_detached_but_loaded_objects(self, store):
        challenge = store.create(make_challenge())
        assert challenge.nonce == "ab" * 32
        assert challenge.work_factor == 8

    def test_status_error_rolls_back_and_propagates(self, store):
        def fn(txn):
            txn.create(make_challenge())
            raise challenge_used()

        with pytest.raises(StatusError) as exc_info:
            store.run_transaction(fn)

        assert exc_info.value.kind is StatusKind.BAD_REQUEST
        assert store.get(Challenge, "ab" * 32) is None

    def test_unexpected_exception_becomes_internal_and_rolls_back(self, store):
        def fn(txn):
            txn.create(make_challenge())
            raise RuntimeError("boom")

        with pytest.raises(StatusError) as exc_info:
            store.run_transaction(fn)

        assert exc_info.value.kind is StatusKind.INTERNAL_SERVER_ERROR
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert store.get(Challenge, "ab" * 32) is None

    def test_retries_contention_then_succeeds(self, store):
        attempts = []

        def fn(txn):
            attempts.append(1)
            if len(attempts) < 3:
                raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return txn.create(make_challenge())

        store.run_transaction(fn)

        assert len(attempts) == 3
        assert store.get(Challenge, "ab" * 32) is not None

    def test_exhausted_retries_become_internal(self, session_factory):
        store = Store(session_factory, max_attempts=2, backoff_seconds=0)
        attempts = []

        def fn(txn):
            attempts.append(1)
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        with pytest.raises(StatusError) as exc_info:
            store.run_transaction(fn)

        assert len(attempts) == 2
        assert exc_info.value.kind is StatusKind.INTERNAL_SERVER_ERROR
        assert isinstance(exc_info.value.cause, OperationalError)

    def test_duplicate_key_is_retried_as_contention(self, store):
        store.create(make_challenge())

        with pytest.raises(StatusError) as exc_info:
            store.run_transaction(lambda txn: txn.create(make_challenge()))

        assert exc_info.value.kind is StatusKind.INTERNAL_SERVER_ERROR
        assert isinstance(exc_info.value.cause, IntegrityError)


class TestTransactionHandle:
    def test_get_missing_returns_none(self, store):
        assert store.run_transaction(lambda txn: txn.get(Challenge, "cd" * 32)) is None

    def test_conditional_set_applies_when_expected_matches(self, store):
        store.create(make_challenge())

        updated = store.run_transaction(
            lambda txn: txn.set(
                Challenge, "ab" * 32, {"consumed": True}, expected={"consumed": False}
            )
        )

        assert updated is True
        assert store.get(Challenge, "ab" * 32).consumed is True

    def test_conditional_set_skips_when_expected_differs(self, store):
        store.create(make_challenge())
        store.run_transaction(lambda txn: txn.set(Challenge, "ab" * 32, {"consumed": True}))

        updated = store.run_transaction(
            lambda txn: txn.set(
                Challenge, "ab" * 32, {"work_factor": 1}, expected={"consumed": False}
            )
        )

        assert updated is False
        assert store.get(Challenge, "ab" * 32).work_factor == 8

    def test_set_missing_row_returns_false(self, store):
        assert store.run_transaction(
            lambda txn: txn.set(Challenge, "cd" * 32, {"consumed": True})
        ) is False

    def test_delete_where_removes_matching_rows(self, store):
        store.create(make_challenge("ab" * 32))
        store.create(make_challenge("cd" * 32))

        deleted = store.run_transaction(
            lambda txn: txn.delete_where(Challenge, Challenge.nonce == "ab" * 32)
        )

        assert deleted == 1
        assert store.get(Challenge, "ab" * 32) is None
        assert store.get(Challenge, "cd" * 32) is not None

    def test_delete_where_without_matches(self, store):
        assert store.run_transaction(
            lambda txn: txn.delete_where(Challenge, Challenge.nonce == "ef" * 32)
        ) == 0


class TestWriteLock:
    """Only transactions queue behind a writer; plain reads do not."""

    @pytest.fixture
    def store_behind_writer(self, tmp_path):
        path = tmp_path / "locks.db"
        engine = build_engine(f"sqlite:///{path}", busy_timeout=0.1)
        Base.metadata.create_all(bind=engine)
        session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        store = Store(session_factory, max_attempts=1, backoff_seconds=0)
        store.create(make_challenge())

        writer = sqlite3.connect(path, isolation_level=None)
        writer.execute("BEGIN IMMEDIATE")
        try:
            yield store
        finally:
            writer.execute("ROLLBACK")
            writer.close()
            engine.dispose()

    def test_reads_proceed_while_write_lock_is_held(self, store_behind_writer):
        assert store_behind_writer.get(Challenge, "ab" * 32) is not None
        assert store_behind_writer.count(Challenge) == 1

    def test_transactions_wait_for_write_lock(self, store_behind_writer):
        with pytest.raises(StatusError) as exc_info:
            store_behind_writer.run_transaction(lambda txn: txn.get(Challenge, "ab" * 32))

        assert exc_info.value.kind is StatusKind.INTERNAL_SERVER_ERROR
        assert isinstance(exc_info.value.cause, OperationalError)
