"""Tests for services/reconciliation_service.py - the nightly placeholder sweep."""

from contextlib import asynccontextmanager
from datetime import date
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from services.reconciliation_service import (
    ReconciliationResult,
    run_daily_reconciliation,
)
from services.streaks_service import StreakOutcome, StreakUpdateError
from tests.fakes import FixedClock

pytestmark = pytest.mark.unit

TODAY = date(2024, 4, 15)


class FakeSessionMaker:
    """Stands in for async_sessionmaker; records every session it opens."""

    def __init__(self):
        self.sessions: list[MagicMock] = []

    @asynccontextmanager
    async def _session(self):
        db = MagicMock()
        db.commit = AsyncMock()
        self.sessions.append(db)
        yield db

    def __call__(self):
        return self._session()


@pytest.fixture
def session_maker() -> FakeSessionMaker:
    return FakeSessionMaker()


@pytest.fixture
def user_ids(monkeypatch) -> list[int]:
    ids = [1, 2, 3]
    repo = MagicMock()
    repo.list_all_ids = AsyncMock(return_value=ids)
    monkeypatch.setattr(
        "services.reconciliation_service.UserRepository",
        MagicMock(return_value=repo),
    )
    return ids


class TestReconciliationResult:
    def test_ok_without_failures(self):
        assert ReconciliationResult(run_date=TODAY, processed=3).ok is True

    def test_not_ok_with_failures(self):
        result = ReconciliationResult(run_date=TODAY, failed_user_ids=[4])
        assert result.ok is False


class TestRunDailyReconciliation:
    async def test_creates_placeholder_for_every_user(
        self, monkeypatch, session_maker, user_ids
    ):
        mock_record = AsyncMock(return_value=StreakOutcome.PLACEHOLDER_CREATED)
        monkeypatch.setattr("services.reconciliation_service.record_activity", mock_record)
        clock = FixedClock(TODAY)

        result = await run_daily_reconciliation(session_maker, clock)

        assert result.ok
        assert result.run_date == TODAY
        assert result.processed == 3
        assert result.created == 3
        called = [(c.args[1], c.args[2], c.kwargs["is_cron"]) for c in mock_record.await_args_list]
        assert called == [(1, TODAY, True), (2, TODAY, True), (3, TODAY, True)]

    async def test_each_user_gets_own_committed_session(
        self, monkeypatch, session_maker, user_ids
    ):
        monkeypatch.setattr(
            "services.reconciliation_service.record_activity",
            AsyncMock(return_value=StreakOutcome.PLACEHOLDER_CREATED),
        )

        await run_daily_reconciliation(session_maker, FixedClock(TODAY))

        # One session to list users, then one per user
        assert len(session_maker.sessions) == 4
        for db in session_maker.sessions[1:]:
            db.commit.assert_awaited_once()

    async def test_existing_records_are_processed_not_created(
        self, monkeypatch, session_maker, user_ids
    ):
        monkeypatch.setattr(
            "services.reconciliation_service.record_activity",
            AsyncMock(
                side_effect=[
                    StreakOutcome.PLACEHOLDER_CREATED,
                    StreakOutcome.PLACEHOLDER_EXISTS,
                    StreakOutcome.PLACEHOLDER_EXISTS,
                ]
            ),
        )

        result = await run_daily_reconciliation(session_maker, FixedClock(TODAY))

        assert result.processed == 3
        assert result.created == 1

    async def test_failure_is_collected_and_sweep_continues(
        self, monkeypatch, session_maker, user_ids
    ):
        mock_record = AsyncMock(
            side_effect=[
                StreakOutcome.PLACEHOLDER_CREATED,
                StreakUpdateError(2, TODAY),
                StreakOutcome.PLACEHOLDER_CREATED,
            ]
        )
        monkeypatch.setattr("services.reconciliation_service.record_activity", mock_record)

        result = await run_daily_reconciliation(session_maker, FixedClock(TODAY))

        assert not result.ok
        assert result.failed_user_ids == [2]
        assert result.processed == 2
        assert mock_record.await_count == 3
        # The failed user's session was never committed
        session_maker.sessions[2].commit.assert_not_awaited()

    async def test_commit_failure_counts_as_user_failure(
        self, monkeypatch, session_maker, user_ids
    ):
        monkeypatch.setattr(
            "services.reconciliation_service.record_activity",
            AsyncMock(return_value=StreakOutcome.PLACEHOLDER_CREATED),
        )

        original = session_maker._session

        @asynccontextmanager
        async def failing_for_third():
            async with original() as db:
                if len(session_maker.sessions) == 4:
                    db.commit.side_effect = ConnectionError("lost connection")
                yield db

        session_maker._session = failing_for_third

        result = await run_daily_reconciliation(session_maker, FixedClock(TODAY))

        assert result.failed_user_ids == [3]

    async def test_date_computed_once_for_whole_sweep(
        self, monkeypatch, session_maker, user_ids
    ):
        clock = FixedClock(TODAY)
        seen: list[date] = []

        async def record_and_cross_midnight(db, user_id, day, is_cron, clock):
            seen.append(day)
            clock.advance()
            return StreakOutcome.PLACEHOLDER_CREATED

        monkeypatch.setattr(
            "services.reconciliation_service.record_activity", record_and_cross_midnight
        )

        await run_daily_reconciliation(session_maker, clock)

        assert seen == [TODAY, TODAY, TODAY]

    async def test_no_users(self, monkeypatch, session_maker):
        repo = MagicMock()
        repo.list_all_ids = AsyncMock(return_value=[])
        monkeypatch.setattr(
            "services.reconciliation_service.UserRepository",
            MagicMock(return_value=repo),
        )
        mock_record = AsyncMock()
        monkeypatch.setattr("services.reconciliation_service.record_activity", mock_record)

        result = await run_daily_reconciliation(session_maker, FixedClock(TODAY))

        assert result == ReconciliationResult(run_date=TODAY)
        mock_record.assert_not_awaited()

    async def test_passes_clock_through(self, monkeypatch, session_maker, user_ids):
        mock_record = AsyncMock(return_value=StreakOutcome.PLACEHOLDER_EXISTS)
        monkeypatch.setattr("services.reconciliation_service.record_activity", mock_record)
        clock = FixedClock(TODAY)

        await run_daily_reconciliation(session_maker, clock)

        assert mock_record.await_args_list[0] == call(
            session_maker.sessions[1], 1, TODAY, is_cron=True, clock=clock
        )
