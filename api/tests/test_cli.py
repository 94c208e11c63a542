"""Tests for the management CLI."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import cli
from services.reconciliation_service import ReconciliationResult
from services.reminder_service import ReminderResult

pytestmark = pytest.mark.unit


@pytest.fixture
def mock_engine():
    with (
        patch("cli.create_engine", return_value=MagicMock()) as create,
        patch("cli.dispose_engine", new_callable=AsyncMock) as dispose,
        patch("cli.configure_logging"),
    ):
        yield create, dispose


class TestCli:
    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "reconcile" in capsys.readouterr().out

    def test_reconcile_success(self, mock_engine):
        result = ReconciliationResult(run_date=date(2024, 1, 1), processed=2)
        with patch(
            "services.reconciliation_service.run_daily_reconciliation",
            new_callable=AsyncMock,
            return_value=result,
        ) as run:
            assert cli.main(["reconcile"]) == 0

        run.assert_awaited_once()
        mock_engine[1].assert_awaited_once()

    def test_reconcile_partial_failure_exit_code(self, mock_engine):
        result = ReconciliationResult(run_date=date(2024, 1, 1), failed_user_ids=[3])
        with patch(
            "services.reconciliation_service.run_daily_reconciliation",
            new_callable=AsyncMock,
            return_value=result,
        ):
            assert cli.main(["reconcile"]) == 1

    def test_engine_disposed_when_job_crashes(self, mock_engine):
        with patch(
            "services.reconciliation_service.run_daily_reconciliation",
            new_callable=AsyncMock,
            side_effect=ConnectionError("db down"),
        ):
            with pytest.raises(ConnectionError):
                cli.main(["reconcile"])

        mock_engine[1].assert_awaited_once()

    def test_send_reminders(self, mock_engine):
        result = ReminderResult(target_date=date(2024, 1, 1), total=2, sent=1, failed=1)
        with patch(
            "services.reminder_service.send_streak_reminders",
            new_callable=AsyncMock,
            return_value=result,
        ) as send:
            assert cli.main(["send-reminders"]) == 1

        send.assert_awaited_once()

    def test_migrate_runs_alembic_upgrade(self, mock_engine):
        with patch("alembic.command.upgrade") as upgrade:
            assert cli.main(["migrate"]) == 0

        cfg, revision = upgrade.call_args.args
        assert revision == "head"
        assert cfg.get_main_option("script_location").endswith("alembic")
