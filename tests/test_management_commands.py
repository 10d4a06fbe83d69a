"""
Тесты management команд: сброс счётчиков и синхронизация леджера.
"""

from unittest.mock import AsyncMock, patch
from click.testing import CliRunner

from ad_rewards.management.commands.reset_counters import reset_counters
from ad_rewards.management.commands.sync_ledger import sync_ledger


class TestResetCountersCommand:
    """Тесты команды reset_counters."""

    def test_reset_performed(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.reset_counters._reset_counters_async", new_callable=AsyncMock
        ) as mock_reset:
            mock_reset.return_value = {
                "performed": True, "records_reset": 12, "reset_date": "2024-05-10", "error": None,
            }

            result = runner.invoke(reset_counters, ["--force"])

            assert result.exit_code == 0
            assert "Counters reset for 2024-05-10: 12 watch records" in result.output
            mock_reset.assert_called_once_with(True, False)

    def test_reset_not_due(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.reset_counters._reset_counters_async", new_callable=AsyncMock
        ) as mock_reset:
            mock_reset.return_value = {
                "performed": False, "records_reset": 0, "reset_date": "2024-05-10", "error": None,
            }

            result = runner.invoke(reset_counters)

            assert result.exit_code == 0
            assert "Reset not due" in result.output

    def test_dry_run(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.reset_counters._reset_counters_async", new_callable=AsyncMock
        ) as mock_reset:
            mock_reset.return_value = {"last_reset_date": "2024-05-09", "due": True, "records": 3}

            result = runner.invoke(reset_counters, ["--dry-run"])

            assert result.exit_code == 0
            assert "DRY RUN" in result.output
            assert "3 watch records would be reset" in result.output
            mock_reset.assert_called_once_with(False, True)

    def test_store_failure(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.reset_counters._reset_counters_async", new_callable=AsyncMock
        ) as mock_reset:
            mock_reset.return_value = {
                "performed": False, "records_reset": 0, "reset_date": None, "error": "connection refused",
            }

            result = runner.invoke(reset_counters)

            assert result.exit_code == 1
            assert "connection refused" in result.output


class TestSyncLedgerCommand:
    """Тесты команды sync_ledger."""

    def test_sync_completed(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.sync_ledger._sync_ledger_async", new_callable=AsyncMock
        ) as mock_sync:
            mock_sync.return_value = {
                "status": "completed",
                "accounts_created": 2,
                "accounts_updated": 5,
                "transactions_archived": 9,
                "error_count": 0,
            }

            result = runner.invoke(sync_ledger)

            assert result.exit_code == 0
            assert "2 accounts created, 5 updated, 9 transactions archived" in result.output
            mock_sync.assert_called_once_with(False)

    def test_sync_with_errors_verbose(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.sync_ledger._sync_ledger_async", new_callable=AsyncMock
        ) as mock_sync:
            mock_sync.return_value = {"status": "completed_with_errors", "error_count": 3}

            result = runner.invoke(sync_ledger, ["--verbose"])

            assert result.exit_code == 0
            assert "Ledger synchronized with 3 errors" in result.output
            assert "status: completed_with_errors" in result.output

    def test_dry_run(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.sync_ledger._sync_ledger_async", new_callable=AsyncMock
        ) as mock_sync:
            mock_sync.return_value = {"accounts_found": 4, "transactions_found": 10}

            result = runner.invoke(sync_ledger, ["--dry-run"])

            assert result.exit_code == 0
            assert "DRY RUN - 4 accounts and 10 transactions would be synced" in result.output
            mock_sync.assert_called_once_with(True)

    def test_exception(self):
        runner = CliRunner()

        with patch(
            "ad_rewards.management.commands.sync_ledger._sync_ledger_async", new_callable=AsyncMock
        ) as mock_sync:
            mock_sync.side_effect = RuntimeError("database is down")

            result = runner.invoke(sync_ledger)

            assert result.exit_code == 1
            assert "database is down" in result.output
