"""
Тесты зеркалирования леджера в PostgreSQL.
"""

from contextlib import asynccontextmanager

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.exc import OperationalError

from ad_rewards.core.exceptions import DatabaseException
from ad_rewards.models.ledger import LedgerAccount, LedgerTransaction
from ad_rewards.repositories.ledger import LedgerAccountRepository, LedgerTransactionRepository
from ad_rewards.schemas.account import Account
from ad_rewards.schemas.transaction import Transaction, TransactionType
from ad_rewards.services.ledger_sync import collect_snapshots, sync_ledger

from conftest import NOW, InMemoryStore, make_account


def mock_db(rows=()):
    """Мок AsyncSession: execute() -> result.scalars().all() == rows."""
    db = MagicMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(rows)
    db.execute = AsyncMock(return_value=result)
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def store():
    return InMemoryStore({
        "accounts/42": make_account("42", username="bob", balance=1.5, totalEarned=1.5),
        "accounts/100": make_account("100", username="alice"),
        "accounts/broken": {"balance": "lots"},
        "transactions/1": {
            "accountId": "42", "type": "earn", "amount": 0.5, "createdAt": NOW.isoformat(),
        },
    })


class TestCollectSnapshots:
    @pytest.mark.asyncio
    async def test_unreadable_records_are_counted(self, store):
        accounts, transactions, error_count = await collect_snapshots(store)

        assert sorted(account.id for account in accounts) == ["100", "42"]
        assert [transaction.id for transaction in transactions] == ["1"]
        assert error_count == 1


class TestSyncLedger:
    @pytest.fixture
    def session(self):
        return MagicMock()

    @pytest.fixture
    def session_factory(self, session):
        @asynccontextmanager
        async def factory():
            yield session

        return factory

    @pytest.mark.asyncio
    async def test_dry_run_does_not_open_session(self, store):
        session_factory = MagicMock()

        stats = await sync_ledger(store, dry_run=True, session_factory=session_factory)

        session_factory.assert_not_called()
        assert stats["accounts_found"] == 2
        assert stats["transactions_found"] == 1
        assert stats["dry_run"] is True
        assert stats["status"] == "completed_with_errors"

    @pytest.mark.asyncio
    @patch("ad_rewards.services.ledger_sync.LedgerTransactionRepository")
    @patch("ad_rewards.services.ledger_sync.LedgerAccountRepository")
    async def test_sync_in_batches(self, mock_account_repo, mock_transaction_repo, store, session, session_factory):
        # Настраиваем моки репозиториев
        mock_account_repo.return_value.sync_accounts = AsyncMock(
            return_value={"accounts_updated": 0, "accounts_created": 1, "error_count": 0}
        )
        mock_transaction_repo.return_value.archive_transactions = AsyncMock(return_value=1)
        del store.data["accounts/broken"]

        stats = await sync_ledger(store, batch_size=1, session_factory=session_factory)

        mock_account_repo.assert_called_once_with(db=session)
        assert mock_account_repo.return_value.sync_accounts.await_count == 2
        assert stats["accounts_created"] == 2
        assert stats["transactions_archived"] == 1
        assert stats["status"] == "completed"
        assert stats["end_time"] is not None


class TestLedgerAccountRepository:
    @pytest.mark.asyncio
    async def test_creates_and_updates_rows(self):
        existing = LedgerAccount(account_id="42", balance=0)
        db = mock_db([existing])
        repo = LedgerAccountRepository(db=db)

        result = await repo.sync_accounts([
            Account(id="42", balance=2.0, total_earned=2.0),
            Account(id="7", username="new"),
        ])

        assert result == {"accounts_updated": 1, "accounts_created": 1, "error_count": 0}
        assert existing.balance == 2.0
        assert existing.sync_at is not None
        assert db.add.call_count == 2
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_failure(self):
        db = mock_db()
        db.commit.side_effect = OperationalError("COMMIT", {}, Exception("gone"))
        repo = LedgerAccountRepository(db=db)

        with pytest.raises(DatabaseException):
            await repo.sync_accounts([Account(id="42")])

        db.rollback.assert_awaited_once()


class TestLedgerTransactionRepository:
    @pytest.mark.asyncio
    async def test_skips_already_archived(self):
        db = mock_db([LedgerTransaction(store_id="1", account_id="42", amount=0.5, type="earn")])
        repo = LedgerTransactionRepository(db=db)

        archived = await repo.archive_transactions([
            Transaction(id="1", account_id="42", type=TransactionType.EARN, amount=0.5, created_at=NOW),
            Transaction(id="2", account_id="100", type=TransactionType.REFERRAL_COMMISSION, amount=0.05, created_at=NOW),
        ])

        assert archived == 1
        added = db.add.call_args[0][0]
        assert added.store_id == "2"
        assert added.type == "referral_commission"


class TestBaseRepository:
    @pytest.mark.asyncio
    async def test_find(self):
        row = LedgerAccount(account_id="42")
        db = mock_db()
        db.execute.return_value.scalars.return_value.first.return_value = row
        repo = LedgerAccountRepository(db=db)

        assert await repo.find(account_id="42") is row

    @pytest.mark.asyncio
    async def test_existing_without_values_skips_query(self):
        db = mock_db()
        repo = LedgerTransactionRepository(db=db)

        assert await repo.existing("store_id", []) == []
        db.execute.assert_not_called()
