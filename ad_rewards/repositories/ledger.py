"""
Зеркалирование аккаунтов и транзакций из общего хранилища в PostgreSQL.
"""

from datetime import datetime, timezone
from typing import Dict, List

from ad_rewards.models.ledger import LedgerAccount, LedgerTransaction
from ad_rewards.repositories.sqlalchemy import BaseSQLAlchemyRepository
from ad_rewards.schemas.account import Account
from ad_rewards.schemas.transaction import Transaction
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


class LedgerAccountRepository(BaseSQLAlchemyRepository[LedgerAccount]):
    _model = LedgerAccount

    async def sync_accounts(self, snapshots: List[Account]) -> Dict[str, int]:
        """
        Обновить или создать строки `accounts` по снимкам из хранилища.

        Returns:
            dict: accounts_updated, accounts_created, error_count
        """
        sync_time = datetime.now(timezone.utc)
        existing = {
            row.account_id: row
            for row in await self.existing("account_id", [snapshot.id for snapshot in snapshots])
        }

        updated_count = 0
        created_count = 0
        error_count = 0

        for snapshot in snapshots:
            try:
                row = existing.get(snapshot.id)
                if row is None:
                    row = LedgerAccount(account_id=snapshot.id)
                    created_count += 1
                else:
                    updated_count += 1
                row.username = snapshot.username
                row.balance = snapshot.balance
                row.total_earned = snapshot.total_earned
                row.total_withdrawn = snapshot.total_withdrawn
                row.referred_by = snapshot.referred_by
                row.last_ad_watch = snapshot.last_ad_watch
                row.joined_at = snapshot.joined_at
                row.sync_at = sync_time
                self.db.add(row)
            except (ValueError, TypeError) as e:
                error_count += 1
                logger.error(f"Error mirroring account {snapshot.id}: {e}")

        await self.commit("account synchronization")

        result = {
            "accounts_updated": updated_count,
            "accounts_created": created_count,
            "error_count": error_count,
        }
        logger.info(f"Ledger account synchronization completed: {result}")
        return result


class LedgerTransactionRepository(BaseSQLAlchemyRepository[LedgerTransaction]):
    _model = LedgerTransaction

    async def archive_transactions(self, records: List[Transaction]) -> int:
        """Вставить транзакции, которых ещё нет в архиве (по ID хранилища)."""
        known = {
            row.store_id
            for row in await self.existing("store_id", [record.id for record in records if record.id])
        }

        archived = 0
        for record in records:
            if not record.id or record.id in known:
                continue
            self.db.add(LedgerTransaction(
                store_id=record.id,
                account_id=record.account_id,
                amount=record.amount,
                type=record.type.value,
                status=record.status.value,
                description=record.description,
                timestamp=record.created_at,
            ))
            known.add(record.id)
            archived += 1

        await self.commit("transaction archiving")

        logger.info(f"Archived {archived} of {len(records)} transactions")
        return archived
