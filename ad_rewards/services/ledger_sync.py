"""
Синхронизация леджера: аккаунты и транзакции из общего хранилища -> PostgreSQL.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Tuple

from pydantic import ValidationError

from ad_rewards.core.config import settings
from ad_rewards.db.session import get_session
from ad_rewards.interfaces.store import IKeyValueStore
from ad_rewards.repositories.ledger import LedgerAccountRepository, LedgerTransactionRepository
from ad_rewards.schemas.account import Account
from ad_rewards.schemas.transaction import Transaction
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


def _batches(items: List, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def collect_snapshots(store: IKeyValueStore) -> Tuple[List[Account], List[Transaction], int]:
    """
    Прочитать все аккаунты и транзакции из хранилища.

    Returns:
        (accounts, transactions, error_count) - нечитаемые записи пропускаются и считаются
    """
    accounts: List[Account] = []
    transactions: List[Transaction] = []
    error_count = 0

    for path in await store.keys("accounts/"):
        account_id = path.split("/", 1)[1]
        try:
            account = Account.from_store(await store.get(path), id=account_id)
        except ValidationError as e:
            error_count += 1
            logger.error(f"Skipping unreadable account {account_id}: {e}")
            continue
        if account is not None:
            accounts.append(account)

    for path in await store.keys("transactions/"):
        transaction_id = path.split("/", 1)[1]
        try:
            transaction = Transaction.from_store(await store.get(path), id=transaction_id)
        except ValidationError as e:
            error_count += 1
            logger.error(f"Skipping unreadable transaction {transaction_id}: {e}")
            continue
        if transaction is not None:
            transactions.append(transaction)

    return accounts, transactions, error_count


async def sync_ledger(
        store: IKeyValueStore,
        dry_run: bool = False,
        batch_size: int = None,
        session_factory: Callable = get_session,
) -> Dict:
    """
    Зеркалировать леджер в PostgreSQL.

    Args:
        store: общее хранилище
        dry_run: только посчитать записи, ничего не писать
        batch_size: размер пакета на одну транзакцию БД

    Returns:
        Dict: Статистика синхронизации
    """
    batch_size = batch_size or settings.LEDGER_SYNC_BATCH_SIZE
    start_time = datetime.now(timezone.utc)
    sync_stats = {
        "start_time": start_time.isoformat(),
        "end_time": None,
        "accounts_found": 0,
        "transactions_found": 0,
        "accounts_updated": 0,
        "accounts_created": 0,
        "transactions_archived": 0,
        "error_count": 0,
        "sync_duration_seconds": 0,
        "status": "failed",
        "dry_run": dry_run,
    }

    accounts, transactions, error_count = await collect_snapshots(store)
    sync_stats.update({
        "accounts_found": len(accounts),
        "transactions_found": len(transactions),
        "error_count": error_count,
    })

    if not dry_run:
        async with session_factory() as session:
            account_repo = LedgerAccountRepository(db=session)
            transaction_repo = LedgerTransactionRepository(db=session)

            for batch in _batches(accounts, batch_size):
                result = await account_repo.sync_accounts(batch)
                sync_stats["accounts_updated"] += result["accounts_updated"]
                sync_stats["accounts_created"] += result["accounts_created"]
                sync_stats["error_count"] += result["error_count"]

            for batch in _batches(transactions, batch_size):
                sync_stats["transactions_archived"] += await transaction_repo.archive_transactions(batch)

    end_time = datetime.now(timezone.utc)
    sync_stats.update({
        "status": "completed" if sync_stats["error_count"] == 0 else "completed_with_errors",
        "end_time": end_time.isoformat(),
        "sync_duration_seconds": (end_time - start_time).total_seconds(),
    })

    if sync_stats["status"] == "completed":
        logger.info(f"Ledger sync completed successfully: {sync_stats}")
    else:
        logger.warning(f"Ledger sync completed with errors: {sync_stats}")
    return sync_stats
