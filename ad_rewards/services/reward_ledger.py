"""
Сервис начисления наград за просмотр рекламы.
"""

from datetime import datetime

from ad_rewards.core.exceptions import StoreError
from ad_rewards.interfaces.store import IKeyValueStore
from ad_rewards.schemas.account import Account
from ad_rewards.schemas.transaction import Transaction, TransactionType
from ad_rewards.schemas.watch import CreditResult, WatchRecord
from ad_rewards.utils.clock import utcnow
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


def account_path(account_id: str) -> str:
    return f"accounts/{account_id}"


def watch_record_path(account_id: str, provider_id: str) -> str:
    return f"watchRecords/{account_id}/{provider_id}"


class RewardLedger:
    """Сервис для зачисления наград на баланс аккаунта."""

    def __init__(self, store: IKeyValueStore):
        self.store = store

    async def get_watch_record(self, account_id: str, provider_id: str) -> WatchRecord:
        """Запись просмотров провайдера; отсутствующая запись читается как пустая."""
        data = await self.store.get(watch_record_path(account_id, provider_id))
        return WatchRecord.from_store(data) or WatchRecord()

    async def credit(
            self,
            account_id: str,
            provider_id: str,
            reward: float,
            now: datetime = None,
            daily_limit: int = 0,
    ) -> CreditResult:
        """
        Зачислить награду за завершённый просмотр.

        Порядок записи:
        1. `watchedToday` атомарно увеличивается и сверяется с `daily_limit`
           (превышение откатывается и возвращается как daily_limit_reached);
        2. поля аккаунта пишутся одним пакетом;
        3. добавляется транзакция `earn`;
        4. в записи просмотров обновляется `lastWatched`.

        Ранее выполненные шаги при ошибке не откатываются.
        """
        now = now or utcnow()
        record_path = watch_record_path(account_id, provider_id)

        try:
            account = Account.from_store(await self.store.get(account_path(account_id)), id=account_id)
            if account is None:
                logger.error(f"Credit for {account_id}/{provider_id} rejected: account not found")
                return CreditResult.failed(f"Account {account_id} not found", error_code="account_not_found")

            record = WatchRecord.from_store(await self.store.get(record_path)) or WatchRecord()
            if record.last_reset is None or record.is_stale(now):
                await self.store.update({record_path: {"watchedToday": 0, "lastReset": now.isoformat()}})

            watched_today = int(await self.store.increment(record_path, "watchedToday", 1))
            if daily_limit > 0 and watched_today > daily_limit:
                await self.store.increment(record_path, "watchedToday", -1)
                logger.info(f"Credit for {account_id}/{provider_id} rejected: daily limit {daily_limit} reached")
                return CreditResult.failed(
                    "Daily limit reached. Come back tomorrow for more ads!",
                    error_code="daily_limit_reached",
                )

            await self.store.update({
                account_path(account_id): {
                    "balance": account.balance + reward,
                    "totalEarned": account.total_earned + reward,
                    "adsWatchedToday": account.watched_today_at(now) + 1,
                    "lastAdWatch": now.isoformat(),
                }
            })

            transaction = Transaction(
                account_id=account_id,
                type=TransactionType.EARN,
                amount=reward,
                description=f"Ad reward from {provider_id}",
                created_at=now,
            )
            transaction_id = await self.store.append("transactions", transaction.to_store(exclude={"id"}))

            await self.store.update({record_path: {"lastWatched": now.isoformat()}})
        except StoreError as exc:
            logger.error(f"Failed to credit {reward} to {account_id} for {provider_id}: {exc}")
            return CreditResult.failed(f"Failed to record reward: {exc}")

        logger.info(
            f"Credited {reward} to {account_id} for {provider_id} "
            f"(transaction {transaction_id}, watched today {watched_today})"
        )
        return CreditResult(
            ok=True,
            amount=reward,
            transaction_id=transaction_id,
            watched_today=watched_today,
        )
