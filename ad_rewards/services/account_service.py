from datetime import datetime
from typing import Optional

from ad_rewards.core.exceptions import CustomException, DuplicateObjectException, ObjectNotFoundException
from ad_rewards.interfaces.store import IKeyValueStore
from ad_rewards.schemas.account import Account, AccountCreate
from ad_rewards.schemas.referral import ReferralRecord, ReferredUserStats
from ad_rewards.services.referral_commission import referral_path
from ad_rewards.services.reward_ledger import account_path
from ad_rewards.utils.clock import utcnow
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


class AccountService:
    def __init__(self, store: IKeyValueStore):
        self.store = store

    async def get(self, account_id: str, now: datetime = None) -> Account:
        """Снимок аккаунта; счётчик просмотров за прошлый день читается как 0."""
        account = Account.from_store(await self.store.get(account_path(account_id)), id=account_id)
        if account is None:
            raise ObjectNotFoundException(f"Account {account_id} not found")
        account.ads_watched_today = account.watched_today_at(now or utcnow())
        return account

    async def exists(self, account_id: str) -> bool:
        return await self.store.get(account_path(account_id)) is not None

    async def register(self, account_in: AccountCreate, now: datetime = None) -> Account:
        now = now or utcnow()
        if await self.exists(account_in.id):
            raise DuplicateObjectException(f"Account {account_in.id} already exists")

        referred_by = account_in.referred_by
        if referred_by == account_in.id:
            raise CustomException("An account cannot refer itself")
        if referred_by and not await self.exists(referred_by):
            logger.warning(f"Referrer {referred_by} of new account {account_in.id} not found, ignoring")
            referred_by = None

        account = Account(
            id=account_in.id,
            username=account_in.username,
            referred_by=referred_by,
            joined_at=now,
        )
        await self.store.set(account_path(account.id), account.to_store())

        if referred_by:
            record = await self.referrals(referred_by)
            record.referred_users.setdefault(account.id, ReferredUserStats(joined_at=now))
            record.recompute_totals()
            await self.store.update({referral_path(referred_by): record.to_store()})
            logger.info(f"Account {account.id} registered, referred by {referred_by}")
        else:
            logger.info(f"Account {account.id} registered")

        return account

    async def referrals(self, account_id: str) -> ReferralRecord:
        data: Optional[dict] = await self.store.get(referral_path(account_id))
        return ReferralRecord.from_store(data) or ReferralRecord()
