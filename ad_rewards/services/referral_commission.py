"""
Начисление реферальной комиссии пригласившему аккаунту.
"""

from datetime import datetime

from ad_rewards.core.config import settings
from ad_rewards.core.exceptions import ReferrerLookupFailed, StoreError
from ad_rewards.interfaces.store import IKeyValueStore
from ad_rewards.schemas.account import Account
from ad_rewards.schemas.referral import ReferralRecord, ReferredUserStats
from ad_rewards.schemas.transaction import Transaction, TransactionType
from ad_rewards.services.reward_ledger import account_path
from ad_rewards.utils.clock import utcnow
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


def referral_path(referrer_id: str) -> str:
    return f"referrals/{referrer_id}"


class ReferralCommissionPropagator:
    """
    Best-effort: any failure is logged and reported as False, the referred
    account's own credit is never touched.
    """

    def __init__(self, store: IKeyValueStore, rate: float = None):
        self.store = store
        self.rate = settings.REFERRAL_COMMISSION_RATE if rate is None else rate

    def commission_for(self, earned_amount: float) -> float:
        return earned_amount * self.rate

    async def propagate(self, referred_account_id: str, earned_amount: float, now: datetime = None) -> bool:
        now = now or utcnow()
        try:
            return await self._propagate(referred_account_id, earned_amount, now)
        except ReferrerLookupFailed as exc:
            logger.warning(f"Referral commission for {referred_account_id} skipped: {exc.detail}")
        except StoreError as exc:
            logger.error(f"Referral commission for {referred_account_id} failed: {exc}")
        return False

    async def _propagate(self, referred_account_id: str, earned_amount: float, now: datetime) -> bool:
        referred = Account.from_store(
            await self.store.get(account_path(referred_account_id)), id=referred_account_id
        )
        if referred is None:
            raise ReferrerLookupFailed(detail=f"Referred account {referred_account_id} not found")
        if not referred.referred_by:
            return False

        referrer_id = referred.referred_by
        referrer = Account.from_store(await self.store.get(account_path(referrer_id)), id=referrer_id)
        if referrer is None:
            raise ReferrerLookupFailed(detail=f"Referrer {referrer_id} not found")

        commission = self.commission_for(earned_amount)

        await self.store.update({
            account_path(referrer_id): {
                "balance": referrer.balance + commission,
                "totalEarned": referrer.total_earned + commission,
            }
        })

        record = ReferralRecord.from_store(await self.store.get(referral_path(referrer_id))) or ReferralRecord()
        stats = record.referred_users.get(referred_account_id)
        if stats is None:
            stats = ReferredUserStats(joined_at=referred.joined_at or now)
            record.referred_users[referred_account_id] = stats
        elif stats.joined_at is None:
            stats.joined_at = referred.joined_at or now
        stats.total_earned += earned_amount
        stats.commission_earned += commission
        record.recompute_totals()
        await self.store.update({referral_path(referrer_id): record.to_store()})

        transaction = Transaction(
            account_id=referrer_id,
            type=TransactionType.REFERRAL_COMMISSION,
            amount=commission,
            description=f"Referral commission from {referred.username or referred_account_id}",
            created_at=now,
        )
        transaction_id = await self.store.append("transactions", transaction.to_store(exclude={"id"}))

        logger.info(
            f"Referral commission {commission} paid to {referrer_id} "
            f"for {referred_account_id} (transaction {transaction_id})"
        )
        return True
