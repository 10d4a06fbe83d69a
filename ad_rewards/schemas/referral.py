from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from ad_rewards.schemas.account import StoreModel


class ReferredUserStats(StoreModel):
    joined_at: Optional[datetime] = Field(None, description="When the referred account joined")
    total_earned: float = Field(0.0, description="Rewards earned by the referred account")
    commission_earned: float = Field(0.0, description="Commission paid to the referrer")


class ReferralRecord(StoreModel):
    """`referrals/{referrerAccountId}`"""

    referred_users: Dict[str, ReferredUserStats] = Field(default_factory=dict)
    referral_earnings: float = Field(0.0, description="Sum of commission over all referred users")
    referred_count: int = Field(0, description="Number of referred users")

    def recompute_totals(self) -> None:
        self.referral_earnings = sum(stats.commission_earned for stats in self.referred_users.values())
        self.referred_count = len(self.referred_users)
