from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ad_rewards.utils.clock import same_reference_day


class StoreModel(BaseModel):
    """Base for records kept in the shared store under camelCase field names."""

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel

    def to_store(self, **kwargs) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", **kwargs)

    @classmethod
    def from_store(cls, data: Optional[Dict[str, Any]], **extra):
        if data is None:
            return None
        return cls.model_validate({**data, **extra})


class Account(StoreModel):
    """
    Аккаунт пользователя: `accounts/{accountId}`.

    - balance           float - текущий баланс (>= 0)
    - total_earned      float - заработано за всё время
    - total_withdrawn   float - выведено за всё время
    - ads_watched_today int - просмотров рекламы за текущий день
    - last_ad_watch     datetime - время последнего просмотра
    - referred_by       str - ID пригласившего аккаунта
    """

    id: str = Field(..., description="Account identity")
    username: Optional[str] = Field(default=None, description="Display name")
    balance: float = Field(default=0.0, ge=0, description="Current balance")
    total_earned: float = Field(default=0.0, description="Lifetime earnings")
    total_withdrawn: float = Field(default=0.0, description="Lifetime withdrawals")
    ads_watched_today: int = Field(default=0, description="Ads watched today")
    last_ad_watch: Optional[datetime] = Field(default=None, description="Last completed watch")
    referred_by: Optional[str] = Field(default=None, description="Referrer account ID")
    joined_at: Optional[datetime] = Field(default=None, description="Registration date")

    def watched_today_at(self, now: datetime) -> int:
        """Counter as observed at `now`: a stale day reads as zero."""
        if not same_reference_day(self.last_ad_watch, now):
            return 0
        return self.ads_watched_today

    def __str__(self):
        return f"{self.username or self.id}"


class AccountCreate(BaseModel):
    id: str = Field(..., min_length=1, description="Account identity")
    username: Optional[str] = Field(None, description="Display name")
    referred_by: Optional[str] = Field(None, description="Referrer account ID")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "1234567890",
                "username": "johndoe",
                "referred_by": "987654321",
            }
        }
