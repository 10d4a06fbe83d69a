from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel

from ad_rewards.schemas.account import StoreModel


class CompletionStyle(str, Enum):
    AWAITED = "awaited"
    CALLBACK = "callback"


class ProviderConfig(StoreModel):
    """Effective configuration of one ad provider."""

    provider_id: str = Field(..., description="Provider identity")
    title: str = Field("", description="Display title")
    reward: float = Field(..., ge=0, description="Reward per completed watch")
    daily_limit: int = Field(..., ge=0, description="Completed watches per day, 0 = unlimited")
    hourly_limit: int = Field(0, ge=0, description="Declared per-hour limit (not enforced)")
    cooldown_seconds: int = Field(..., ge=0, description="Seconds between two watches")
    minimum_watch_seconds: int = Field(..., ge=0, description="Minimum watch duration")
    enabled: bool = Field(True, description="Provider is switched on")
    app_id: str = Field("", description="Provider specific activation id")
    completion_style: CompletionStyle = Field(CompletionStyle.AWAITED, description="How completion is signalled")

    @computed_field
    @property
    def description(self) -> str:
        return f"Earn ${self.reward:.2f} per ad"

    def merge(self, override: "ProviderConfigOverride") -> "ProviderConfig":
        data = override.model_dump(exclude_none=True, exclude={"enabled"})
        merged = self.model_copy(update=data)
        # only an explicit `false` switches a provider off
        merged.enabled = override.enabled is not False
        return merged


class ProviderConfigOverride(BaseModel):
    """`providerConfig/{providerId}`: every field optional, absent means default."""

    reward: Optional[float] = Field(None, ge=0)
    daily_limit: Optional[int] = Field(None, ge=0)
    hourly_limit: Optional[int] = Field(None, ge=0)
    cooldown_seconds: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("cooldownSeconds", "cooldown", "cooldown_seconds")
    )
    minimum_watch_seconds: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("minimumWatchSeconds", "waitTime", "minimum_watch_seconds")
    )
    enabled: Optional[bool] = None
    app_id: Optional[str] = None

    class Config:
        populate_by_name = True
        alias_generator = to_camel
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "reward": 0.75,
                "dailyLimit": 10,
                "cooldownSeconds": 30,
                "enabled": True,
            }
        }
