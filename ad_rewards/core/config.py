import logging
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, Field, PostgresDsn, field_validator, ValidationInfo
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []
    LOG_LEVEL: int = Field(default=logging.INFO, env="LOG_LEVEL")

    VERSION: str = Field(default="0.1.0", env="VERSION")
    API_PREFIX: str = Field(default="api", env="API_PREFIX")
    DEBUG: bool = Field(default=True, env="DEBUG")

    POSTGRES_USER: str = Field(default="postgres", env="POSTGRES_USER")
    POSTGRES_PASSWORD: str = Field(default="postgres", env="POSTGRES_PASSWORD")
    POSTGRES_HOST: str = Field(default="localhost", env="POSTGRES_HOST")
    POSTGRES_PORT: str = Field(default="5432", env="POSTGRES_PORT")
    POSTGRES_DB: str = Field(default="ad_rewards", env="POSTGRES_DB")
    POSTGRES_URL: Optional[str] = Field(default=None, validate_default=True)

    REDIS_HOST: str = Field(default="localhost", env="REDIS_HOST")
    REDIS_PORT: str = Field(default="6379", env="REDIS_PORT")
    REDIS_PASSWORD: str = Field(default="", env="REDIS_PASSWORD")
    REDIS_DB: int = Field(default=0, env="REDIS_DB")
    # namespace of the shared store inside redis
    STORE_PREFIX: str = Field(default="ads:", env="STORE_PREFIX")

    DB_POOL_SIZE: int = Field(default=83, env="DB_POOL_SIZE")
    WEB_CONCURRENCY: int = Field(default=9, env="WEB_CONCURRENCY")
    MAX_OVERFLOW: int = Field(default=64, env="MAX_OVERFLOW")
    POOL_SIZE: Optional[int] = Field(default=None, validate_default=True)

    # Daily reset
    RESET_CUTOFF_HOUR: int = Field(default=6, env="RESET_CUTOFF_HOUR")
    RESET_UTC_OFFSET_HOURS: int = Field(default=6, env="RESET_UTC_OFFSET_HOURS")  # UTC+6
    RESET_CHECK_INTERVAL_SECONDS: int = Field(default=60, env="RESET_CHECK_INTERVAL_SECONDS")
    # also run the reset loop inside the API process (normally Celery beat drives it)
    RESET_LOOP_IN_API: bool = Field(default=False, env="RESET_LOOP_IN_API")

    # Rewards
    REFERRAL_COMMISSION_RATE: float = Field(default=0.10, env="REFERRAL_COMMISSION_RATE")
    WATCHDOG_FLOOR_SECONDS: float = Field(default=15, env="WATCHDOG_FLOOR_SECONDS")
    WATCHDOG_GRACE_SECONDS: float = Field(default=5, env="WATCHDOG_GRACE_SECONDS")
    CLIENT_CONFIRM_TIMEOUT_SECONDS: float = Field(default=120, env="CLIENT_CONFIRM_TIMEOUT_SECONDS")

    # Compiled provider defaults, overridable through providerConfig/{provider}
    DEFAULT_AD_REWARD: float = Field(default=0.5, env="DEFAULT_AD_REWARD")
    DEFAULT_AD_DAILY_LIMIT: int = Field(default=5, env="DEFAULT_AD_DAILY_LIMIT")
    DEFAULT_AD_HOURLY_LIMIT: int = Field(default=2, env="DEFAULT_AD_HOURLY_LIMIT")
    DEFAULT_AD_COOLDOWN_SECONDS: int = Field(default=60, env="DEFAULT_AD_COOLDOWN_SECONDS")
    DEFAULT_AD_MIN_WATCH_SECONDS: int = Field(default=5, env="DEFAULT_AD_MIN_WATCH_SECONDS")

    LEDGER_SYNC_BATCH_SIZE: int = Field(default=500, env="LEDGER_SYNC_BATCH_SIZE")

    @field_validator("POOL_SIZE", mode="before")
    def build_pool(cls, v: Optional[str], values: ValidationInfo) -> Any:
        if isinstance(v, int):
            return v

        return max(values.data.get("DB_POOL_SIZE") // values.data.get("WEB_CONCURRENCY"), 5)  # type: ignore

    @field_validator("POSTGRES_URL", mode="plain")
    def build_db_connection(cls, v: Optional[str], values: ValidationInfo) -> Any:
        if isinstance(v, str):
            return v

        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=values.data.get("POSTGRES_USER"),
            password=values.data.get("POSTGRES_PASSWORD"),
            host=values.data.get("POSTGRES_HOST"),
            port=int(values.data.get("POSTGRES_PORT")),
            path=f"{values.data.get('POSTGRES_DB') or ''}",
        ).unicode_string()

    @property
    def REDIS_URL(self) -> str:
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}"


settings = Settings()
