from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import Column, Index
from sqlmodel import Field

from ad_rewards.models.base_model import MirrorModel


class LedgerAccount(MirrorModel, table=True):
    """
    Зеркало аккаунта из общего хранилища, таблица `accounts`.

    Таблица:
    - id                int [pk, increment] - Уникальный идентификатор
    - account_id        varchar(64) [unique] - ID аккаунта в хранилище
    - username          varchar(255) - Имя пользователя (опционально)
    - balance           numeric - Текущий баланс
    - total_earned      numeric - Заработано за всё время
    - total_withdrawn   numeric - Выведено за всё время
    - referred_by       varchar(64) - ID пригласившего аккаунта
    - last_ad_watch     datetime - Последний просмотр рекламы
    - joined_at         datetime - Дата регистрации
    - sync_at           datetime - Дата последней синхронизации
    """

    __tablename__ = "accounts"

    account_id: str = Field(sa_column=Column(sa.String(64), unique=True, nullable=False), description="Store account ID")
    username: Optional[str] = Field(default=None, description="Display name")
    balance: float = Field(default=0, description="Current balance")
    total_earned: float = Field(default=0, description="Lifetime earnings")
    total_withdrawn: float = Field(default=0, description="Lifetime withdrawals")
    referred_by: Optional[str] = Field(default=None, description="Referrer account ID")
    last_ad_watch: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True), description="Last completed watch"
    )
    joined_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True), description="Registration date"
    )
    sync_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True), description="Last synchronization date"
    )

    __table_args__ = (Index("ix_accounts_account_id", "account_id"),)

    def __repr__(self):
        return f"<LedgerAccount account_id={self.account_id} balance={self.balance}>"


class LedgerTransaction(MirrorModel, table=True):
    """
    Архив транзакций, таблица `transactions`.

    Таблица:
    - id             int [pk, increment] - Уникальный идентификатор
    - store_id       varchar(64) [unique] - ID транзакции в хранилище
    - account_id     varchar(64) - Аккаунт, получивший начисление
    - amount         numeric - Сумма начисления
    - type           enum('earn', 'referral_commission') - Тип транзакции
    - status         enum('pending', 'completed', 'failed') - Статус транзакции
    - description    varchar - Описание
    - timestamp      datetime - Время транзакции
    """

    __tablename__ = "transactions"

    store_id: str = Field(sa_column=Column(sa.String(64), unique=True, nullable=False), description="Store transaction ID")
    account_id: str = Field(index=True, description="Credited account ID")
    amount: float = Field(..., description="Credited amount")
    type: str = Field(..., description="Type of the transaction (earn, referral_commission)")
    status: str = Field(default="completed", description="Status of the transaction (pending, completed, failed)")
    description: str = Field(default="", description="Human readable description")
    timestamp: datetime = Field(
        default_factory=datetime.now, sa_type=sa.DateTime(timezone=True), description="Timestamp of the transaction"
    )

    def __repr__(self):
        return (
            f"<LedgerTransaction store_id={self.store_id} account_id={self.account_id} "
            f"amount={self.amount} type={self.type} status={self.status}>"
        )
