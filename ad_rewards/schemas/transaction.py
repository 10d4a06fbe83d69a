from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from ad_rewards.schemas.account import StoreModel


class TransactionType(str, Enum):
    EARN = "earn"
    REFERRAL_COMMISSION = "referral_commission"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(StoreModel):
    """Immutable record at `transactions/{transactionId}`; the id comes from the store."""

    id: Optional[str] = Field(None, description="Store generated transaction ID")
    account_id: str = Field(..., description="Credited account")
    type: TransactionType = Field(..., description="earn or referral_commission")
    amount: float = Field(..., description="Credited amount")
    description: str = Field("", description="Human readable description")
    status: TransactionStatus = Field(TransactionStatus.COMPLETED, description="Transaction status")
    created_at: datetime = Field(..., description="Timestamp of the transaction")

    def __repr__(self):
        return (
            f"<Transaction id={self.id} account_id={self.account_id} amount={self.amount} "
            f"type={self.type.value} status={self.status.value}>"
        )
