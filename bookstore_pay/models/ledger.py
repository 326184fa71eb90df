from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from bookstore_pay.constants.payment import TransactionStatus, TransactionType


class LedgerTransaction(SQLModel, table=True):
    """Immutable ledger row; ``balance_cents`` is the user's balance right
    after the settlement that wrote it committed."""

    __tablename__ = "transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    amount_cents: int
    type: TransactionType
    status: TransactionStatus = Field(default=TransactionStatus.SUCCESS)
    balance_cents: int
    description: str

    order_id: Optional[int] = Field(default=None, foreign_key="order.id")
    recharge_id: Optional[int] = Field(default=None, foreign_key="recharge.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)
