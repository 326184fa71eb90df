from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from bookstore_pay.constants.payment import PaymentChannel, RechargeStatus


class Recharge(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    amount_cents: int  # paid amount plus bonus
    bonus_cents: int = Field(default=0)
    status: RechargeStatus = Field(default=RechargeStatus.SUCCESS)
    channel: PaymentChannel = Field(default=PaymentChannel.BANK_CARD)

    # checkout session id
    trade_no: str = Field(unique=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
