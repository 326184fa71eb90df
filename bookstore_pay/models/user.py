from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from typing import Optional
from datetime import datetime


class User(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_user_balance_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True)
    role: str = Field(default="user")
    can_login: bool = Field(default=True)

    # stored balance, mutated only by settlement
    balance_cents: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
