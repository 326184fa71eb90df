from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime

from bookstore_pay.constants.order_status import OrderStatus
from bookstore_pay.models.order_item import OrderItem


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # always equals sum(item.price_cents * item.quantity)
    total_cents: int
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    funding_source: str  # balance | stripe

    created_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")
