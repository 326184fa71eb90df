from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from typing import Optional
from datetime import datetime


class Book(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_book_stock_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    author: Optional[str] = None
    cover: Optional[str] = None

    price_cents: int
    stock: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def in_stock(self) -> bool:
        return self.stock > 0
