from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, model_validator

from bookstore_pay.constants.payment import IntentKind
from bookstore_pay.exceptions import ValidationError


class IntentDescriptor(BaseModel):
    """What a checkout session is paying for.

    Travels as checkout session metadata (string values only) and comes back
    on the ``checkout.session.completed`` event. ``amount`` is in cents.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: int = Field(alias="userId")
    kind: IntentKind
    amount_cents: int = Field(alias="amount", gt=0)
    book_id: Optional[int] = Field(default=None, alias="bookId")

    @model_validator(mode="after")
    def _book_id_iff_book(self):
        if self.kind == IntentKind.BOOK and self.book_id is None:
            raise ValueError("bookId is required for BOOK intents")
        if self.kind == IntentKind.RECHARGE and self.book_id is not None:
            raise ValueError("bookId is only allowed for BOOK intents")
        return self

    def to_metadata(self) -> Dict[str, str]:
        metadata = {
            "userId": str(self.user_id),
            "kind": self.kind.value,
            "amount": str(self.amount_cents),
        }
        if self.book_id is not None:
            metadata["bookId"] = str(self.book_id)
        return metadata

    @classmethod
    def from_metadata(cls, metadata: Optional[dict]) -> "IntentDescriptor":
        metadata = metadata or {}
        missing = [key for key in ("userId", "kind", "amount") if not metadata.get(key)]
        if missing:
            raise ValidationError(f"Missing metadata: {', '.join(missing)}")
        try:
            return cls.model_validate(
                {key: value for key, value in metadata.items() if key in ("userId", "kind", "amount", "bookId")}
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Malformed metadata: {e.errors()[0]['msg']}")


class BookCheckoutRequest(BaseModel):
    book_id: int


class RechargeCheckoutRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)


class CheckoutSessionResponse(BaseModel):
    success: bool
    session_id: str
    product_title: str
    amount: Decimal
    bonus: Optional[Decimal] = None


class BalancePurchaseRequest(BaseModel):
    book_id: int
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)


class BalancePurchaseResponse(BaseModel):
    success: bool = True
    order_id: int
    balance: Decimal


class OrderItemOut(BaseModel):
    book_id: int
    book_title: str
    price: Decimal
    quantity: int


class OrderOut(BaseModel):
    id: int
    total_amount: Decimal
    status: str
    funding_source: str
    created_at: datetime
    items: List[OrderItemOut]


class RechargeOut(BaseModel):
    id: int
    amount: Decimal
    bonus: Decimal
    status: str
    channel: str
    trade_no: str
    created_at: datetime


class TransactionOut(BaseModel):
    id: int
    amount: Decimal
    type: str
    status: str
    balance: Decimal
    description: str
    created_at: datetime
