import logging

from sqlmodel import Session

from bookstore_pay.constants.payment import IntentKind
from bookstore_pay.exceptions import NotFoundError, ValidationError
from bookstore_pay.models.book import Book
from bookstore_pay.schemas.payment_schemas import IntentDescriptor
from bookstore_pay.services.settlement_service import (
    FundingSource,
    SettlementEngine,
    SettlementResult,
    settle_with_retry,
)

logger = logging.getLogger(__name__)


class BalancePurchaseEngine:
    """Buys a book from the user's stored balance, synchronously.

    Fails with ``InsufficientFunds`` (no changes made) when the balance does
    not cover ``amount_cents``.
    """

    def __init__(self, engine: SettlementEngine = None):
        self.engine = engine or SettlementEngine()

    def purchase(self, session: Session, *, user_id: int, book_id: int, amount_cents: int) -> SettlementResult:
        book = session.get(Book, book_id)
        if not book:
            raise NotFoundError(f"Book {book_id} not found")
        if amount_cents != book.price_cents:
            raise ValidationError("Amount does not match the book price")

        intent = IntentDescriptor(
            user_id=user_id,
            kind=IntentKind.BOOK,
            amount_cents=amount_cents,
            book_id=book_id,
        )

        result = settle_with_retry(self.engine, session, intent, FundingSource.balance())
        logger.info(f"Balance purchase: user {user_id} bought book {book_id}, order {result.order_id}")
        return result
