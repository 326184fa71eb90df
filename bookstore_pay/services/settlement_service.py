"""
Settlement: the atomic application of a confirmed purchase or recharge.

Both funding paths go through ``SettlementEngine.settle``:

- ``FundingSource.balance()``: the book is paid from the stored balance,
  synchronously, with no provider involved.
- ``FundingSource.external(session_id)``: the provider confirmed payment.
  The session id is the idempotency key; a repeat delivery returns the
  result of the first settlement and changes nothing. A session that could
  not be applied is kept as a REJECTED marker by ``record_rejection`` and
  settles normally if it is delivered again.

All writes of one settlement (idempotency marker, balance, order, stock,
recharge, ledger) commit together or not at all.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from bookstore_pay.config import settings
from bookstore_pay.constants.order_status import OrderStatus
from bookstore_pay.constants.payment import (
    RECHARGE_BONUS_TIERS,
    SESSION_COMPLETED,
    STRIPE_PROVIDER,
    IntentKind,
    PaymentChannel,
    RechargeStatus,
    SettlementOutcome,
    TransactionType,
)
from bookstore_pay.exceptions import (
    ConcurrencyConflict,
    InsufficientFunds,
    NotFoundError,
    ValidationError,
)
from bookstore_pay.models.book import Book
from bookstore_pay.models.order import Order
from bookstore_pay.models.order_item import OrderItem
from bookstore_pay.models.processed_event import ProcessedEvent
from bookstore_pay.models.recharge import Recharge
from bookstore_pay.models.user import User
from bookstore_pay.schemas.payment_schemas import IntentDescriptor
from bookstore_pay.services.inventory_service import reduce_inventory
from bookstore_pay.services.ledger_service import current_balance, record_transaction
from bookstore_pay.utils.money import format_cents

logger = logging.getLogger(__name__)

# postgres serialization_failure / deadlock_detected
_RETRYABLE_PGCODES = {"40001", "40P01"}


@dataclass(frozen=True)
class FundingSource:
    provider: Optional[str] = None
    external_id: Optional[str] = None

    @classmethod
    def balance(cls) -> "FundingSource":
        return cls()

    @classmethod
    def external(cls, external_id: str, provider: str = STRIPE_PROVIDER) -> "FundingSource":
        if not external_id:
            raise ValidationError("External funding requires an event id")
        return cls(provider=provider, external_id=external_id)

    @property
    def is_balance(self) -> bool:
        return self.external_id is None

    @property
    def label(self) -> str:
        return "balance" if self.is_balance else self.provider


@dataclass(frozen=True)
class SettlementResult:
    kind: IntentKind
    balance_cents: int
    order_id: Optional[int] = None
    recharge_id: Optional[int] = None
    transaction_id: Optional[int] = None
    duplicate: bool = False


def recharge_bonus(amount_cents: int) -> int:
    return RECHARGE_BONUS_TIERS.get(amount_cents, 0)


def is_concurrency_failure(exc: OperationalError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _RETRYABLE_PGCODES:
        return True
    return "database is locked" in str(exc.orig)


class SettlementEngine:
    def __init__(self, record_provider_purchases: Optional[bool] = None):
        if record_provider_purchases is None:
            record_provider_purchases = settings.ledger_record_provider_purchases
        self.record_provider_purchases = record_provider_purchases

    def settle(
        self,
        session: Session,
        intent: IntentDescriptor,
        funding: FundingSource,
        event_type: str = SESSION_COMPLETED,
    ) -> SettlementResult:
        try:
            previous = self._find_processed(session, funding)
            if previous is not None and previous.outcome == SettlementOutcome.SETTLED:
                session.rollback()
                return self._replay(session, previous)

            result = self._apply(session, intent, funding, event_type, rejected=previous)
            session.commit()
        except IntegrityError as e:
            session.rollback()
            # a concurrent delivery of the same id committed first
            previous = self._find_processed(session, funding)
            if previous is None:
                raise
            if previous.outcome == SettlementOutcome.SETTLED:
                return self._replay(session, previous)
            raise ConcurrencyConflict("Settlement raced a rejection of the same event") from e
        except OperationalError as e:
            session.rollback()
            if is_concurrency_failure(e):
                raise ConcurrencyConflict("Settlement conflicted with a concurrent update") from e
            raise
        except Exception:
            session.rollback()
            raise

        logger.info(
            f"Settled {intent.kind.value} for user {intent.user_id} "
            f"via {funding.label}: order={result.order_id} recharge={result.recharge_id} "
            f"balance={result.balance_cents}"
        )
        return result

    def _apply(self, session, intent, funding, event_type, rejected=None) -> SettlementResult:
        user = session.get(User, intent.user_id)
        if not user:
            raise NotFoundError(f"User {intent.user_id} not found")

        marker = None
        if rejected is not None:
            marker = self._claim_rejected(session, rejected, event_type)
        elif not funding.is_balance:
            marker = ProcessedEvent(
                provider=funding.provider,
                external_id=funding.external_id,
                event_type=event_type,
                kind=intent.kind.value,
                user_id=intent.user_id,
            )
            session.add(marker)
            session.flush()

        if intent.kind == IntentKind.BOOK:
            result = self._settle_book(session, intent, funding)
        elif funding.is_balance:
            raise ValidationError("Recharge cannot be funded from the balance")
        else:
            result = self._settle_recharge(session, intent, funding)

        if marker is not None:
            marker.order_id = result.order_id
            marker.recharge_id = result.recharge_id
            marker.transaction_id = result.transaction_id
            session.add(marker)

        return result

    def _settle_book(self, session, intent, funding) -> SettlementResult:
        book = session.get(Book, intent.book_id)
        if not book:
            raise NotFoundError(f"Book {intent.book_id} not found")

        if funding.is_balance:
            debit_balance(session, intent.user_id, intent.amount_cents)

        order = Order(
            user_id=intent.user_id,
            total_cents=intent.amount_cents,
            status=OrderStatus.PAID,
            funding_source=funding.label,
        )
        session.add(order)
        session.flush()

        session.add(
            OrderItem(
                order_id=order.id,
                book_id=book.id,
                book_title=book.title,
                price_cents=intent.amount_cents,
                quantity=1,
            )
        )

        reduce_inventory(session, book, 1)

        transaction_id = None
        if funding.is_balance or self.record_provider_purchases:
            entry = record_transaction(
                session=session,
                user_id=intent.user_id,
                amount_cents=intent.amount_cents,
                type=TransactionType.PAYMENT,
                description="book purchase via balance" if funding.is_balance else "book purchase",
                order_id=order.id,
            )
            transaction_id = entry.id

        return SettlementResult(
            kind=IntentKind.BOOK,
            balance_cents=current_balance(session, intent.user_id),
            order_id=order.id,
            transaction_id=transaction_id,
        )

    def _settle_recharge(self, session, intent, funding) -> SettlementResult:
        bonus_cents = recharge_bonus(intent.amount_cents)
        credited_cents = intent.amount_cents + bonus_cents

        session.exec(
            update(User)
            .where(User.id == intent.user_id)
            .values(balance_cents=User.balance_cents + credited_cents)
            .execution_options(synchronize_session=False)
        )

        recharge = Recharge(
            user_id=intent.user_id,
            amount_cents=credited_cents,
            bonus_cents=bonus_cents,
            status=RechargeStatus.SUCCESS,
            channel=PaymentChannel.BANK_CARD,
            trade_no=funding.external_id,
        )
        session.add(recharge)
        session.flush()

        if bonus_cents > 0:
            description = f"recharge incl. bonus {format_cents(bonus_cents)}"
        else:
            description = "recharge"

        entry = record_transaction(
            session=session,
            user_id=intent.user_id,
            amount_cents=credited_cents,
            type=TransactionType.RECHARGE,
            description=description,
            recharge_id=recharge.id,
        )

        return SettlementResult(
            kind=IntentKind.RECHARGE,
            balance_cents=entry.balance_cents,
            recharge_id=recharge.id,
            transaction_id=entry.id,
        )

    def record_rejection(
        self,
        session: Session,
        intent: IntentDescriptor,
        funding: FundingSource,
        reason: str,
        event_type: str = SESSION_COMPLETED,
    ) -> Optional[ProcessedEvent]:
        """Keep a paid session that could not be applied on record.

        Nothing else is written. A session that already settled is left as is.
        """
        if funding.is_balance:
            return None

        marker = self._find_processed(session, funding)
        if marker is not None and marker.outcome == SettlementOutcome.SETTLED:
            session.rollback()
            return marker

        if marker is None:
            marker = ProcessedEvent(
                provider=funding.provider,
                external_id=funding.external_id,
                kind=intent.kind.value,
                user_id=intent.user_id,
                outcome=SettlementOutcome.REJECTED,
            )
        marker.event_type = event_type
        marker.detail = reason
        session.add(marker)

        try:
            session.commit()
        except IntegrityError:
            # another delivery of the same id got there first
            session.rollback()
            return self._find_processed(session, funding)

        logger.warning(f"Recorded rejected settlement {funding.provider}:{funding.external_id}: {reason}")
        return marker

    @staticmethod
    def _claim_rejected(session, rejected: ProcessedEvent, event_type: str) -> ProcessedEvent:
        claimed = session.exec(
            update(ProcessedEvent)
            .where(
                ProcessedEvent.id == rejected.id,
                ProcessedEvent.outcome == SettlementOutcome.REJECTED,
            )
            .values(outcome=SettlementOutcome.SETTLED, detail=None, event_type=event_type)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise ConcurrencyConflict("Rejected event was settled by a concurrent delivery")

        session.refresh(rejected)
        logger.info(f"Settling previously rejected {rejected.provider}:{rejected.external_id}")
        return rejected

    @staticmethod
    def _find_processed(session, funding) -> Optional[ProcessedEvent]:
        if funding.is_balance:
            return None
        return session.exec(
            select(ProcessedEvent).where(
                ProcessedEvent.provider == funding.provider,
                ProcessedEvent.external_id == funding.external_id,
            )
        ).first()

    @staticmethod
    def _replay(session, previous: ProcessedEvent) -> SettlementResult:
        logger.info(f"Duplicate settlement for {previous.provider}:{previous.external_id}, returning original result")
        return SettlementResult(
            kind=IntentKind(previous.kind),
            balance_cents=current_balance(session, previous.user_id),
            order_id=previous.order_id,
            recharge_id=previous.recharge_id,
            transaction_id=previous.transaction_id,
            duplicate=True,
        )


def debit_balance(session: Session, user_id: int, amount_cents: int):
    """Conditional debit: check and decrement are a single statement, so two
    concurrent purchases cannot both pass the balance check."""
    result = session.exec(
        update(User)
        .where(User.id == user_id, User.balance_cents >= amount_cents)
        .values(balance_cents=User.balance_cents - amount_cents)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientFunds("Insufficient balance")


def settle_with_retry(engine: SettlementEngine, session: Session, *args, **kwargs) -> SettlementResult:
    for attempt in Retrying(
        retry=retry_if_exception_type(ConcurrencyConflict),
        stop=stop_after_attempt(settings.settlement_max_attempts),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    ):
        with attempt:
            return engine.settle(session, *args, **kwargs)
