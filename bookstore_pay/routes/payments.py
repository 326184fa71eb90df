from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from bookstore_pay.constants.order_status import OrderStatus
from bookstore_pay.constants.payment import IntentKind, RechargeStatus, TransactionType
from bookstore_pay.database import get_session
from bookstore_pay.dependencies.payments import get_balance_engine, get_checkout_factory
from bookstore_pay.exceptions import CheckoutFailed, NotFoundError, OutOfStock, ValidationError
from bookstore_pay.models.book import Book
from bookstore_pay.models.ledger import LedgerTransaction
from bookstore_pay.models.order import Order
from bookstore_pay.models.recharge import Recharge
from bookstore_pay.models.user import User
from bookstore_pay.schemas.payment_schemas import (
    BalancePurchaseRequest,
    BalancePurchaseResponse,
    BookCheckoutRequest,
    CheckoutSessionResponse,
    IntentDescriptor,
    OrderItemOut,
    OrderOut,
    RechargeCheckoutRequest,
    RechargeOut,
    TransactionOut,
)
from bookstore_pay.services.balance_service import BalancePurchaseEngine
from bookstore_pay.services.checkout_service import CheckoutSessionFactory
from bookstore_pay.services.settlement_service import recharge_bonus
from bookstore_pay.utils.money import from_cents, to_cents
from bookstore_pay.utils.pagination import paginate
from bookstore_pay.utils.token import get_current_user

router = APIRouter()


@router.post("/checkout/book", response_model=CheckoutSessionResponse)
def create_book_checkout(
    data: BookCheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    factory: CheckoutSessionFactory = Depends(get_checkout_factory),
):
    book = session.get(Book, data.book_id)
    if not book:
        raise NotFoundError("Book not found")
    if not book.in_stock:
        raise OutOfStock(f"{book.title} is out of stock")

    intent = IntentDescriptor(
        user_id=current_user.id,
        kind=IntentKind.BOOK,
        amount_cents=book.price_cents,
        book_id=book.id,
    )
    result = factory.create(intent, book)
    if not result.success:
        raise CheckoutFailed("Failed to create payment session")

    return CheckoutSessionResponse(
        success=True,
        session_id=result.session_id,
        product_title=result.product_title,
        amount=from_cents(book.price_cents),
    )


@router.post("/checkout/recharge", response_model=CheckoutSessionResponse)
def create_recharge_checkout(
    data: RechargeCheckoutRequest,
    current_user: User = Depends(get_current_user),
    factory: CheckoutSessionFactory = Depends(get_checkout_factory),
):
    amount_cents = to_cents(data.amount)
    intent = IntentDescriptor(
        user_id=current_user.id,
        kind=IntentKind.RECHARGE,
        amount_cents=amount_cents,
    )
    result = factory.create(intent)
    if not result.success:
        raise CheckoutFailed("Failed to create payment session")

    return CheckoutSessionResponse(
        success=True,
        session_id=result.session_id,
        product_title=result.product_title,
        amount=from_cents(amount_cents),
        bonus=from_cents(recharge_bonus(amount_cents)),
    )


@router.post("/balance-purchase", response_model=BalancePurchaseResponse)
def purchase_with_balance(
    data: BalancePurchaseRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    engine: BalancePurchaseEngine = Depends(get_balance_engine),
):
    result = engine.purchase(
        session,
        user_id=current_user.id,
        book_id=data.book_id,
        amount_cents=to_cents(data.amount),
    )
    return BalancePurchaseResponse(
        success=True,
        order_id=result.order_id,
        balance=from_cents(result.balance_cents),
    )


# -------------------------
# READ SIDE (own records)
# -------------------------

def _ordered(query, column, sort_order):
    return query.order_by(column.asc() if sort_order == "asc" else column.desc())


def _parse_filter(enum_cls, value):
    try:
        return enum_cls(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown filter value: {value}")


@router.get("/orders")
def my_orders(
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(Order).where(Order.user_id == current_user.id)
    if status:
        query = query.where(Order.status == _parse_filter(OrderStatus, status))
    query = _ordered(query, Order.id, sort_order)

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serialize=lambda o: OrderOut(
            id=o.id,
            total_amount=from_cents(o.total_cents),
            status=o.status.value,
            funding_source=o.funding_source,
            created_at=o.created_at,
            items=[
                OrderItemOut(
                    book_id=i.book_id,
                    book_title=i.book_title,
                    price=from_cents(i.price_cents),
                    quantity=i.quantity,
                )
                for i in o.items
            ],
        ),
    )


@router.get("/recharges")
def my_recharges(
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(Recharge).where(Recharge.user_id == current_user.id)
    if status:
        query = query.where(Recharge.status == _parse_filter(RechargeStatus, status))
    query = _ordered(query, Recharge.id, sort_order)

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serialize=lambda r: RechargeOut(
            id=r.id,
            amount=from_cents(r.amount_cents),
            bonus=from_cents(r.bonus_cents),
            status=r.status.value,
            channel=r.channel.value,
            trade_no=r.trade_no,
            created_at=r.created_at,
        ),
    )


@router.get("/transactions")
def my_transactions(
    page: int = 1,
    limit: int = 10,
    type: Optional[str] = None,
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(LedgerTransaction).where(LedgerTransaction.user_id == current_user.id)
    if type:
        query = query.where(LedgerTransaction.type == _parse_filter(TransactionType, type))
    query = _ordered(query, LedgerTransaction.id, sort_order)

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serialize=lambda t: TransactionOut(
            id=t.id,
            amount=from_cents(t.amount_cents),
            type=t.type.value,
            status=t.status.value,
            balance=from_cents(t.balance_cents),
            description=t.description,
            created_at=t.created_at,
        ),
    )
