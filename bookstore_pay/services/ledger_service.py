from typing import Optional

from sqlmodel import Session, select

from bookstore_pay.constants.payment import TransactionType
from bookstore_pay.models.ledger import LedgerTransaction
from bookstore_pay.models.user import User


def current_balance(session: Session, user_id: int) -> int:
    # column select bypasses the identity map, so it sees this transaction's updates
    return session.exec(
        select(User.balance_cents).where(User.id == user_id)
    ).one()


def record_transaction(
    *,
    session: Session,
    user_id: int,
    amount_cents: int,
    type: TransactionType,
    description: str,
    order_id: Optional[int] = None,
    recharge_id: Optional[int] = None,
) -> LedgerTransaction:
    """
    Append-only ledger write.

    Must run inside the settlement's transaction, after the balance mutation,
    so the snapshot is exactly the balance that commits with it.
    """

    entry = LedgerTransaction(
        user_id=user_id,
        amount_cents=amount_cents,
        type=type,
        balance_cents=current_balance(session, user_id),
        description=description,
        order_id=order_id,
        recharge_id=recharge_id,
    )

    session.add(entry)
    session.flush()
    return entry
