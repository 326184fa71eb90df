from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from bookstore_pay.constants.payment import SettlementOutcome


class ProcessedEvent(SQLModel, table=True):
    """Idempotency log for externally funded settlements.

    A SETTLED row is inserted in the same database transaction as the
    settlement it guards, so it exists iff the settlement committed. A
    REJECTED row records a paid session that could not be applied; settling
    it later flips the same row to SETTLED.
    """

    __tablename__ = "processed_event"
    __table_args__ = (
        UniqueConstraint("provider", "external_id", name="uq_processed_event_provider_external_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    provider: str
    external_id: str
    event_type: str
    kind: str  # BOOK | RECHARGE
    outcome: SettlementOutcome = Field(default=SettlementOutcome.SETTLED)
    detail: Optional[str] = None

    # as claimed by the event; may name a user that does not exist
    user_id: int

    order_id: Optional[int] = None
    recharge_id: Optional[int] = None
    transaction_id: Optional[int] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
