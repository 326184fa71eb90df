"""
Stripe webhook ingestion.

Deliveries are at-least-once and unordered. The ingester verifies the
signature, dispatches allow-listed event types and returns an explicit
outcome; unknown event types are acknowledged and ignored, never failed.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import stripe
from sqlmodel import Session

from bookstore_pay.config import settings
from bookstore_pay.constants.payment import (
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    SESSION_COMPLETED,
)
from bookstore_pay.exceptions import NotFoundError, OutOfStock, SignatureError, ValidationError
from bookstore_pay.schemas.payment_schemas import IntentDescriptor
from bookstore_pay.services.settlement_service import (
    FundingSource,
    SettlementEngine,
    SettlementResult,
    settle_with_retry,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    HANDLED = "handled"
    IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookResult:
    outcome: Outcome
    event_id: str
    event_type: str
    settlement: Optional[SettlementResult] = None
    rejected: Optional[str] = None


class WebhookIngester:
    def __init__(self, engine: SettlementEngine = None, secret: str = None, tolerance: int = None):
        self.engine = engine or SettlementEngine()
        self.secret = secret or settings.stripe_webhook_secret
        self.tolerance = tolerance if tolerance is not None else settings.stripe_webhook_tolerance
        self.handlers = {
            SESSION_COMPLETED: self._on_session_completed,
            PAYMENT_SUCCEEDED: self._on_payment_succeeded,
            PAYMENT_FAILED: self._on_payment_failed,
        }

    def verify(self, payload: bytes, signature: Optional[str]) -> dict:
        if not signature:
            raise SignatureError("Webhook Error: missing signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload=payload,
                sig_header=signature,
                secret=self.secret,
                tolerance=self.tolerance,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"❌ Webhook signature verification failed: {e}")
            raise SignatureError(f"Webhook Error: {e}")
        except ValueError as e:
            raise ValidationError(f"Webhook Error: malformed payload ({e})")

        event = event.to_dict()
        if not event.get("id") or not event.get("type"):
            raise ValidationError("Webhook Error: malformed event")
        return event

    def handle(self, session: Session, payload: bytes, signature: Optional[str]) -> WebhookResult:
        event = self.verify(payload, signature)
        logger.info(f"✅ Webhook event {event['id']} ({event['type']})")

        handler = self.handlers.get(event["type"])
        if handler is None:
            logger.info(f"Ignoring unhandled event type {event['type']}")
            return WebhookResult(Outcome.IGNORED, event["id"], event["type"])

        return handler(session, event)

    def _on_session_completed(self, session: Session, event: dict) -> WebhookResult:
        checkout_session = (event.get("data") or {}).get("object") or {}
        session_id = checkout_session.get("id")
        if not session_id:
            raise ValidationError("Missing checkout session id")

        logger.info(f"Handling {SESSION_COMPLETED} for session {session_id}")
        intent = IntentDescriptor.from_metadata(checkout_session.get("metadata"))

        funding = FundingSource.external(session_id)
        try:
            result = settle_with_retry(self.engine, session, intent, funding, event_type=event["type"])
        except (NotFoundError, OutOfStock) as e:
            # paid but not applicable; acknowledge so the provider stops redelivering
            logger.error(f"Settlement rejected for session {session_id}: {e.message}")
            self.engine.record_rejection(session, intent, funding, e.message, event_type=event["type"])
            return WebhookResult(Outcome.HANDLED, event["id"], event["type"], rejected=e.message)

        return WebhookResult(Outcome.HANDLED, event["id"], event["type"], settlement=result)

    def _on_payment_succeeded(self, session: Session, event: dict) -> WebhookResult:
        payment_intent = (event.get("data") or {}).get("object") or {}
        logger.info(f"💰 PaymentIntent {payment_intent.get('id')} status: {payment_intent.get('status')}")
        return WebhookResult(Outcome.HANDLED, event["id"], event["type"])

    def _on_payment_failed(self, session: Session, event: dict) -> WebhookResult:
        payment_intent = (event.get("data") or {}).get("object") or {}
        error = (payment_intent.get("last_payment_error") or {}).get("message")
        logger.warning(f"❌ Payment failed for {payment_intent.get('id')}: {error}")
        return WebhookResult(Outcome.HANDLED, event["id"], event["type"])
