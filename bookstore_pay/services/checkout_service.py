"""
Hosted checkout session creation.

Talks only to Stripe. Creating a session never touches local state; the
purchase or recharge is applied when the confirmation webhook arrives.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import stripe

from bookstore_pay.config import settings
from bookstore_pay.constants.payment import (
    CHECKOUT_CURRENCY,
    CHECKOUT_PAYMENT_METHODS,
    IntentKind,
)
from bookstore_pay.models.book import Book
from bookstore_pay.schemas.payment_schemas import IntentDescriptor
from bookstore_pay.utils.money import format_cents

logger = logging.getLogger(__name__)

RECHARGE_PRODUCT_NAME = "Account recharge"


@dataclass(frozen=True)
class CheckoutResult:
    success: bool
    session_id: Optional[str] = None
    product_title: Optional[str] = None


def _create_stripe_session(**params):
    return stripe.checkout.Session.create(api_key=settings.stripe_secret_key, **params)


class CheckoutSessionFactory:
    def __init__(self, create_session: Callable = _create_stripe_session, base_url: str = None):
        self.create_session = create_session
        self.base_url = base_url or settings.base_url

    def build_params(self, intent: IntentDescriptor, book: Optional[Book] = None) -> dict:
        if intent.kind == IntentKind.BOOK and book is not None:
            product_data = {
                "name": book.title,
                "description": f"Book purchase: {book.title}",
            }
            if book.cover:
                product_data["images"] = [book.cover]
        else:
            product_data = {
                "name": RECHARGE_PRODUCT_NAME,
                "description": f"Recharge amount: ¥{format_cents(intent.amount_cents)}",
            }

        return {
            "payment_method_types": CHECKOUT_PAYMENT_METHODS,
            "payment_method_options": {"wechat_pay": {"client": "web"}},
            "line_items": [
                {
                    "price_data": {
                        "currency": CHECKOUT_CURRENCY,
                        "product_data": product_data,
                        "unit_amount": intent.amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            "mode": "payment",
            "success_url": f"{self.base_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.base_url}/payment/cancel",
            "metadata": intent.to_metadata(),
        }

    def create(self, intent: IntentDescriptor, book: Optional[Book] = None) -> CheckoutResult:
        if intent.kind == IntentKind.BOOK and book is None:
            raise ValueError("BOOK checkout needs the book for display data")

        params = self.build_params(intent, book)
        try:
            checkout_session = self.create_session(**params)
        except stripe.StripeError as e:
            logger.error(f"Error creating checkout session for user {intent.user_id}: {e}")
            return CheckoutResult(success=False)

        product_title = book.title if intent.kind == IntentKind.BOOK else RECHARGE_PRODUCT_NAME
        logger.info(f"Checkout session {checkout_session.id} created for user {intent.user_id} ({intent.kind.value})")
        return CheckoutResult(success=True, session_id=checkout_session.id, product_title=product_title)
