"""
Pytest configuration and fixtures.

Each test gets its own file-backed SQLite database so that concurrent
sessions (race tests) share real locking semantics.
"""
import hashlib
import hmac
import json
import os
import time
from types import SimpleNamespace
from typing import Any, Iterator

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key_for_testing")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_fake_secret")

import pytest
import stripe
from fastapi.testclient import TestClient
from sqlmodel import Session, func, select

from bookstore_pay.config import settings
from bookstore_pay.database import build_engine, create_db_and_tables, get_session
from bookstore_pay.dependencies.payments import get_checkout_factory
from bookstore_pay.main import app
from bookstore_pay.models import Book, User
from bookstore_pay.services.checkout_service import CheckoutSessionFactory
from bookstore_pay.utils.token import create_access_token


class FakeStripeCheckout:
    """Stands in for ``stripe.checkout.Session.create``."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def __call__(self, **params):
        self.calls.append(params)
        if self.fail:
            raise stripe.StripeError("Stripe is unavailable")
        return SimpleNamespace(id=f"cs_test_{len(self.calls)}")


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'payments.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(db_engine) -> Iterator[Session]:
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def session_factory(db_engine):
    return lambda: Session(db_engine)


@pytest.fixture
def user(session) -> User:
    user = User(name="Reader", email="reader@example.com", balance_cents=5000)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def book(session) -> Book:
    book = Book(title="The Pragmatic Reader", author="A. Author", cover="https://cdn.example.com/cover.jpg",
                price_cents=4900, stock=5)
    session.add(book)
    session.commit()
    session.refresh(book)
    return book


@pytest.fixture
def fake_stripe() -> FakeStripeCheckout:
    return FakeStripeCheckout()


@pytest.fixture
def client(db_engine, fake_stripe) -> Iterator[TestClient]:
    def override_session():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_checkout_factory] = lambda: CheckoutSessionFactory(
        create_session=fake_stripe, base_url="http://shop.test"
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def sign_payload(payload: str, secret: str = None, timestamp: int = None) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe does."""
    secret = secret or settings.stripe_webhook_secret
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def stripe_event(event_type: str, obj: dict[str, Any], event_id: str = "evt_test_1") -> str:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    })


def completed_session(session_id: str, metadata: dict[str, str]) -> dict[str, Any]:
    return {"id": session_id, "object": "checkout.session", "payment_status": "paid", "metadata": metadata}


def count(session: Session, model) -> int:
    return session.exec(select(func.count()).select_from(model)).one()
