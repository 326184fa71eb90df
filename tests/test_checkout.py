from decimal import Decimal

from bookstore_pay.constants.payment import IntentKind
from bookstore_pay.models import Book, LedgerTransaction, Order, User
from bookstore_pay.schemas.payment_schemas import IntentDescriptor
from bookstore_pay.services.checkout_service import CheckoutSessionFactory

from conftest import FakeStripeCheckout, count


class TestCheckoutSessionFactory:
    def test_book_session_params(self, book):
        fake = FakeStripeCheckout()
        factory = CheckoutSessionFactory(create_session=fake, base_url="http://shop.test")
        intent = IntentDescriptor(user_id=7, kind=IntentKind.BOOK, amount_cents=4900, book_id=book.id)

        result = factory.create(intent, book)

        assert result.success
        assert result.session_id == "cs_test_1"
        assert result.product_title == book.title

        params = fake.calls[0]
        assert params["mode"] == "payment"
        assert params["payment_method_types"] == ["card", "wechat_pay", "alipay"]
        line_item = params["line_items"][0]
        assert line_item["quantity"] == 1
        assert line_item["price_data"]["currency"] == "cny"
        assert line_item["price_data"]["unit_amount"] == 4900
        assert line_item["price_data"]["product_data"]["name"] == book.title
        assert line_item["price_data"]["product_data"]["images"] == [book.cover]
        assert params["metadata"] == {"userId": "7", "kind": "BOOK", "amount": "4900", "bookId": str(book.id)}
        assert params["success_url"] == "http://shop.test/payment/success?session_id={CHECKOUT_SESSION_ID}"

    def test_recharge_session_params(self):
        fake = FakeStripeCheckout()
        factory = CheckoutSessionFactory(create_session=fake, base_url="http://shop.test")
        intent = IntentDescriptor(user_id=7, kind=IntentKind.RECHARGE, amount_cents=10000)

        result = factory.create(intent)

        assert result.product_title == "Account recharge"
        params = fake.calls[0]
        assert params["metadata"] == {"userId": "7", "kind": "RECHARGE", "amount": "10000"}
        assert "¥100.00" in params["line_items"][0]["price_data"]["product_data"]["description"]

    def test_provider_failure(self):
        fake = FakeStripeCheckout()
        fake.fail = True
        factory = CheckoutSessionFactory(create_session=fake)
        intent = IntentDescriptor(user_id=7, kind=IntentKind.RECHARGE, amount_cents=10000)

        result = factory.create(intent)

        assert not result.success
        assert result.session_id is None


class TestCheckoutRoutes:
    def test_book_checkout_has_no_local_effects(self, client, auth_headers, session, user, book, fake_stripe):
        response = client.post("/payments/checkout/book", json={"book_id": book.id}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["session_id"] == "cs_test_1"
        assert Decimal(body["amount"]) == Decimal("49.00")
        assert fake_stripe.calls[0]["metadata"]["userId"] == str(user.id)

        session.expire_all()
        assert session.get(Book, book.id).stock == 5
        assert session.get(User, user.id).balance_cents == 5000
        assert count(session, Order) == 0
        assert count(session, LedgerTransaction) == 0

    def test_recharge_checkout_reports_bonus(self, client, auth_headers, fake_stripe):
        response = client.post("/payments/checkout/recharge", json={"amount": "500"}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["amount"]) == Decimal("500")
        assert Decimal(body["bonus"]) == Decimal("100")
        assert fake_stripe.calls[0]["line_items"][0]["price_data"]["unit_amount"] == 50000

    def test_provider_failure_returns_502(self, client, auth_headers, session, user, fake_stripe):
        fake_stripe.fail = True

        response = client.post("/payments/checkout/recharge", json={"amount": "100"}, headers=auth_headers)

        assert response.status_code == 502
        assert response.json() == {"message": "Failed to create payment session"}
        session.expire_all()
        assert session.get(User, user.id).balance_cents == 5000

    def test_unknown_book(self, client, auth_headers):
        response = client.post("/payments/checkout/book", json={"book_id": 404}, headers=auth_headers)

        assert response.status_code == 404

    def test_out_of_stock_book(self, client, auth_headers, session, book, fake_stripe):
        book.stock = 0
        session.add(book)
        session.commit()

        response = client.post("/payments/checkout/book", json={"book_id": book.id}, headers=auth_headers)

        assert response.status_code == 409
        assert fake_stripe.calls == []

    def test_non_positive_amount(self, client, auth_headers):
        response = client.post("/payments/checkout/recharge", json={"amount": "0"}, headers=auth_headers)

        assert response.status_code == 422
