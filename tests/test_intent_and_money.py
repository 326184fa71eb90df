from decimal import Decimal

import pytest

from bookstore_pay.constants.payment import IntentKind
from bookstore_pay.exceptions import ValidationError
from bookstore_pay.schemas.payment_schemas import IntentDescriptor
from bookstore_pay.utils.money import format_cents, from_cents, to_cents


class TestMoney:
    @pytest.mark.parametrize(
        "amount, cents",
        [(Decimal("49.9"), 4990), ("0.015", 2), (200, 20000), ("19.99", 1999)],
    )
    def test_to_cents(self, amount, cents):
        assert to_cents(amount) == cents

    @pytest.mark.parametrize("amount", ["abc", "NaN", "Infinity"])
    def test_rejects_non_numbers(self, amount):
        with pytest.raises(ValidationError):
            to_cents(amount)

    def test_from_cents(self):
        assert from_cents(28000) == Decimal("280.00")
        assert format_cents(3000) == "30.00"


class TestIntentDescriptor:
    def test_reads_metadata(self):
        intent = IntentDescriptor.from_metadata(
            {"userId": "3", "kind": "BOOK", "amount": "4900", "bookId": "12", "bookTitle": "ignored"}
        )

        assert intent == IntentDescriptor(user_id=3, kind=IntentKind.BOOK, amount_cents=4900, book_id=12)

    def test_missing_keys(self):
        with pytest.raises(ValidationError) as exc:
            IntentDescriptor.from_metadata({"kind": "RECHARGE"})

        assert "userId" in exc.value.message
        assert "amount" in exc.value.message

    def test_no_metadata(self):
        with pytest.raises(ValidationError):
            IntentDescriptor.from_metadata(None)

    @pytest.mark.parametrize(
        "metadata",
        [
            {"userId": "3", "kind": "GIFT", "amount": "100"},
            {"userId": "3", "kind": "RECHARGE", "amount": "-5"},
            {"userId": "3", "kind": "RECHARGE", "amount": "12.5"},
            {"userId": "3", "kind": "RECHARGE", "amount": "100", "bookId": "4"},
            {"userId": "abc", "kind": "RECHARGE", "amount": "100"},
        ],
    )
    def test_malformed_metadata(self, metadata):
        with pytest.raises(ValidationError):
            IntentDescriptor.from_metadata(metadata)

    def test_metadata_values_are_strings(self):
        intent = IntentDescriptor(user_id=3, kind=IntentKind.RECHARGE, amount_cents=10000)

        assert intent.to_metadata() == {"userId": "3", "kind": "RECHARGE", "amount": "10000"}
