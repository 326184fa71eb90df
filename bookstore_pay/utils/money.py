"""Decimal <-> integer cents conversion.

Money is held as integer cents inside the service; decimals appear only
in request/response bodies.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from bookstore_pay.exceptions import ValidationError

CENT = Decimal("0.01")


def to_cents(amount: Union[Decimal, str, int, float]) -> int:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {amount!r}")
    return int(value.quantize(CENT, rounding=ROUND_HALF_UP) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: int) -> str:
    return f"{from_cents(cents):.2f}"
