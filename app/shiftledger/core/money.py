from __future__ import annotations

from decimal import Decimal, InvalidOperation

from app.shiftledger.core.config import settings
from app.shiftledger.core.error_catalog import ValidationError

CENT = Decimal("0.01")


def from_cents(cents: int) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)


def to_cents(amount: Decimal) -> int:
    return int((amount / CENT).to_integral_value())


def parse_amount(value: object) -> Decimal:
    """Coerce a payment amount to a positive two-place Decimal.

    Floats go through ``str`` so 100.1 stays 100.1 rather than its binary
    expansion.
    """
    if isinstance(value, bool):
        raise ValidationError("amount must be a number", field="amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("amount must be a number", field="amount") from None
    if not amount.is_finite():
        raise ValidationError("amount must be a finite number", field="amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0", field="amount")
    try:
        quantized = amount.quantize(CENT)
    except InvalidOperation:
        raise ValidationError("amount too large", field="amount") from None
    if amount != quantized:
        raise ValidationError("amount supports at most two decimal places", field="amount")
    if quantized > settings.MAX_PAYMENT_AMOUNT:
        raise ValidationError("amount too large", field="amount", maximum=format(settings.MAX_PAYMENT_AMOUNT, "f"))
    return quantized
