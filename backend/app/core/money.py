"""Decimal helpers for currency amounts."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
# Largest magnitude a Numeric(10, 2) column holds.
MAX_AMOUNT = Decimal("99999999.99")


def to_money(value) -> Decimal:
    """Quantize a stored or computed amount to cents; None counts as zero."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value) -> Decimal | None:
    """Parse user input into a storable Decimal, or None when it is not one.

    Non-numeric, non-finite and out-of-range values (more than eight integer
    digits once rounded to cents) all yield None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            return None
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None
    if abs(amount) > MAX_AMOUNT:
        return None
    return amount
