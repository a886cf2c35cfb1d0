"""
Cent-precise money arithmetic.

All monetary values are Decimals quantized to two places. Every arithmetic
step that produces money goes back through round2() so binary float drift
(0.1 + 0.2 = 0.30000000000000004) never reaches stored state.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value) -> Decimal:
    """
    Round a monetary value to cents, half away from zero.

    Accepts Decimal, int, float or numeric strings. Floats go through repr
    so 0.1 + 0.2 rounds to exactly Decimal("0.30").

    Raises:
        ValueError: If the value is not numeric or not finite
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Not a finite monetary amount: {value!r}")

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value) -> Decimal:
    """
    Tolerant parse for incoming payment amounts.

    Anything that is not a finite positive number becomes ZERO rather than
    raising. Strict validation belongs to the HTTP boundary.
    """
    try:
        amount = round2(value)
    except (ValueError, TypeError):
        return ZERO
    return amount if amount > ZERO else ZERO


def money_sum(values: Iterable[Decimal]) -> Decimal:
    """Sum monetary values, re-rounding the total."""
    return round2(sum(values, ZERO))
