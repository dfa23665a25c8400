"""Monetary rounding and formatting helpers shared by every bounded context.

All arithmetic on amounts happens on ``Decimal`` values. Amounts are rounded
to two places with half-away-from-zero rounding; ``Decimal``'s ``ROUND_HALF_UP``
rounds ties away from zero for negative values as well.

Protean ``Float`` fields hold the rounded value. Anything read back from a
field goes through ``to_money()`` before it is compared or combined, so two
amounts are only ever compared as rounded decimals.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Convert ``value`` to a ``Decimal`` without introducing float noise.

    Floats are converted through their shortest ``repr`` so that ``0.1``
    becomes ``Decimal("0.1")`` rather than its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc


def round_money(value) -> Decimal:
    """Round to two decimal places, ties away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# Stored amounts are read back through the same rounding rule.
to_money = round_money


def is_positive(value) -> bool:
    return to_decimal(value) > 0


def format_money(value, currency: str | None = None) -> str:
    """Render an amount as ``1,234.50`` or ``1,234.50 USD``."""
    rendered = f"{round_money(value):,.2f}"
    return f"{rendered} {currency}" if currency else rendered
