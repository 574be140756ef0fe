from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Normalize money values to NUMERIC(12,2) precision."""
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def money_str(value: Decimal) -> str:
    return str(quantize_money(value))


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    # Decimal addition keeps cents exact; floats would drift.
    return quantize_money(sum(amounts, Decimal("0.00")))


def format_currency(value: Decimal) -> str:
    """Render a CAD amount the way the web client shows it, e.g. "-$1,234.50"."""
    amount = quantize_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
