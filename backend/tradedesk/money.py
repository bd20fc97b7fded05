from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, halves away from zero."""
    if denominator == 0:
        raise ZeroDivisionError("denominator must be non-zero")
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def vat_amount_cents(line_value_cents: int, vat_rate_bps: int) -> int:
    """VAT on a line value; rates are basis points (500 = 5%)."""
    return div_round_half_up(line_value_cents * vat_rate_bps, 10_000)
