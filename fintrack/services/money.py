"""Money / rounding helpers.

Converted amounts are stored with 2 decimals regardless of currency (IDR
included); hiding decimals for currencies without subunits is a display
concern.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round2(value: float) -> float:
    # str() first so binary float noise (e.g. 2.675) rounds as written
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def scale_amount(amount: float, rate: float) -> float:
    """Multiply ``amount`` by ``rate`` and round half-up to cents."""
    return round2(amount * rate)
