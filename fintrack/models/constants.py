"""Domain constants: the closed set of supported currencies.

Every stored or requested currency code must be a member of ``CurrencyCode``;
``parse_currency`` is the single validation point used by the rate cache,
fetcher, conversion engine and preference store.
"""

from enum import Enum
from typing import Dict, FrozenSet

from fintrack.core.errors import UnsupportedCurrency


class CurrencyCode(str, Enum):
    IDR = "IDR"
    AED = "AED"
    USD = "USD"


CURRENCY_NAMES: Dict[CurrencyCode, str] = {
    CurrencyCode.IDR: "Indonesian Rupiah",
    CurrencyCode.AED: "UAE Dirham",
    CurrencyCode.USD: "US Dollar",
}

SUPPORTED_CODES: FrozenSet[str] = frozenset(c.value for c in CurrencyCode)

DEFAULT_CURRENCY = CurrencyCode.IDR


def parse_currency(code: object) -> CurrencyCode:
    """Return the ``CurrencyCode`` for ``code`` (case-insensitive) or raise."""
    if isinstance(code, CurrencyCode):
        return code
    if not isinstance(code, str):
        raise UnsupportedCurrency(code)
    try:
        return CurrencyCode(code.strip().upper())
    except ValueError:
        raise UnsupportedCurrency(code) from None
