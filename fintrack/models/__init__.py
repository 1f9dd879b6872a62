"""Pydantic domain models for the personal finance tracker."""

from .constants import (
    CURRENCY_NAMES,
    DEFAULT_CURRENCY,
    SUPPORTED_CODES,
    CurrencyCode,
    parse_currency,
)  # re-export
from .records import ExpenseRecord, IncomeRecord, MonetaryRecord, RecordKind
from .rates import ConversionSummary, RateCacheEntry, RateSnapshot

__all__ = [
    "CURRENCY_NAMES",
    "DEFAULT_CURRENCY",
    "SUPPORTED_CODES",
    "CurrencyCode",
    "parse_currency",
    "ExpenseRecord",
    "IncomeRecord",
    "MonetaryRecord",
    "RecordKind",
    "ConversionSummary",
    "RateCacheEntry",
    "RateSnapshot",
]
