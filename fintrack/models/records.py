from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .constants import SUPPORTED_CODES


class RecordKind(str, Enum):
    """Monetary record collections, valued by their table name."""

    EXPENSE = "expenses"
    INCOME = "income_records"


class MonetaryRecord(BaseModel):
    """Fields shared by expenses and income records.

    ``amount`` is always expressed in ``currency``; the conversion engine
    rewrites both together.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    category_id: Optional[str] = None
    amount: float
    currency: str
    description: str = ""
    date: str  # ISO date (YYYY-MM-DD)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def valid_currency(cls, v: str) -> str:
        if v not in SUPPORTED_CODES:
            raise ValueError("unsupported currency")
        return v


class ExpenseRecord(MonetaryRecord):
    payment_method: Optional[str] = None
    receipt_url: Optional[str] = None


class IncomeRecord(MonetaryRecord):
    is_recurring: bool = False
    recurring_period: Optional[str] = None


RECORD_MODELS = {
    RecordKind.EXPENSE: ExpenseRecord,
    RecordKind.INCOME: IncomeRecord,
}
