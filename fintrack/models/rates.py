from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict

from pydantic import BaseModel, Field


@dataclass
class RateCacheEntry:
    """Cached rates for one source currency.

    A single ``fetched_at`` covers every target in ``rates``.
    """

    base_code: str
    rates: Dict[str, float] = field(default_factory=dict)
    fetched_at: datetime | None = None

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return self.fetched_at is not None and now - self.fetched_at <= ttl


class RateSnapshot(BaseModel):
    base_code: str
    rates: Dict[str, float]
    time_last_update: datetime
    time_next_update: datetime


class ConversionSummary(BaseModel):
    user_id: str
    from_currency: str
    to_currency: str
    rate: float = Field(..., gt=0)
    expenses_converted: int = 0
    income_converted: int = 0

    @property
    def total_converted(self) -> int:
        return self.expenses_converted + self.income_converted
