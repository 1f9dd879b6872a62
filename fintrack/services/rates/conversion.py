from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, List, Optional, Sequence

import httpx

from fintrack.core.config import Settings
from fintrack.core.errors import PartialConversionError, PersistenceError
from fintrack.db.dal import Database, utc_now_iso
from fintrack.models.constants import parse_currency
from fintrack.models.rates import ConversionSummary
from fintrack.models.records import MonetaryRecord
from fintrack.services.money import scale_amount
from fintrack.services.record_store import (
    MonetaryRecordRepository,
    build_record_repositories,
)
from .base import MetadataKeyValueStore, RateFetcher
from .cache_service import RateCache
from .providers import ExchangeRateApiFetcher

"""Currency re-denomination engine.

When a user changes their default currency every expense and income record
still in the old currency is re-priced at one resolved rate:

    1. validate both codes (before any I/O); equal codes are a no-op
    2. resolve the rate: rate cache, else live fetch (which caches it)
    3. load expenses, then income records, in from_currency
    4. re-price each record: amount = round2(amount * rate), currency, updated_at
    5. upsert expenses, then income records

Nothing is written when steps 2-3 fail. The two upserts are independent
writes: an income failure after the expense upsert leaves expenses converted
and raises PartialConversionError. A rerun is safe because step 3 filters on
from_currency, so already converted expenses are not touched again.

Two concurrent conversions for the same user are not serialized (last write
wins).
"""

logger = logging.getLogger("fintrack.conversion")


def reprice_records(
    records: Sequence[MonetaryRecord],
    rate: float,
    to_currency: str,
    updated_at: str,
) -> List[MonetaryRecord]:
    """Return copies of ``records`` denominated in ``to_currency``."""
    return [
        record.model_copy(
            update={
                "amount": scale_amount(record.amount, rate),
                "currency": to_currency,
                "updated_at": updated_at,
            }
        )
        for record in records
    ]


class CurrencyConversionEngine:
    def __init__(
        self,
        cache: RateCache,
        fetcher: RateFetcher,
        expenses: MonetaryRecordRepository,
        income: MonetaryRecordRepository,
        now_iso: Callable[[], str] = utc_now_iso,
    ):
        self.cache = cache
        self._fetcher = fetcher
        self._expenses = expenses
        self._income = income
        self._now_iso = now_iso

    async def resolve_rate(self, from_currency: str, to_currency: str) -> float:
        from_code = parse_currency(from_currency).value
        to_code = parse_currency(to_currency).value
        if from_code == to_code:
            return 1.0
        cached = self.cache.get_rate(from_code, to_code)
        if cached is not None:
            logger.debug(
                "using cached rate",
                extra={"from_currency": from_code, "to_currency": to_code, "rate": cached},
            )
            return cached
        return await self._fetcher.fetch_rate(from_code, to_code)

    async def convert_amount(
        self, amount: float, from_currency: str, to_currency: str
    ) -> float:
        from_code = parse_currency(from_currency).value
        to_code = parse_currency(to_currency).value
        if from_code == to_code:
            return amount
        rate = await self.resolve_rate(from_code, to_code)
        return scale_amount(amount, rate)

    async def _persist(
        self, repo: MonetaryRecordRepository, records: Sequence[MonetaryRecord]
    ) -> None:
        if records:
            await repo.bulk_upsert(records)

    async def convert_all_records(
        self, user_id: str, from_currency: str, to_currency: str
    ) -> ConversionSummary:
        from_code = parse_currency(from_currency).value
        to_code = parse_currency(to_currency).value
        log_extra = {"user_id": user_id, "from_currency": from_code, "to_currency": to_code}
        if from_code == to_code:
            return ConversionSummary(
                user_id=user_id, from_currency=from_code, to_currency=to_code, rate=1.0
            )

        logger.info("starting currency conversion", extra=log_extra)
        rate = await self.resolve_rate(from_code, to_code)

        expenses = await self._expenses.list_by_currency(user_id, from_code)
        income = await self._income.list_by_currency(user_id, from_code)
        logger.info(
            "found %d expenses and %d income records to convert",
            len(expenses),
            len(income),
            extra={**log_extra, "rate": rate},
        )

        updated_at = self._now_iso()
        new_expenses = reprice_records(expenses, rate, to_code, updated_at)
        new_income = reprice_records(income, rate, to_code, updated_at)

        await self._persist(self._expenses, new_expenses)
        try:
            await self._persist(self._income, new_income)
        except PersistenceError as e:
            if not new_expenses:
                raise
            logger.error(
                "partial conversion: expenses converted, income records left in %s",
                from_code,
                extra={**log_extra, "expenses_converted": len(new_expenses)},
            )
            raise PartialConversionError(
                f"Converted {len(new_expenses)} expenses to {to_code} but failed to "
                f"update income records: {e.message}",
                from_currency=from_code,
                to_currency=to_code,
                expenses_converted=len(new_expenses),
            ) from e

        summary = ConversionSummary(
            user_id=user_id,
            from_currency=from_code,
            to_currency=to_code,
            rate=rate,
            expenses_converted=len(new_expenses),
            income_converted=len(new_income),
        )
        logger.info(
            "currency conversion complete",
            extra={
                **log_extra,
                "rate": rate,
                "expenses_converted": summary.expenses_converted,
                "income_converted": summary.income_converted,
            },
        )
        return summary


def build_conversion_engine(
    settings: Settings,
    db: Optional[Database] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> CurrencyConversionEngine:
    """Wire the engine against the sqlite database named by ``settings``."""
    db = db or Database(settings.db_path)
    cache = RateCache(
        MetadataKeyValueStore(db),
        ttl=timedelta(seconds=settings.rates_cache_ttl_seconds),
    )
    fetcher = ExchangeRateApiFetcher(
        cache,
        base_url=settings.rates_base_url,
        api_key=settings.exchange_rate_api_key,
        timeout=settings.http_timeout_seconds,
        client=client,
    )
    expenses, income = build_record_repositories(db)
    return CurrencyConversionEngine(cache, fetcher, expenses, income)
