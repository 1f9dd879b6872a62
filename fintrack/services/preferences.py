"""Per-user default currency and the change-currency flow.

Changing the default currency re-prices the user's stored records first and
persists the new preference only once the conversion succeeded; a failed or
partial conversion leaves the old preference in place so the caller can
report it and retry.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3

from fintrack.core.errors import PersistenceError
from fintrack.db.dal import Database
from fintrack.models.constants import DEFAULT_CURRENCY, SUPPORTED_CODES, parse_currency
from fintrack.models.rates import ConversionSummary
from fintrack.services.rates.conversion import CurrencyConversionEngine

logger = logging.getLogger("fintrack.preferences")


class CurrencyPreferenceService:
    def __init__(
        self,
        db: Database,
        engine: CurrencyConversionEngine,
        default_currency: str = DEFAULT_CURRENCY.value,
    ):
        self._db = db
        self._engine = engine
        self._default = parse_currency(default_currency).value

    def get_default_currency(self, user_id: str) -> str:
        try:
            row = self._db.get_user_preferences(user_id)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to fetch preferences: {e}") from e
        stored = row["default_currency"] if row else None
        if stored not in SUPPORTED_CODES:
            return self._default
        return stored

    def set_default_currency(self, user_id: str, currency: str) -> str:
        code = parse_currency(currency).value
        try:
            self._db.set_default_currency(user_id, code)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to update preferences: {e}") from e
        return code

    async def change_default_currency(
        self, user_id: str, currency: str
    ) -> ConversionSummary:
        new_code = parse_currency(currency).value
        current = await asyncio.to_thread(self.get_default_currency, user_id)
        summary = await self._engine.convert_all_records(user_id, current, new_code)
        await asyncio.to_thread(self.set_default_currency, user_id, new_code)
        logger.info(
            "default currency updated",
            extra={"user_id": user_id, "from_currency": current, "to_currency": new_code},
        )
        return summary
