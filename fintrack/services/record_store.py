"""Async repositories for monetary records.

The conversion engine only needs two operations per collection: select a
user's records in one currency, and bulk upsert re-priced records. The
sqlite implementation runs the blocking DAL calls in a worker thread and
reports any store failure as `PersistenceError`.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import List, Protocol, Sequence

from pydantic import ValidationError

from fintrack.core.errors import PersistenceError
from fintrack.db.dal import Database
from fintrack.models.records import RECORD_MODELS, MonetaryRecord, RecordKind

logger = logging.getLogger("fintrack.records")


class MonetaryRecordRepository(Protocol):
    kind: RecordKind

    async def list_by_currency(
        self, user_id: str, currency: str
    ) -> List[MonetaryRecord]: ...

    async def bulk_upsert(self, records: Sequence[MonetaryRecord]) -> None: ...


class SQLiteRecordRepository:
    def __init__(self, db: Database, kind: RecordKind):
        self._db = db
        self.kind = kind
        self._model = RECORD_MODELS[kind]

    async def list_by_currency(
        self, user_id: str, currency: str
    ) -> List[MonetaryRecord]:
        try:
            rows = await asyncio.to_thread(
                self._db.list_records, self.kind, user_id, currency
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to fetch {self.kind.value}: {e}") from e
        try:
            return [self._model.model_validate(r) for r in rows]
        except ValidationError as e:
            raise PersistenceError(f"Malformed row in {self.kind.value}: {e}") from e

    async def bulk_upsert(self, records: Sequence[MonetaryRecord]) -> None:
        rows = [r.model_dump() for r in records]
        try:
            written = await asyncio.to_thread(self._db.upsert_records, self.kind, rows)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to update {self.kind.value}: {e}") from e
        logger.debug(
            "upserted records", extra={"record_kind": self.kind.value, "records": written}
        )


def build_record_repositories(
    db: Database,
) -> tuple[SQLiteRecordRepository, SQLiteRecordRepository]:
    """Return (expenses, income) repositories sharing one database."""
    return (
        SQLiteRecordRepository(db, RecordKind.EXPENSE),
        SQLiteRecordRepository(db, RecordKind.INCOME),
    )
