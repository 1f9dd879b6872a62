"""Data Access Layer over the sqlite database.

Responsibilities
----------------
- Query and bulk upsert monetary records (expenses, income) per owner.
- Read / write the per-user currency preference.
- Expose the metadata key/value table used by the rate cache.

All methods are synchronous; async callers go through
`fintrack.services.record_store` which moves the work off the event loop.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import sqlite3
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fintrack.models.records import RecordKind

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

_COMMON_COLUMNS: Tuple[str, ...] = (
    "id",
    "user_id",
    "category_id",
    "amount",
    "currency",
    "description",
    "date",
)
RECORD_COLUMNS: Dict[RecordKind, Tuple[str, ...]] = {
    RecordKind.EXPENSE: _COMMON_COLUMNS
    + ("payment_method", "receipt_url", "created_at", "updated_at"),
    RecordKind.INCOME: _COMMON_COLUMNS
    + ("is_recurring", "recurring_period", "created_at", "updated_at"),
}
# Columns never rewritten by an upsert of an existing row
_IMMUTABLE_COLUMNS = {"id", "created_at"}


def utc_now_iso() -> str:
    """Current UTC time in the same format as `UTC_NOW_SQL`."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    # ------------------------------------------------------------------
    # Monetary records
    def list_records(
        self,
        kind: RecordKind,
        user_id: str,
        currency: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        clauses = ["user_id = ?"]
        params: List[Any] = [user_id]
        if currency:
            clauses.append("currency = ?")
            params.append(currency)
        where = " WHERE " + " AND ".join(clauses)
        sql = f"SELECT * FROM {kind.value}{where} ORDER BY date DESC, id"
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [dict(r) for r in cur.fetchall()]

    def get_record(self, kind: RecordKind, record_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT * FROM {kind.value} WHERE id = ?", (record_id,))
            row = cur.fetchone()
            return dict(row) if row else None

    def upsert_records(self, kind: RecordKind, rows: Sequence[Dict[str, Any]]) -> int:
        """Insert or update rows in one transaction; returns the row count.

        Either every row is written or none is (the transaction is rolled
        back on the first failing statement).
        """
        if not rows:
            return 0
        columns = RECORD_COLUMNS[kind]
        updates = ", ".join(
            f"{c} = excluded.{c}" for c in columns if c not in _IMMUTABLE_COLUMNS
        )
        sql = (
            f"INSERT INTO {kind.value} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}"
        )
        now = utc_now_iso()
        params = []
        for row in rows:
            values = dict(row)
            values["created_at"] = values.get("created_at") or now
            values["updated_at"] = values.get("updated_at") or now
            if "is_recurring" in columns:
                values["is_recurring"] = 1 if values.get("is_recurring") else 0
            params.append(tuple(values.get(c) for c in columns))
        conn = self._connect()
        try:
            with conn:
                conn.executemany(sql, params)
        finally:
            conn.close()
        return len(params)

    # ------------------------------------------------------------------
    # User preferences
    def get_user_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM user_preferences WHERE user_id = ?", (user_id,))
            row = cur.fetchone()
            return dict(row) if row else None

    def set_default_currency(self, user_id: str, currency: str) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO user_preferences (user_id, default_currency)
                VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    default_currency = excluded.default_currency,
                    updated_at = ({UTC_NOW_SQL})
                """,
                (user_id, currency),
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Metadata key/value
    def get_metadata_value(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT value FROM metadata WHERE key=?", (key,))
            row = cur.fetchone()
            return row[0] if row else None

    def set_metadata_value(self, key: str, value: str) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"INSERT INTO metadata(key,value) VALUES(?,?) ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=({UTC_NOW_SQL})",
                (key, value),
            )
            conn.commit()
