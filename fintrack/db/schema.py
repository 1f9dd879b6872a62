"""Database schema DDL definitions and initialization utilities.

Tables:
  - expenses: expense records, one owner per row
  - income_records: income records, one owner per row
  - user_preferences: per-user default currency (and theme)
  - metadata: key/value store (schema version, cached exchange rates)
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

EXPENSES_DDL = f"""
CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    category_id TEXT,
    amount REAL NOT NULL,
    currency TEXT NOT NULL, -- 'IDR' | 'AED' | 'USD'
    description TEXT NOT NULL DEFAULT '',
    date TEXT NOT NULL, -- ISO date (YYYY-MM-DD)
    payment_method TEXT,
    receipt_url TEXT,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

INCOME_RECORDS_DDL = f"""
CREATE TABLE IF NOT EXISTS income_records (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    category_id TEXT,
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    date TEXT NOT NULL,
    is_recurring INTEGER NOT NULL DEFAULT 0,
    recurring_period TEXT,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

USER_PREFERENCES_DDL = f"""
CREATE TABLE IF NOT EXISTS user_preferences (
    user_id TEXT PRIMARY KEY,
    theme TEXT NOT NULL DEFAULT 'system' CHECK (theme IN ('light','dark','system')),
    default_currency TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

METADATA_DDL = f"""
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

EXPENSES_USER_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expenses_user_currency ON expenses(user_id, currency);"
)
INCOME_USER_INDEX_DDL = "CREATE INDEX IF NOT EXISTS idx_income_user_currency ON income_records(user_id, currency);"

DDL_ORDER: Sequence[str] = (
    EXPENSES_DDL,
    INCOME_RECORDS_DDL,
    USER_PREFERENCES_DDL,
    METADATA_DDL,
    EXPENSES_USER_INDEX_DDL,
    INCOME_USER_INDEX_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
