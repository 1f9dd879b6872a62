"""Storage and provider abstractions for the rate subsystem.

`KeyValueStore` is the durable string store the rate cache persists to; the
sqlite-backed implementation lives on the `metadata` table so cached rates
survive restarts. `RateFetcher` is the contract for live rate lookups.
"""
from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from typing import Optional, Protocol, TYPE_CHECKING

from fintrack.core.errors import PersistenceError

if TYPE_CHECKING:  # pragma: no cover
    from fintrack.db.dal import Database


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MetadataKeyValueStore:
    """KeyValueStore over the sqlite `metadata` table."""

    def __init__(self, db: "Database"):
        self._db = db

    def get(self, key: str) -> Optional[str]:
        try:
            return self._db.get_metadata_value(key)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            self._db.set_metadata_value(key, value)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to write {key}: {e}") from e


class RateFetcher(ABC):
    @abstractmethod
    async def fetch_rate(self, from_currency: str, to_currency: str) -> float:
        """Return units of to_currency per 1 unit of from_currency."""
        raise NotImplementedError
