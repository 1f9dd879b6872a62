# tests/conftest.py
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

# Importing fintrack.main builds the module-level app from environment
# settings; keep its sqlite file out of the working tree.
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="fintrack-tests-"))
os.environ.setdefault("DEBUG", "false")

import httpx
import pytest

from fintrack.core.config import Settings
from fintrack.core.errors import PersistenceError
from fintrack.db.dal import Database
from fintrack.db.migrate import apply_migrations
from fintrack.models.records import ExpenseRecord, IncomeRecord, MonetaryRecord, RecordKind
from fintrack.services.rates.cache_service import RateCache
from fintrack.services.rates.conversion import CurrencyConversionEngine
from fintrack.services.rates.providers import ExchangeRateApiFetcher

BASE_URL = "https://rates.test/v6"
API_KEY = "test-key"
USER_ID = "user-1"


class InMemoryKeyValueStore:
    def __init__(self):
        self.data: Dict[str, str] = {}
        self.set_calls = 0

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_calls += 1
        self.data[key] = value


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeRecordRepository:
    """In-memory MonetaryRecordRepository with call counters and failure switches."""

    def __init__(self, kind: RecordKind, records=()):
        self.kind = kind
        self.rows: Dict[str, MonetaryRecord] = {r.id: r for r in records}
        self.list_calls = 0
        self.upsert_calls = 0
        self.fail_list = False
        self.fail_upsert = False

    async def list_by_currency(self, user_id: str, currency: str) -> List[MonetaryRecord]:
        self.list_calls += 1
        if self.fail_list:
            raise PersistenceError(f"Failed to fetch {self.kind.value}: store offline")
        return [
            r for r in self.rows.values() if r.user_id == user_id and r.currency == currency
        ]

    async def bulk_upsert(self, records) -> None:
        self.upsert_calls += 1
        if self.fail_upsert:
            raise PersistenceError(f"Failed to update {self.kind.value}: store rejected upsert")
        for r in records:
            self.rows[r.id] = r


class ProviderStub:
    """MockTransport handler answering pair requests from a rate table."""

    def __init__(self, rates: Optional[Dict[tuple, float]] = None):
        self.rates = rates or {}
        self.requests: List[httpx.Request] = []
        self.responder: Optional[Callable[[httpx.Request], httpx.Response]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responder is not None:
            return self.responder(request)
        *_, from_code, to_code = request.url.path.split("/")
        rate = self.rates.get((from_code, to_code))
        if rate is None:
            return httpx.Response(404, json={"result": "error", "error-type": "unsupported-code"})
        return httpx.Response(
            200,
            json={
                "result": "success",
                "base_code": from_code,
                "target_code": to_code,
                "conversion_rate": rate,
            },
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_expense(record_id: str, amount: float, currency: str, user_id: str = USER_ID) -> ExpenseRecord:
    return ExpenseRecord(
        id=record_id,
        user_id=user_id,
        category_id="cat-food",
        amount=amount,
        currency=currency,
        description="lunch",
        date="2024-05-01",
        payment_method="cash",
        created_at="2024-05-01T10:00:00.000Z",
        updated_at="2024-05-01T10:00:00.000Z",
    )


def make_income(record_id: str, amount: float, currency: str, user_id: str = USER_ID) -> IncomeRecord:
    return IncomeRecord(
        id=record_id,
        user_id=user_id,
        category_id="cat-salary",
        amount=amount,
        currency=currency,
        description="salary",
        date="2024-05-01",
        is_recurring=True,
        recurring_period="monthly",
        created_at="2024-05-01T10:00:00.000Z",
        updated_at="2024-05-01T10:00:00.000Z",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def rate_cache(kv_store, clock) -> RateCache:
    return RateCache(kv_store, clock=clock)


@pytest.fixture
def provider() -> ProviderStub:
    return ProviderStub()


@pytest.fixture
def fetcher(rate_cache, provider) -> ExchangeRateApiFetcher:
    return ExchangeRateApiFetcher(
        rate_cache, base_url=BASE_URL, api_key=API_KEY, client=provider.client()
    )


@pytest.fixture
def expenses_repo() -> FakeRecordRepository:
    return FakeRecordRepository(RecordKind.EXPENSE)


@pytest.fixture
def income_repo() -> FakeRecordRepository:
    return FakeRecordRepository(RecordKind.INCOME)


@pytest.fixture
def engine(rate_cache, fetcher, expenses_repo, income_repo) -> CurrencyConversionEngine:
    return CurrencyConversionEngine(
        rate_cache,
        fetcher,
        expenses_repo,
        income_repo,
        now_iso=lambda: "2024-05-01T12:00:00.000Z",
    )


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "fintrack.sqlite3"
    apply_migrations(path)
    return path


@pytest.fixture
def db(db_path: Path) -> Database:
    return Database(db_path)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    s = Settings(
        data_dir=tmp_path,
        db_path=tmp_path / "api.sqlite3",
        debug=False,
        exchange_api_base_url=BASE_URL,
        exchange_rate_api_key=API_KEY,
    )
    s.init_post_load()
    return s
