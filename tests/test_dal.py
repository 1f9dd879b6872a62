import sqlite3

import pytest

from conftest import USER_ID, make_expense, make_income
from fintrack.core.errors import PersistenceError
from fintrack.db.dal import Database
from fintrack.db.migrate import CURRENT_SCHEMA_VERSION, apply_migrations
from fintrack.models.records import RecordKind
from fintrack.services.rates.base import MetadataKeyValueStore
from fintrack.services.record_store import SQLiteRecordRepository, build_record_repositories


def test_apply_migrations_is_idempotent(db_path, db):
    assert apply_migrations(db_path) == CURRENT_SCHEMA_VERSION
    assert apply_migrations(db_path) == CURRENT_SCHEMA_VERSION
    assert db.get_metadata_value("schema_version") == str(CURRENT_SCHEMA_VERSION)


def test_upsert_inserts_then_updates(db):
    row = make_expense("e1", 100000, "IDR").model_dump()
    assert db.upsert_records(RecordKind.EXPENSE, [row]) == 1

    row.update(amount=6.5, currency="USD", updated_at="2024-05-02T00:00:00.000Z")
    db.upsert_records(RecordKind.EXPENSE, [row])

    stored = db.get_record(RecordKind.EXPENSE, "e1")
    assert stored["amount"] == 6.5
    assert stored["currency"] == "USD"
    assert stored["created_at"] == "2024-05-01T10:00:00.000Z"
    assert stored["updated_at"] == "2024-05-02T00:00:00.000Z"
    assert len(db.list_records(RecordKind.EXPENSE, USER_ID)) == 1


def test_list_records_filters_by_owner_and_currency(db):
    db.upsert_records(
        RecordKind.INCOME,
        [
            make_income("i1", 10, "IDR").model_dump(),
            make_income("i2", 20, "USD").model_dump(),
            make_income("i3", 30, "IDR", user_id="other").model_dump(),
        ],
    )
    rows = db.list_records(RecordKind.INCOME, USER_ID, "IDR")
    assert [r["id"] for r in rows] == ["i1"]
    assert len(db.list_records(RecordKind.INCOME, USER_ID)) == 2


def test_upsert_is_all_or_nothing(db):
    good = make_expense("e1", 1, "IDR").model_dump()
    bad = make_expense("e2", 1, "IDR").model_dump()
    bad["date"] = None  # violates NOT NULL
    with pytest.raises(sqlite3.IntegrityError):
        db.upsert_records(RecordKind.EXPENSE, [good, bad])
    assert db.get_record(RecordKind.EXPENSE, "e1") is None


def test_metadata_roundtrip(db):
    assert db.get_metadata_value("exchange_rates_IDR") is None
    db.set_metadata_value("exchange_rates_IDR", '{"USD":6.5e-05}')
    db.set_metadata_value("exchange_rates_IDR", '{"USD":6.6e-05}')
    assert db.get_metadata_value("exchange_rates_IDR") == '{"USD":6.6e-05}'


def test_preferences_roundtrip(db):
    assert db.get_user_preferences(USER_ID) is None
    db.set_default_currency(USER_ID, "USD")
    db.set_default_currency(USER_ID, "AED")
    prefs = db.get_user_preferences(USER_ID)
    assert prefs["default_currency"] == "AED"
    assert prefs["theme"] == "system"


@pytest.mark.asyncio
async def test_repository_returns_typed_records(db):
    expenses, income = build_record_repositories(db)
    await expenses.bulk_upsert([make_expense("e1", 100000, "IDR")])
    await income.bulk_upsert([make_income("i1", 200000, "IDR")])

    [expense] = await expenses.list_by_currency(USER_ID, "IDR")
    [record] = await income.list_by_currency(USER_ID, "IDR")

    assert expense.payment_method == "cash"
    assert record.is_recurring is True
    assert await expenses.list_by_currency(USER_ID, "USD") == []


@pytest.mark.asyncio
async def test_repository_wraps_store_errors(tmp_path):
    # no schema applied: every query fails
    repo = SQLiteRecordRepository(Database(tmp_path / "empty.sqlite3"), RecordKind.EXPENSE)
    with pytest.raises(PersistenceError):
        await repo.list_by_currency(USER_ID, "IDR")
    with pytest.raises(PersistenceError):
        await repo.bulk_upsert([make_expense("e1", 1, "IDR")])


@pytest.mark.asyncio
async def test_repository_accepts_negative_amounts(db):
    # refunds are stored as negative expenses
    db.upsert_records(RecordKind.EXPENSE, [make_expense("e1", -50.0, "IDR").model_dump()])
    expenses, _ = build_record_repositories(db)

    [refund] = await expenses.list_by_currency(USER_ID, "IDR")

    assert refund.amount == -50.0


@pytest.mark.asyncio
async def test_repository_reports_malformed_rows_as_persistence_error(db):
    row = make_expense("e1", 1, "IDR").model_dump()
    row["amount"] = "not-a-number"
    db.upsert_records(RecordKind.EXPENSE, [row])
    expenses, _ = build_record_repositories(db)

    with pytest.raises(PersistenceError):
        await expenses.list_by_currency(USER_ID, "IDR")


def test_metadata_store_wraps_store_errors(tmp_path):
    store = MetadataKeyValueStore(Database(tmp_path / "empty.sqlite3"))
    with pytest.raises(PersistenceError):
        store.get("exchange_rates_IDR")
    with pytest.raises(PersistenceError):
        store.set("exchange_rates_IDR", "{}")
