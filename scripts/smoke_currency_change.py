import json
import os
import sys
import tempfile
from pathlib import Path

from fastapi.testclient import TestClient

"""Smoke script for the change-default-currency flow.

Seeds a temp database with one IDR expense and one IDR income record, primes
the rate cache with a manual IDR->USD rate (so no provider call or API key is
needed), switches the user's default currency to USD through the API and
prints the conversion summary plus the stored records.

NOTE: This is a lightweight diagnostic and not a formal test.
"""


def run():
    from fintrack.core.config import Settings
    from fintrack.db.dal import Database
    from fintrack.main import create_app
    from fintrack.models.records import ExpenseRecord, IncomeRecord, RecordKind
    from fintrack.services.rates.base import MetadataKeyValueStore
    from fintrack.services.rates.cache_service import RateCache

    with tempfile.TemporaryDirectory() as d:
        settings = Settings(data_dir=Path(d), db_path=Path(d) / "smoke.sqlite3", debug=False)
        client = TestClient(create_app(settings_override=settings))
        db = Database(settings.db_path)

        db.upsert_records(
            RecordKind.EXPENSE,
            [ExpenseRecord(id="e1", user_id="smoke", amount=100000, currency="IDR", date="2024-05-01").model_dump()],
        )
        db.upsert_records(
            RecordKind.INCOME,
            [IncomeRecord(id="i1", user_id="smoke", amount=200000, currency="IDR", date="2024-05-01").model_dump()],
        )
        RateCache(MetadataKeyValueStore(db)).put("IDR", "USD", 0.000065)

        resp = client.put("/users/smoke/preferences/currency", json={"currency": "USD"})
        print(
            json.dumps(
                {
                    "status": resp.status_code,
                    "response": resp.json(),
                    "expense": db.get_record(RecordKind.EXPENSE, "e1"),
                    "income": db.get_record(RecordKind.INCOME, "i1"),
                    "cache": client.get("/rates/cache/IDR").json(),
                },
                indent=2,
            )
        )


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    run()
