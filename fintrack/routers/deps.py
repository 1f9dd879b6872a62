"""FastAPI dependency providers shared by the routers.

Settings come from ``app.state.settings`` so an app built with
``create_app(settings_override=...)`` never touches the global settings.
"""

from fastapi import Depends, Request

from fintrack.core.config import Settings
from fintrack.db.dal import Database
from fintrack.services.preferences import CurrencyPreferenceService
from fintrack.services.rates.conversion import (
    CurrencyConversionEngine,
    build_conversion_engine,
)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(settings: Settings = Depends(get_app_settings)) -> Database:
    return Database(settings.db_path)


def get_conversion_engine(
    settings: Settings = Depends(get_app_settings),
    db: Database = Depends(get_db),
) -> CurrencyConversionEngine:
    return build_conversion_engine(settings, db=db)


def get_preference_service(
    settings: Settings = Depends(get_app_settings),
    db: Database = Depends(get_db),
    engine: CurrencyConversionEngine = Depends(get_conversion_engine),
) -> CurrencyPreferenceService:
    return CurrencyPreferenceService(db, engine, default_currency=settings.default_currency)
