from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from fintrack.models.constants import SUPPORTED_CODES


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    DATA_DIR, DB_FILENAME, RATES_CACHE_TTL_SECONDS, EXCHANGE_RATE_API_KEY).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Personal Finance Tracker"
    debug: bool = True
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "fintrack.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Exchange rates / caching
    rates_cache_ttl_seconds: int = 900  # 15 minutes
    exchange_api_base_url: AnyHttpUrl = "https://v6.exchangerate-api.com/v6"
    exchange_rate_api_key: Optional[str] = None
    http_timeout_seconds: float = 5.0

    # Currency used for users without a stored preference
    default_currency: str = "IDR"

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.default_currency = self.default_currency.upper()
        if self.default_currency not in SUPPORTED_CODES:
            raise ValueError(
                f"Unsupported default_currency '{self.default_currency}'. Allowed: {sorted(SUPPORTED_CODES)}"
            )
        if self.rates_cache_ttl_seconds <= 0:
            raise ValueError("rates_cache_ttl_seconds must be positive")

    @property
    def rates_base_url(self) -> str:
        return str(self.exchange_api_base_url).rstrip("/")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
