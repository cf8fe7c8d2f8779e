from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from p2p_exchange import __version__

ALLOWED_RATE_PROVIDERS = {"static", "external-http"}


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic-settings rules (e.g. DEBUG,
    DATA_DIR, DB_FILENAME, EXCHANGE_RATE_PROVIDER, EXCHANGE_API_KEY).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "P2P Exchange API"
    debug: bool = False
    version: str = __version__

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "p2p_exchange.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided
    db_timeout_seconds: float = 5.0  # max wait on a locked database
    db_connect_attempts: int = 5
    db_connect_retry_delay_seconds: float = 5.0

    # Exchange rates
    # Allowed: 'static' (built-in table), 'external-http' (exchangerate-api.com v6)
    exchange_rate_provider: str = "static"
    exchange_api_base_url: str = "https://v6.exchangerate-api.com/v6"
    exchange_api_key: str = ""
    rates_cache_ttl_seconds: int = 3600
    http_timeout_seconds: float = 5.0
    http_retries: int = 2

    cors_origins: List[str] = ["*"]

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.exchange_rate_provider not in ALLOWED_RATE_PROVIDERS:
            raise ValueError(
                f"Unsupported exchange_rate_provider '{self.exchange_rate_provider}'. "
                f"Allowed: {sorted(ALLOWED_RATE_PROVIDERS)}"
            )
        if self.db_connect_attempts < 1:
            raise ValueError("db_connect_attempts must be at least 1")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
