"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Binance API
    rest_base_url: str = "https://fapi.binance.com"
    http_timeout: float = 10.0

    # Bark push notifications
    push_api_url: str = "https://api.day.app"
    push_api_keys: list[str] = []

    # Files
    monitor_config_path: str = "monitor.yaml"
    trade_log_file: str = ""  # overrides trading.trade_log_file when set

    # Statistics report interval (seconds), 0 disables
    report_interval: float = 300.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
