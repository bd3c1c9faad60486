"""Backtest-specific configuration.

Independent of app/config.py; only the run defaults live here.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class BacktestSettings(BaseSettings):
    """Backtest configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACKTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    symbol: str = "BTC"
    interval: str = "1h"
    limit: int = 200
    market_type: str = "FUTURES"
    initial_balance: float = 10000.0
    http_timeout: float = 10.0


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings
