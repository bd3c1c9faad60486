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

    # Binance REST (klines history)
    spot_rest_url: str = "https://api.binance.com"
    futures_rest_url: str = "https://fapi.binance.com"
    http_timeout: float = 10.0

    # Binance WebSocket (live klines)
    spot_ws_url: str = "wss://stream.binance.com:9443/ws"
    futures_ws_url: str = "wss://fstream.binance.com/ws"

    # History cache
    cache_ttl_seconds: float = 60.0

    # Dashboard defaults
    default_symbol: str = "BTC"
    default_interval: str = "1h"
    default_market_type: str = "FUTURES"
    history_limit: int = 200
    window_size: int = 200
    initial_balance: float = 10000.0

    # Market scanner
    scanner_symbols: list[str] = ["BTC", "ETH", "SOL", "BNB", "XRP"]
    scanner_interval: str = "1h"
    scanner_limit: int = 60

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
