"""Business services."""

from app.services.history_provider import HistoryProvider
from app.services.market_session import DataSource, MarketSession, MarketState
from app.services.scanner import ScannerRow, scan_market
from app.services.csv_import import CsvImportError, load_csv, parse_csv
from app.services import market_context

__all__ = [
    "HistoryProvider",
    "DataSource",
    "MarketSession",
    "MarketState",
    "ScannerRow",
    "scan_market",
    "CsvImportError",
    "load_csv",
    "parse_csv",
    "market_context",
]
