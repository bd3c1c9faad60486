"""CSV dataset import.

Accepts any CSV with a date/time column and a price/close column. Optional
high, low and volume columns are picked up when present. An imported
dataset replaces the live history source for the session.
"""

from __future__ import annotations

import csv
import logging
import math
from pathlib import Path

from core.models.candle import Candle

logger = logging.getLogger(__name__)


class CsvImportError(ValueError):
    """Raised when a CSV cannot be used as a candle dataset."""


def _find_column(headers: list[str], *needles: str) -> int:
    for i, header in enumerate(headers):
        if any(needle in header for needle in needles):
            return i
    return -1


def _parse_float(row: list[str], index: int) -> float | None:
    if index < 0 or index >= len(row):
        return None
    try:
        value = float(row[index].strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_csv(text: str) -> list[Candle]:
    """
    Parse CSV text into candles.

    Args:
        text: CSV content with a header row

    Returns:
        Candles in file order

    Raises:
        CsvImportError: fewer than two non-blank lines, or no date/price column
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise CsvImportError("Invalid CSV format.")

    rows = list(csv.reader(lines))
    headers = [h.strip().lower() for h in rows[0]]

    date_idx = _find_column(headers, "date", "time")
    price_idx = _find_column(headers, "price", "close")
    if date_idx == -1 or price_idx == -1:
        raise CsvImportError("Missing Date or Price columns.")

    high_idx = _find_column(headers, "high")
    low_idx = _find_column(headers, "low")
    volume_idx = _find_column(headers, "volume", "vol")

    candles: list[Candle] = []
    skipped = 0
    for row in rows[1:]:
        if len(row) < 2 or date_idx >= len(row):
            skipped += 1
            continue
        price = _parse_float(row, price_idx)
        if price is None:
            skipped += 1
            continue
        candles.append(
            Candle(
                label=row[date_idx].strip(),
                close=price,
                high=_parse_float(row, high_idx),
                low=_parse_float(row, low_idx),
                volume=_parse_float(row, volume_idx),
            )
        )

    if skipped:
        logger.info(f"CSV import skipped {skipped} unparsable rows")
    return candles


def load_csv(path: str | Path) -> list[Candle]:
    """Read and parse a CSV file."""
    return parse_csv(Path(path).read_text(encoding="utf-8-sig"))


def parse_csv_bytes(data: bytes) -> list[Candle]:
    """Parse uploaded CSV bytes (UTF-8, BOM tolerated)."""
    return parse_csv(data.decode("utf-8-sig"))
