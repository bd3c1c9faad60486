"""BacktestRunner: load a series, then replay it through the simulator.

Data comes from one of two places:
- a CSV file (same parser as the dashboard import)
- HistoryProvider (live REST klines, synthetic series on failure)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from core.backtest_simulator import BacktestSimulator
from core.indicators import enrich_series
from core.models.analysis import BacktestResult
from core.models.candle import CandleSeries, Interval, MarketType

from app.services.csv_import import load_csv
from app.services.history_provider import HistoryProvider

logger = logging.getLogger(__name__)


@dataclass
class BacktestConfig:
    """Configuration for a backtest run."""

    symbol: str = "BTC"
    interval: Interval = Interval.H1
    limit: int = 200
    market_type: MarketType = MarketType.FUTURES
    initial_balance: float = 10000.0
    csv_path: str | None = None


@dataclass
class BacktestRun:
    config: BacktestConfig
    series: CandleSeries
    result: BacktestResult
    elapsed: float


class BacktestRunner:
    """Run one backtest for a configured market or file."""

    def __init__(
        self,
        config: BacktestConfig,
        provider: HistoryProvider | None = None,
        simulator: BacktestSimulator | None = None,
    ):
        if config.csv_path is None and provider is None:
            raise ValueError("A HistoryProvider is required when no CSV file is given")
        self.config = config
        self._provider = provider
        self._simulator = simulator or BacktestSimulator()

    async def load_series(self) -> CandleSeries:
        if self.config.csv_path is not None:
            logger.info(f"Loading candles from {self.config.csv_path}")
            return enrich_series(load_csv(self.config.csv_path))

        return await self._provider.fetch(
            self.config.symbol,
            self.config.interval,
            self.config.limit,
            self.config.market_type,
        )

    async def run(self) -> BacktestRun:
        """Execute the backtest pipeline."""
        start_time = time.time()
        series = await self.load_series()

        if series:
            logger.info(
                f"Backtesting {len(series)} candles "
                f"({series[0].label} → {series[-1].label})"
            )
        result = self._simulator.run(series, self.config.initial_balance)

        elapsed = time.time() - start_time
        logger.info(f"Backtest complete in {elapsed:.2f}s")
        return BacktestRun(
            config=self.config,
            series=series,
            result=result,
            elapsed=elapsed,
        )
