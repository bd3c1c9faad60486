"""Command-line backtesting for the scorer-driven strategy.

Runs the same BacktestSimulator the live session uses, against either
fetched history (live with synthetic fallback) or a CSV file.

Usage:
    python -m backtest --symbol BTC --interval 1h --limit 500
    python -m backtest --csv prices.csv --balance 5000
"""

from backtest.runner import BacktestConfig, BacktestRunner

__all__ = ["BacktestConfig", "BacktestRunner"]
