"""Core shared logic for indicators, signal scoring and backtesting.

This package contains pure computation with no I/O dependencies
(no network access, no clocks). It is shared between the live
dashboard service (app/) and the backtesting CLI (backtest/).
"""
