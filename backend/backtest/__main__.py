"""CLI entry point for the backtesting system.

Usage:
    python -m backtest --symbol BTC --interval 1h --limit 500
    python -m backtest --symbol ETH --market-type SPOT --balance 5000
    python -m backtest --csv prices.csv -o result.json
"""

import argparse
import asyncio
import logging
import os
import sys

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.models.candle import Interval, MarketType

from app.clients import BinanceRestClient
from app.config import get_settings
from app.services.csv_import import CsvImportError
from app.services.history_provider import HistoryProvider
from app.storage import ResultCache

from backtest.config import get_backtest_settings
from backtest.report import ReportFormatter
from backtest.runner import BacktestConfig, BacktestRunner


def parse_args() -> argparse.Namespace:
    defaults = get_backtest_settings()
    parser = argparse.ArgumentParser(
        description="Walk-forward backtest of the rule-based signal scorer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest --symbol BTC --interval 1h --limit 500
  python -m backtest --symbol SOL --interval 4h --market-type SPOT
  python -m backtest --csv prices.csv --balance 5000 -o result.json
        """,
    )
    parser.add_argument(
        "--symbol",
        type=str,
        default=defaults.symbol,
        help=f"Base asset (default: {defaults.symbol})",
    )
    parser.add_argument(
        "--interval",
        type=Interval,
        choices=list(Interval),
        metavar="{" + ",".join(i.value for i in Interval) + "}",
        default=Interval(defaults.interval),
        help=f"Kline interval (default: {defaults.interval})",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=defaults.limit,
        help=f"Number of candles to fetch (default: {defaults.limit})",
    )
    parser.add_argument(
        "--market-type",
        type=MarketType,
        choices=list(MarketType),
        metavar="{SPOT,FUTURES}",
        default=MarketType(defaults.market_type),
        help=f"SPOT or FUTURES (default: {defaults.market_type})",
    )
    parser.add_argument(
        "--balance",
        type=float,
        default=defaults.initial_balance,
        help=f"Initial balance (default: {defaults.initial_balance:g})",
    )
    parser.add_argument(
        "--csv",
        type=str,
        default=None,
        help="Backtest a CSV file (Date/Price columns) instead of fetching",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args()


async def cmd_run_backtest(args: argparse.Namespace) -> int:
    """Run a backtest."""
    if args.limit <= 0:
        print("Error: --limit must be positive")
        return 1

    config = BacktestConfig(
        symbol=args.symbol.upper(),
        interval=args.interval,
        limit=args.limit,
        market_type=args.market_type,
        initial_balance=args.balance,
        csv_path=args.csv,
    )

    provider = None
    rest_client = None
    if args.csv is None:
        settings = get_settings()
        rest_client = BinanceRestClient(
            spot_url=settings.spot_rest_url,
            futures_url=settings.futures_rest_url,
            timeout=get_backtest_settings().http_timeout,
        )
        provider = HistoryProvider(rest_client, ResultCache())

    try:
        runner = BacktestRunner(config=config, provider=provider)
        print("\nRunning backtest...")
        run = await runner.run()
    except (CsvImportError, OSError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        if rest_client is not None:
            await rest_client.close()

    ReportFormatter.print_console(run)

    if args.output:
        ReportFormatter.save_json(run, args.output)
    return 0


async def main() -> int:
    args = parse_args()

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return await cmd_run_backtest(args)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
