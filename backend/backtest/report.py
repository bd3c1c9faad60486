"""Report formatting for backtest results.

Outputs results to console (formatted tables) and JSON files.
"""

from __future__ import annotations

import orjson

from backtest.runner import BacktestRun


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(run: BacktestRun, curve_rows: int = 10) -> None:
        """Print formatted report to console."""
        config = run.config
        result = run.result
        source = config.csv_path or f"{config.symbol} {config.interval.value} {config.market_type.value}"

        print("\n" + "=" * 70)
        print("  BACKTEST RESULTS")
        print("=" * 70)
        print(f"  Source:   {source}")
        print(f"  Candles:  {len(run.series)}")
        if run.series:
            print(f"  Period:   {run.series[0].label} → {run.series[-1].label}")

        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Initial balance:  {result.initial_balance:,.2f}")
        print(f"  Final balance:    {result.final_balance:,.2f}")
        print(f"  Total return:     {result.total_return:+.2f}%")
        print(f"  Trades:           {result.trades}")
        print(f"  Winning trades:   {result.winning_trades}")
        print(f"  Win rate:         {result.win_rate:.1f}%")
        print(f"  Max drawdown:     {result.max_drawdown:.2f}%")

        if result.equity_curve:
            print("\n" + "-" * 70)
            print(f"  EQUITY CURVE (last {curve_rows} bars)")
            print("-" * 70)
            print(f"  {'Label':<18} {'Equity':>14} {'Balance':>14} {'Shares':>12}")
            for p in result.equity_curve[-curve_rows:]:
                print(f"  {p.label:<18} {p.equity:>14,.2f} {p.balance:>14,.2f} {p.shares:>12.6f}")
        else:
            print("\n  Not enough candles to trade (warmup not reached).")

        print("\n" + "=" * 70)
        print(f"  Completed in {run.elapsed:.2f}s")

    @staticmethod
    def to_dict(run: BacktestRun) -> dict:
        """Convert results to JSON-serializable dict."""
        config = run.config
        return {
            "metadata": {
                "symbol": config.symbol,
                "interval": config.interval.value,
                "market_type": config.market_type.value,
                "csv_path": config.csv_path,
                "candles": len(run.series),
            },
            "overall": {
                "initial_balance": run.result.initial_balance,
                "final_balance": round(run.result.final_balance, 2),
                "total_return": round(run.result.total_return, 4),
                "trades": run.result.trades,
                "winning_trades": run.result.winning_trades,
                "win_rate": round(run.result.win_rate, 2),
                "max_drawdown": round(run.result.max_drawdown, 4),
            },
            "equity_curve": [p.model_dump() for p in run.result.equity_curve],
        }

    @staticmethod
    def save_json(run: BacktestRun, filepath: str) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(run)
        with open(filepath, "wb") as f:
            f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        print(f"\nResults saved to {filepath}")
