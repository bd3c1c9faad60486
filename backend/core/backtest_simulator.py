"""Walk-forward backtest of the scorer-driven strategy.

For each bar from WARMUP_BARS onward the simulator computes indicators and a
prediction from the bars seen so far (no look-ahead), then trades a single
all-in/all-out long position:

- flat, BUY with confidence > 60  -> spend the whole balance
- holding, SELL                   -> liquidate
- holding, HOLD                   -> nothing

No fees, slippage or partial fills.
"""

from __future__ import annotations

import logging
from typing import Sequence

from core.indicators import compute_snapshot
from core.models.analysis import BacktestResult, EquityPoint, PredictionSignal
from core.models.candle import Candle
from core.signal_scorer import SignalScorer

logger = logging.getLogger(__name__)

WARMUP_BARS = 50
ENTRY_CONFIDENCE = 60
DEFAULT_INITIAL_BALANCE = 10000.0


class BacktestSimulator:
    """Replay a candle series bar by bar against the SignalScorer."""

    def __init__(self, scorer: SignalScorer | None = None, warmup: int = WARMUP_BARS):
        self.scorer = scorer or SignalScorer()
        self.warmup = warmup

    def run(
        self,
        series: Sequence[Candle],
        initial_balance: float = DEFAULT_INITIAL_BALANCE,
    ) -> BacktestResult:
        """
        Run the backtest.

        Args:
            series: Chronological candles
            initial_balance: Starting cash

        Returns:
            Fresh BacktestResult
        """
        balance = initial_balance
        shares = 0.0
        trades = 0
        winning_trades = 0
        max_balance = initial_balance
        max_drawdown = 0.0
        equity_curve: list[EquityPoint] = []

        for i in range(self.warmup, len(series)):
            history = series[: i + 1]
            indicators = compute_snapshot(history)
            price = series[i].close
            prediction = self.scorer.score(indicators, price)

            if shares == 0:
                if (
                    prediction.signal == PredictionSignal.BUY
                    and prediction.confidence > ENTRY_CONFIDENCE
                ):
                    shares = balance / price
                    balance = 0.0
                    trades += 1
            elif prediction.signal == PredictionSignal.SELL:
                balance = shares * price
                # Counts exits that set a new equity peak, not per-trade profit
                if balance > max_balance:
                    winning_trades += 1
                shares = 0.0

            equity = balance + shares * price
            if equity > max_balance:
                max_balance = equity

            drawdown = (max_balance - equity) / max_balance if max_balance > 0 else 0.0
            if drawdown > max_drawdown:
                max_drawdown = drawdown

            equity_curve.append(
                EquityPoint(label=series[i].label, equity=equity, balance=balance, shares=shares)
            )

        final_equity = equity_curve[-1].equity if equity_curve else initial_balance
        total_return = (
            (final_equity - initial_balance) / initial_balance * 100
            if initial_balance
            else 0.0
        )

        logger.debug(
            f"Backtest: {len(equity_curve)} steps, {trades} trades, "
            f"return {total_return:.2f}%"
        )

        return BacktestResult(
            initial_balance=initial_balance,
            final_balance=final_equity,
            total_return=total_return,
            trades=trades,
            winning_trades=winning_trades,
            max_drawdown=max_drawdown * 100,
            equity_curve=equity_curve,
        )
