"""snowball.backtest.engine

Bar-by-bar backtest engine.

One `run` call replays a price history against a signal function:
- mark equity with the position carried into the bar
- ask the signal function what to do
- execute at the bar's close with adverse slippage and commission

Capital is realized book capital. Opening a position costs only its
commission; closing it books the gross P&L less the exit commission. So at
every bar

    equity = capital + position * (close - avg_entry_price)

and once the final position is force-closed, final capital equals initial
capital plus the sum of trade P&L.

Lookahead is the signal function's responsibility. The engine hands it the
whole history.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from datetime import date

from snowball.backtest.models import (
    BacktestResult,
    EngineConfig,
    EquityPoint,
    PriceBar,
    Signal,
    Trade,
)
from snowball.backtest.validation import benchmark_return, calculate_drawdown, calculate_summary
from snowball.core.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)

SignalFn = Callable[[int, Sequence[PriceBar]], str]


class BacktestEngine:
    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self._reset()

    def _reset(self) -> None:
        self._trades: list[Trade] = []
        self._equity_curve: list[EquityPoint] = []
        self._capital: float = self.config.initial_capital
        self._position: int = 0  # > 0 long, < 0 short
        self._avg_entry_price: float = 0.0
        self._entry_index: int = 0

    @property
    def position(self) -> int:
        return self._position

    @property
    def capital(self) -> float:
        return self._capital

    def equity(self, mark: float) -> float:
        if self._position == 0:
            return self._capital
        return self._capital + self._position * (mark - self._avg_entry_price)

    def run(self, history: Sequence[PriceBar], signal: SignalFn) -> BacktestResult:
        if len(history) < 2:
            raise InsufficientDataError(f"need at least 2 bars to backtest, got {len(history)}")

        self._reset()

        for i in range(1, len(history)):
            bar = history[i]
            self._equity_curve.append(EquityPoint(time=bar.time, equity=self.equity(bar.close)))

            action = signal(i, history)
            if action == Signal.BUY and self._position <= 0:
                self._execute_order(Signal.BUY, bar.close, bar.time, i)
            elif action == Signal.SELL and self._position >= 0:
                self._execute_order(Signal.SELL, bar.close, bar.time, i)

        if self._position != 0:
            last = history[-1]
            logger.debug("backtest_force_close", extra={"time": str(last.time), "position": self._position})
            self._close_position(last.close, last.time, len(history) - 1)

        return self._result(history)

    def _execute_order(self, side: Signal, price: float, time: date, index: int) -> None:
        cfg = self.config
        exec_price = price + cfg.slippage if side == Signal.BUY else price - cfg.slippage

        if exec_price <= 0:
            logger.debug("backtest_order_skipped", extra={"reason": "non_positive_price", "time": str(time)})
            return

        shares = math.floor(cfg.initial_capital * cfg.max_position_size / exec_price)
        if shares <= 0:
            logger.debug("backtest_order_skipped", extra={"reason": "zero_shares", "time": str(time)})
            return

        if side == Signal.BUY and self._position < 0:
            self._close_position(price, time, index)
        elif side == Signal.SELL and self._position > 0:
            self._close_position(price, time, index)

        if side == Signal.SELL and not cfg.allow_short:
            return

        commission = shares * exec_price * cfg.commission_rate
        self._position = shares if side == Signal.BUY else -shares
        self._avg_entry_price = exec_price
        self._entry_index = index
        self._capital -= commission

        self._trades.append(
            Trade(
                type=side,
                entry_time=time,
                entry_price=exec_price,
                shares=shares,
                commission=commission,
            )
        )

    def _close_position(self, price: float, time: date, index: int) -> None:
        if self._position == 0:
            return

        cfg = self.config
        is_long = self._position > 0
        exec_price = price - cfg.slippage if is_long else price + cfg.slippage
        shares = abs(self._position)
        exit_commission = shares * exec_price * cfg.commission_rate

        gross = (exec_price - self._avg_entry_price) * shares
        if not is_long:
            gross = -gross
        self._capital += gross - exit_commission

        trade = self._open_trade()
        if trade is not None:
            pnl = gross - trade.commission - exit_commission
            cost_basis = shares * self._avg_entry_price
            trade.exit_time = time
            trade.exit_price = exec_price
            trade.exit_commission = exit_commission
            trade.pnl = pnl
            trade.pnl_percent = pnl / cost_basis * 100.0 if cost_basis else 0.0
            trade.holding_days = index - self._entry_index

        self._position = 0
        self._avg_entry_price = 0.0

    def _open_trade(self) -> Trade | None:
        for trade in reversed(self._trades):
            if trade.is_open:
                return trade
        return None

    def _result(self, history: Sequence[PriceBar]) -> BacktestResult:
        trades = tuple(self._trades)
        equity_curve = tuple(self._equity_curve)
        drawdown = calculate_drawdown(equity_curve)
        summary = calculate_summary(
            trades=trades,
            equity_curve=equity_curve,
            initial_capital=self.config.initial_capital,
            max_drawdown=drawdown.max_drawdown,
        )

        logger.info(
            "backtest_run_complete",
            extra={
                "bars": len(history),
                "trades": summary.total_trades,
                "total_return": round(summary.total_return, 4),
                "max_drawdown": round(drawdown.max_drawdown, 4),
            },
        )

        return BacktestResult(
            start_date=history[0].time,
            end_date=history[-1].time,
            initial_capital=self.config.initial_capital,
            final_capital=self._capital,
            trades=trades,
            equity_curve=equity_curve,
            summary=summary,
            drawdown=drawdown,
            benchmark_return=benchmark_return(history),
        )
