"""snowball.backtest.validation

Performance statistics + drawdown analysis.

Every ratio guards its own denominator. A statistic that cannot be computed
reads 0 (profit factor reads inf when there are wins and no losses); nothing
here returns NaN.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from snowball.backtest.models import DrawdownAnalysis, DrawdownPeriod, EquityPoint, PriceBar, Summary, Trade

TRADING_DAYS_PER_YEAR = 252
RISK_FREE_RATE = 0.02


def equity_returns(equity_curve: Sequence[EquityPoint]) -> np.ndarray:
    """Simple per-bar returns of the equity curve (length n - 1)."""

    eq = np.fromiter((p.equity for p in equity_curve), dtype=np.float64, count=len(equity_curve))
    if eq.size < 2:
        return np.zeros(0, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        r = np.diff(eq) / eq[:-1]
    return r[np.isfinite(r)]


def sharpe_ratio(
    returns: np.ndarray,
    *,
    risk_free_rate: float = RISK_FREE_RATE,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> float:
    r = np.asarray(returns, dtype=np.float64)
    if r.size == 0:
        return 0.0
    sd = float(np.std(r))
    if sd == 0.0 or not math.isfinite(sd):
        return 0.0
    mu = float(np.mean(r))
    return (mu * periods_per_year - risk_free_rate) / (sd * math.sqrt(periods_per_year))


def annualized_return(total_return_pct: float, trading_days: int) -> float:
    if trading_days <= 0:
        return 0.0
    growth = 1.0 + total_return_pct / 100.0
    if growth <= 0.0:
        return -100.0
    try:
        return (growth ** (TRADING_DAYS_PER_YEAR / trading_days) - 1.0) * 100.0
    except OverflowError:
        return math.inf


def calculate_summary(
    *,
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    initial_capital: float,
    max_drawdown: float,
) -> Summary:
    wins = [t.pnl for t in trades if t.pnl > 0]
    losses = [t.pnl for t in trades if t.pnl < 0]
    n = len(trades)

    total_pnl = sum(t.pnl for t in trades)
    total_return = total_pnl / initial_capital * 100.0

    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = abs(sum(losses) / len(losses)) if losses else 0.0

    if avg_loss > 0:
        profit_factor = avg_win / avg_loss
    elif avg_win > 0:
        profit_factor = math.inf
    else:
        profit_factor = 0.0

    return Summary(
        total_trades=n,
        win_trades=len(wins),
        lose_trades=len(losses),
        win_rate=len(wins) / n * 100.0 if n else 0.0,
        total_pnl=total_pnl,
        total_return=total_return,
        annualized_return=annualized_return(total_return, len(equity_curve)),
        max_drawdown=max_drawdown,
        sharpe_ratio=sharpe_ratio(equity_returns(equity_curve)),
        profit_factor=profit_factor,
        avg_win=avg_win,
        avg_loss=avg_loss,
        avg_holding_days=sum(t.holding_days for t in trades) / n if n else 0.0,
    )


def calculate_drawdown(equity_curve: Sequence[EquityPoint]) -> DrawdownAnalysis:
    """Single pass with a running peak.

    A drawdown period starts on the first bar below the peak and ends on the
    bar that makes a new peak. Its duration is the number of bars spent
    below the peak. A period still open at the end of the curve is not
    listed, but can still hold the maximum; its duration runs to the end.
    """

    if not equity_curve:
        return DrawdownAnalysis()

    peak = equity_curve[0].equity
    peak_time = equity_curve[0].time
    start_index = -1  # first bar below the current peak, -1 while at a peak
    depth = 0.0  # deepest point of the current period

    max_dd = 0.0
    max_peak = max_start = max_end = recovery = None
    max_start_index = -1
    periods: list[DrawdownPeriod] = []

    for idx, point in enumerate(equity_curve):
        if point.equity > peak:
            if start_index >= 0:
                periods.append(
                    DrawdownPeriod(
                        peak=peak_time,
                        start=equity_curve[start_index].time,
                        end=point.time,
                        drawdown=depth,
                        duration=idx - start_index,
                    )
                )
                if max_start_index == start_index:
                    recovery = point.time
                start_index = -1
            peak = point.equity
            peak_time = point.time
            depth = 0.0
        elif point.equity < peak:
            dd = min((peak - point.equity) / peak * 100.0, 100.0) if peak > 0 else 0.0
            if start_index < 0:
                start_index = idx
            depth = max(depth, dd)
            if dd > max_dd:
                max_dd = dd
                max_peak = peak_time
                max_start = equity_curve[start_index].time
                max_end = point.time
                max_start_index = start_index
                recovery = None

    if max_start_index < 0:
        duration = 0
    elif recovery is not None:
        duration = next(p.duration for p in periods if p.end == recovery)
    else:
        duration = len(equity_curve) - max_start_index

    return DrawdownAnalysis(
        max_drawdown=max_dd,
        max_drawdown_peak=max_peak,
        max_drawdown_start=max_start,
        max_drawdown_end=max_end,
        recovery_time=recovery,
        max_drawdown_duration=duration,
        drawdown_periods=tuple(periods),
    )


def benchmark_return(history: Sequence[PriceBar]) -> float:
    """Buy-and-hold return over the whole window, percent."""

    if len(history) < 2:
        return 0.0
    start = history[0].close
    end = history[-1].close
    if start == 0:
        return 0.0
    return (end - start) / start * 100.0
