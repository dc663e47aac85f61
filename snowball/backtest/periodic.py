"""snowball.backtest.periodic

Periodic-investment simulator (the compounding snowball).

Two plans over a single asset:
- `dca`: each calendar month, buy a scheduled amount at the first bar on or
  after the chosen day of month, while the budget lasts
- `lumpsum`: spend the whole budget on the first bar

Extras on top of either plan:
- phases: the monthly amount follows a schedule of (months, amount) steps
- dip buying: a monthly buy is multiplied while RSI sits below a threshold
- dividends: cash per share paid on shares held going into the ex-date bar,
  optionally reinvested at that bar's close
- sell-side costs: the liquidation value nets out commission and
  transaction tax

Nothing is ever sold. Each purchase is marked to the final close so the
result shares the engine's ledger, statistics, and drawdown analysis.
"""

from __future__ import annotations

import calendar
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Literal

from snowball.backtest.indicators import closes, rsi
from snowball.backtest.models import BacktestResult, EquityPoint, PriceBar, Signal, Trade
from snowball.backtest.validation import benchmark_return, calculate_drawdown, calculate_summary
from snowball.core.exceptions import ConfigError, InsufficientDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InvestmentPhase:
    months: int
    amount: float

    def __post_init__(self) -> None:
        if self.months <= 0:
            raise ConfigError(f"phase months must be > 0, got {self.months}")
        if self.amount <= 0:
            raise ConfigError(f"phase amount must be > 0, got {self.amount}")


@dataclass(frozen=True, slots=True)
class InvestmentPlan:
    initial_capital: float = 1_000_000.0  # total budget
    monthly_amount: float = 10_000.0
    monthly_day: int = 1
    mode: Literal["dca", "lumpsum"] = "dca"
    commission_rate: float = 0.001425
    tax_rate: float = 0.003  # sell side only, Taiwan securities transaction tax
    start_date: date | None = None
    phases: tuple[InvestmentPhase, ...] = ()
    dip_buy: Literal["none", "rsi"] = "none"
    dip_buy_multiplier: float = 2.0
    rsi_period: int = 14
    rsi_threshold: float = 30.0
    reinvest_dividends: bool = True

    def __post_init__(self) -> None:
        if self.initial_capital <= 0:
            raise ConfigError(f"initial_capital must be > 0, got {self.initial_capital}")
        if self.monthly_amount <= 0:
            raise ConfigError(f"monthly_amount must be > 0, got {self.monthly_amount}")
        if not 1 <= self.monthly_day <= 31:
            raise ConfigError(f"monthly_day must be in 1..31, got {self.monthly_day}")
        if self.mode not in ("dca", "lumpsum"):
            raise ConfigError(f"mode must be 'dca' or 'lumpsum', got {self.mode}")
        if self.commission_rate < 0:
            raise ConfigError(f"commission_rate must be >= 0, got {self.commission_rate}")
        if self.tax_rate < 0:
            raise ConfigError(f"tax_rate must be >= 0, got {self.tax_rate}")
        if self.dip_buy not in ("none", "rsi"):
            raise ConfigError(f"dip_buy must be 'none' or 'rsi', got {self.dip_buy}")
        if self.dip_buy_multiplier <= 0:
            raise ConfigError(f"dip_buy_multiplier must be > 0, got {self.dip_buy_multiplier}")
        if self.rsi_period <= 0:
            raise ConfigError(f"rsi_period must be > 0, got {self.rsi_period}")
        if not 0.0 < self.rsi_threshold < 100.0:
            raise ConfigError(f"rsi_threshold must be in (0, 100), got {self.rsi_threshold}")

    def amount_for(self, month_number: int) -> float:
        """Scheduled buy for the `month_number`-th plan month (0-based).

        Past the end of the phase schedule the last phase's amount repeats.
        """

        if not self.phases:
            return self.monthly_amount
        remaining = month_number
        for phase in self.phases:
            if remaining < phase.months:
                return phase.amount
            remaining -= phase.months
        return self.phases[-1].amount


@dataclass(frozen=True, slots=True)
class PeriodicResult:
    result: BacktestResult
    total_invested: float  # scheduled purchases including commission
    total_dividends: float
    total_shares: int
    market_value: float  # shares held at the final close
    net_value: float  # cash plus market value after sell-side commission and tax


def _window(history: Sequence[PriceBar], start_date: date | None) -> Sequence[PriceBar]:
    if start_date is None:
        return history
    for i, bar in enumerate(history):
        if bar.time >= start_date:
            return history[i:]
    return history[:0]


def run_periodic_investment(
    history: Sequence[PriceBar],
    plan: InvestmentPlan | None = None,
    *,
    dividends: Mapping[date, float] | None = None,
) -> PeriodicResult:
    """Replay a buy-only investment plan.

    `dividends` maps ex-dividend dates to cash per share. A date between two
    bars pays on the next bar.
    """

    plan = plan or InvestmentPlan()
    if len(history) < 2:
        raise InsufficientDataError(f"need at least 2 bars to backtest, got {len(history)}")

    bars = _window(history, plan.start_date)
    if len(bars) < 2:
        raise InsufficientDataError(f"need at least 2 bars on or after {plan.start_date}, got {len(bars)}")

    payouts = sorted((dividends or {}).items())
    next_payout = 0
    rsi_values = rsi(closes(bars), plan.rsi_period) if plan.dip_buy == "rsi" else None

    cash = plan.initial_capital
    held = 0
    total_invested = 0.0
    total_dividends = 0.0
    trades: list[Trade] = []
    entry_index: list[int] = []
    equity_curve: list[EquityPoint] = []
    funded_months: set[tuple[int, int]] = set()

    def buy(i: int, bar: PriceBar, shares: int, commission_rate: float) -> float:
        nonlocal cash, held
        cost = shares * bar.close
        commission = cost * commission_rate
        cash -= cost + commission
        held += shares
        trades.append(
            Trade(type=Signal.BUY, entry_time=bar.time, entry_price=bar.close, shares=shares, commission=commission)
        )
        entry_index.append(i)
        return cost + commission

    for i, bar in enumerate(bars):
        # Pay on shares carried into the bar, before this bar's purchase.
        while next_payout < len(payouts) and payouts[next_payout][0] <= bar.time:
            per_share = payouts[next_payout][1]
            next_payout += 1
            amount = per_share * held
            if amount <= 0:
                continue
            cash += amount
            total_dividends += amount
            if plan.reinvest_dividends:
                shares = math.floor(amount / bar.close)
                if shares > 0:
                    buy(i, bar, shares, 0.0)
            logger.debug("periodic_dividend_paid", extra={"time": str(bar.time), "amount": round(amount, 2)})

        if plan.mode == "lumpsum":
            if i == 0:
                shares = math.floor(plan.initial_capital / (bar.close * (1.0 + plan.commission_rate)))
                if shares > 0:
                    total_invested += buy(i, bar, shares, plan.commission_rate)
        else:
            month = (bar.time.year, bar.time.month)
            due_day = min(plan.monthly_day, calendar.monthrange(*month)[1])
            if month not in funded_months and bar.time.day >= due_day:
                amount = plan.amount_for(len(funded_months))
                funded_months.add(month)
                if rsi_values is not None and rsi_values[i] < plan.rsi_threshold:
                    amount *= plan.dip_buy_multiplier
                    logger.debug(
                        "periodic_dip_buy", extra={"time": str(bar.time), "rsi": round(float(rsi_values[i]), 2)}
                    )
                shares = math.floor(amount / bar.close)
                cost = shares * bar.close
                if shares > 0 and cash >= cost + cost * plan.commission_rate:
                    total_invested += buy(i, bar, shares, plan.commission_rate)
                else:
                    logger.debug("periodic_buy_skipped", extra={"time": str(bar.time), "cash": round(cash, 2)})

        equity_curve.append(EquityPoint(time=bar.time, equity=cash + held * bar.close))

    last_index = len(bars) - 1
    last = bars[last_index]
    for trade, i in zip(trades, entry_index, strict=True):
        pnl = trade.shares * (last.close - trade.entry_price) - trade.commission
        trade.exit_time = last.time
        trade.exit_price = last.close
        trade.pnl = pnl
        trade.pnl_percent = pnl / (trade.shares * trade.entry_price) * 100.0
        trade.holding_days = last_index - i

    curve = tuple(equity_curve)
    drawdown = calculate_drawdown(curve)
    summary = calculate_summary(
        trades=trades,
        equity_curve=curve,
        initial_capital=plan.initial_capital,
        max_drawdown=drawdown.max_drawdown,
    )

    market_value = held * last.close
    net_value = cash + market_value * (1.0 - plan.commission_rate - plan.tax_rate)

    logger.info(
        "periodic_run_complete",
        extra={
            "mode": plan.mode,
            "bars": len(bars),
            "purchases": len(trades),
            "shares": held,
            "dividends": round(total_dividends, 2),
        },
    )

    return PeriodicResult(
        result=BacktestResult(
            start_date=bars[0].time,
            end_date=last.time,
            initial_capital=plan.initial_capital,
            final_capital=cash + market_value,
            trades=tuple(trades),
            equity_curve=curve,
            summary=summary,
            drawdown=drawdown,
            benchmark_return=benchmark_return(bars),
        ),
        total_invested=total_invested,
        total_dividends=total_dividends,
        total_shares=held,
        market_value=market_value,
        net_value=net_value,
    )
