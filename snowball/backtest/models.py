"""snowball.backtest.models

Data shapes for the backtest core.

Bars and results are frozen. The only mutable record is `Trade`: it is
appended to the ledger at entry and written once more at exit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from snowball.core.exceptions import ConfigError


class Signal(StrEnum):
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


@dataclass(frozen=True, slots=True)
class PriceBar:
    time: date
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None


@dataclass(frozen=True, slots=True)
class EngineConfig:
    initial_capital: float = 1_000_000.0
    commission_rate: float = 0.001425  # Taiwan brokerage 0.1425%
    slippage: float = 0.1  # absolute price units, always adverse
    allow_short: bool = False
    max_position_size: float = 1.0  # fraction of initial capital per trade

    def __post_init__(self) -> None:
        if not math.isfinite(self.initial_capital) or self.initial_capital <= 0:
            raise ConfigError(f"initial_capital must be > 0, got {self.initial_capital}")
        if self.commission_rate < 0:
            raise ConfigError(f"commission_rate must be >= 0, got {self.commission_rate}")
        if self.slippage < 0:
            raise ConfigError(f"slippage must be >= 0, got {self.slippage}")
        if self.max_position_size <= 0:
            raise ConfigError(f"max_position_size must be > 0, got {self.max_position_size}")


@dataclass(slots=True)
class Trade:
    type: Signal  # entry side: BUY opens a long, SELL opens a short
    entry_time: date
    entry_price: float
    shares: int
    commission: float  # entry leg
    exit_time: date | None = None
    exit_price: float | None = None
    exit_commission: float = 0.0
    pnl: float = 0.0  # net of both commission legs
    pnl_percent: float = 0.0
    holding_days: int = 0

    @property
    def is_open(self) -> bool:
        return self.exit_time is None


@dataclass(frozen=True, slots=True)
class EquityPoint:
    time: date
    equity: float


@dataclass(frozen=True, slots=True)
class Summary:
    total_trades: int
    win_trades: int
    lose_trades: int
    win_rate: float  # percent
    total_pnl: float
    total_return: float  # percent of initial capital
    annualized_return: float  # percent
    max_drawdown: float  # percent
    sharpe_ratio: float
    profit_factor: float  # inf when there are wins and no losses
    avg_win: float
    avg_loss: float  # absolute value
    avg_holding_days: float


@dataclass(frozen=True, slots=True)
class DrawdownPeriod:
    peak: date  # the high the decline started from
    start: date  # first bar below the peak
    end: date  # the bar that made a new peak
    drawdown: float  # deepest point of the period, percent
    duration: int  # bars spent below the peak


@dataclass(frozen=True, slots=True)
class DrawdownAnalysis:
    max_drawdown: float = 0.0
    max_drawdown_peak: date | None = None
    max_drawdown_start: date | None = None  # first bar below the peak
    max_drawdown_end: date | None = None  # trough
    recovery_time: date | None = None
    max_drawdown_duration: int = 0
    drawdown_periods: tuple[DrawdownPeriod, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class BacktestResult:
    start_date: date
    end_date: date
    initial_capital: float
    final_capital: float
    trades: tuple[Trade, ...]
    equity_curve: tuple[EquityPoint, ...]
    summary: Summary
    drawdown: DrawdownAnalysis
    benchmark_return: float  # percent, buy-and-hold over the same window
