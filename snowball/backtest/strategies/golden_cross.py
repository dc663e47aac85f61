"""snowball.backtest.strategies.golden_cross

EMA crossover:
- buy when the short EMA crosses above the long EMA
- sell when it crosses back below

Both EMAs are recomputed from bar 0 on every call. Slower than carrying
state, but each call stands alone.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from snowball.backtest.indicators import closes, ema
from snowball.backtest.models import PriceBar, Signal
from snowball.backtest.strategies.base import Strategy
from snowball.core.exceptions import ConfigError


@dataclass(frozen=True, slots=True)
class GoldenCrossStrategy(Strategy):
    name: str = "golden_cross"
    short_period: int = 10
    long_period: int = 30

    def __post_init__(self) -> None:
        if self.short_period <= 0 or self.long_period <= 0:
            raise ConfigError(f"EMA periods must be > 0, got {self.short_period}/{self.long_period}")
        if self.short_period >= self.long_period:
            raise ConfigError(f"short_period must be below long_period, got {self.short_period}/{self.long_period}")

    def __call__(self, index: int, history: Sequence[PriceBar]) -> Signal:
        if index < self.long_period or index < 1:
            return Signal.HOLD

        prices = closes(history, index)
        short = ema(prices, self.short_period)
        long = ema(prices, self.long_period)

        prev_short, curr_short = float(short[-2]), float(short[-1])
        prev_long, curr_long = float(long[-2]), float(long[-1])

        if prev_short <= prev_long and curr_short > curr_long:
            return Signal.BUY
        if prev_short >= prev_long and curr_short < curr_long:
            return Signal.SELL
        return Signal.HOLD
