"""snowball.backtest.strategies.rsi_reversion

RSI mean reversion:
- buy when RSI <= oversold
- sell when RSI >= overbought

With shorting disabled in the engine, sell simply exits the long.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from snowball.backtest.indicators import closes, rsi
from snowball.backtest.models import PriceBar, Signal
from snowball.backtest.strategies.base import Strategy
from snowball.core.exceptions import ConfigError


@dataclass(frozen=True, slots=True)
class RSIReversionStrategy(Strategy):
    name: str = "rsi"
    period: int = 14
    oversold: float = 30.0
    overbought: float = 70.0

    def __post_init__(self) -> None:
        if self.period <= 0:
            raise ConfigError(f"RSI period must be > 0, got {self.period}")
        if not 0.0 <= self.oversold < self.overbought <= 100.0:
            raise ConfigError(f"need 0 <= oversold < overbought <= 100, got {self.oversold}/{self.overbought}")

    def __call__(self, index: int, history: Sequence[PriceBar]) -> Signal:
        if index < self.period:
            return Signal.HOLD

        value = float(rsi(closes(history, index), self.period)[-1])

        if value <= self.oversold:
            return Signal.BUY
        if value >= self.overbought:
            return Signal.SELL
        return Signal.HOLD
