"""snowball.backtest.strategies.buy_and_hold

Buy at the first opportunity, hold to the end.

Always says buy. The engine does not pyramid, so only the first buy fills.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from snowball.backtest.models import PriceBar, Signal
from snowball.backtest.strategies.base import Strategy


@dataclass(frozen=True, slots=True)
class BuyAndHoldStrategy(Strategy):
    name: str = "buy_hold"

    def __call__(self, index: int, history: Sequence[PriceBar]) -> Signal:
        return Signal.BUY
