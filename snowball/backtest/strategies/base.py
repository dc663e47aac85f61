"""snowball.backtest.strategies.base

Signal generator contract.

A strategy is a pure callable over `(index, history)`. It classifies bar
`index` as buy / sell / hold using only `history[0..index]`. It carries
parameters, never state: the same call always returns the same signal.

The engine translates signals into orders.
"""

from __future__ import annotations

from collections.abc import Sequence

from snowball.backtest.models import PriceBar, Signal


class Strategy:
    name: str = "strategy"

    def __call__(self, index: int, history: Sequence[PriceBar]) -> Signal:
        raise NotImplementedError
