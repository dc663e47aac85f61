"""snowball.backtest.strategies

Strategy library.

Ids match the dashboard's strategy picker. These are reference baselines;
any `(index, history) -> signal` callable works with the engine.
"""

from __future__ import annotations

from typing import Any

from snowball.backtest.strategies.base import Strategy
from snowball.backtest.strategies.buy_and_hold import BuyAndHoldStrategy
from snowball.backtest.strategies.golden_cross import GoldenCrossStrategy
from snowball.backtest.strategies.rsi_reversion import RSIReversionStrategy
from snowball.core.exceptions import ConfigError, UnknownStrategyError

STRATEGIES: dict[str, type[Strategy]] = {
    "buy_hold": BuyAndHoldStrategy,
    "golden_cross": GoldenCrossStrategy,
    "rsi": RSIReversionStrategy,
}


def build_strategy(name: str, **params: Any) -> Strategy:
    cls = STRATEGIES.get(name)
    if cls is None:
        raise UnknownStrategyError(f"unknown strategy: {name} (known: {', '.join(sorted(STRATEGIES))})")
    try:
        return cls(**params)
    except TypeError as e:
        raise ConfigError(f"bad parameters for {name}: {e}") from e


__all__ = [
    "STRATEGIES",
    "Strategy",
    "BuyAndHoldStrategy",
    "GoldenCrossStrategy",
    "RSIReversionStrategy",
    "build_strategy",
]
