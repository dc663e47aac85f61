"""snowball.backtest.indicators

Indicator math shared by the signal generators.

Every function returns an array aligned with its input: element `i`
describes the series as of bar `i`. Nothing here looks past `i`.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from snowball.backtest.models import PriceBar

RSI_PLACEHOLDER = 50.0


def closes(history: Sequence[PriceBar], end: int | None = None) -> np.ndarray:
    """Closing prices of `history[0..end]` (inclusive)."""

    bars = history if end is None else history[: end + 1]
    return np.fromiter((b.close for b in bars), dtype=np.float64, count=len(bars))


def ema(prices: np.ndarray, period: int) -> np.ndarray:
    """Exponential moving average seeded with the first price.

    k = 2 / (period + 1); ema[i] = price[i] * k + ema[i - 1] * (1 - k)
    """

    x = np.asarray(prices, dtype=np.float64)
    out = np.empty_like(x, dtype=np.float64)
    if x.size == 0:
        return out

    k = 2.0 / (period + 1.0)
    out[0] = x[0]
    for i in range(1, x.size):
        out[i] = x[i] * k + out[i - 1] * (1.0 - k)
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0.0:
        return 100.0
    return 100.0 - (100.0 / (1.0 + avg_gain / avg_loss))


def rsi(prices: np.ndarray, period: int = 14) -> np.ndarray:
    """Wilder RSI.

    The first `period` price changes seed the average gain/loss; after that
    each average is smoothed as (avg * (period - 1) + value) / period.
    Bars before the seed is complete read RSI_PLACEHOLDER.
    """

    x = np.asarray(prices, dtype=np.float64)
    out = np.full_like(x, RSI_PLACEHOLDER, dtype=np.float64)
    if period <= 0 or x.size <= period:
        return out

    diff = np.diff(x)
    gains = np.maximum(diff, 0.0)
    losses = np.maximum(-diff, 0.0)

    # diff[j] is the change into bar j + 1
    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    out[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, x.size):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        out[i] = _rsi_value(avg_gain, avg_loss)

    return out
