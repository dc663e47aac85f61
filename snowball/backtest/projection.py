"""snowball.backtest.projection

Fixed-return compound projection.

No prices involved: the portfolio grows at a constant annual rate,
compounded monthly, with a fixed contribution after each month's growth.
Months are counted from 0; month 0 is the initial deposit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from snowball.core.exceptions import ConfigError


@dataclass(frozen=True, slots=True)
class ProjectionPoint:
    month: int
    value: float
    capital: float  # contributed so far
    gain: float
    gain_percent: float


@dataclass(frozen=True, slots=True)
class Projection:
    annual_return: float
    years: int
    total_capital: float
    final_value: float
    total_gain: float
    total_gain_percent: float
    doubling_years: float  # rule of 72; inf when the rate is not positive
    timeline: tuple[ProjectionPoint, ...]


def _point(month: int, value: float, capital: float) -> ProjectionPoint:
    gain = value - capital
    return ProjectionPoint(
        month=month,
        value=value,
        capital=capital,
        gain=gain,
        gain_percent=gain / capital * 100.0 if capital > 0 else 0.0,
    )


def project_compound_growth(
    *,
    initial_capital: float,
    monthly_amount: float,
    annual_return: float = 0.07,
    years: int = 10,
) -> Projection:
    if initial_capital < 0 or monthly_amount < 0:
        raise ConfigError(f"contributions must be >= 0, got {initial_capital}/{monthly_amount}")
    if initial_capital == 0 and monthly_amount == 0:
        raise ConfigError("nothing to project: initial_capital and monthly_amount are both 0")
    if annual_return <= -1.0:
        raise ConfigError(f"annual_return must be > -1, got {annual_return}")
    if years <= 0:
        raise ConfigError(f"years must be > 0, got {years}")

    monthly_rate = (1.0 + annual_return) ** (1.0 / 12.0) - 1.0
    value = capital = initial_capital
    timeline = [_point(0, value, capital)]

    for month in range(1, years * 12 + 1):
        value = value * (1.0 + monthly_rate) + monthly_amount
        capital += monthly_amount
        timeline.append(_point(month, value, capital))

    last = timeline[-1]
    return Projection(
        annual_return=annual_return,
        years=years,
        total_capital=last.capital,
        final_value=last.value,
        total_gain=last.gain,
        total_gain_percent=last.gain_percent,
        doubling_years=72.0 / (annual_return * 100.0) if annual_return > 0 else math.inf,
        timeline=tuple(timeline),
    )
