from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from snowball.backtest.models import PriceBar


class BarIn(BaseModel):
    time: date
    open: float = Field(gt=0)
    high: float = Field(gt=0)
    low: float = Field(gt=0)
    close: float = Field(gt=0)
    volume: float | None = Field(default=None, ge=0)

    def to_bar(self) -> PriceBar:
        return PriceBar(
            time=self.time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )


class EngineParams(BaseModel):
    """Unset fields fall back to the configured preset."""

    initial_capital: float | None = Field(default=None, gt=0)
    commission_rate: float | None = Field(default=None, ge=0)
    slippage: float | None = Field(default=None, ge=0)
    allow_short: bool | None = None
    max_position_size: float | None = Field(default=None, gt=0, le=1.0)


class BacktestRequest(BaseModel):
    bars: list[BarIn]
    strategy: str = Field(default="buy_hold", description="buy_hold | golden_cross | rsi")
    params: dict[str, int | float] = Field(default_factory=dict, description="Strategy parameter overrides")
    engine: EngineParams = Field(default_factory=EngineParams)


class PhaseIn(BaseModel):
    months: int = Field(gt=0)
    amount: float = Field(gt=0)


class DividendIn(BaseModel):
    time: date
    amount: float = Field(ge=0, description="Cash per share")


class PeriodicRequest(BaseModel):
    """Unset fields fall back to the configured preset."""

    bars: list[BarIn]
    mode: Literal["dca", "lumpsum"] = "dca"
    initial_capital: float | None = Field(default=None, gt=0)
    monthly_amount: float | None = Field(default=None, gt=0)
    monthly_day: int | None = Field(default=None, ge=1, le=31)
    commission_rate: float | None = Field(default=None, ge=0)
    tax_rate: float | None = Field(default=None, ge=0)
    start_date: date | None = None
    phases: list[PhaseIn] = Field(default_factory=list)
    dip_buy: Literal["none", "rsi"] | None = None
    dip_buy_multiplier: float | None = Field(default=None, gt=0)
    rsi_threshold: float | None = Field(default=None, gt=0, lt=100)
    reinvest_dividends: bool | None = None
    dividends: list[DividendIn] = Field(default_factory=list)

    def dividend_map(self) -> dict[date, float]:
        out: dict[date, float] = {}
        for d in self.dividends:
            out[d.time] = out.get(d.time, 0.0) + d.amount
        return out


class ProjectionRequest(BaseModel):
    initial_capital: float = Field(default=0.0, ge=0)
    monthly_amount: float | None = Field(default=None, ge=0)
    annual_return: float | None = Field(default=None, gt=-1.0)
    years: int | None = Field(default=None, ge=1, le=100)


class StrategyInfo(BaseModel):
    id: str
    params: dict[str, int | float]
