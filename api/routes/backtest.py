from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from api.auth import AuthDep
from api.deps import get_config
from api.schemas.backtest import BacktestRequest, PeriodicRequest
from api.schemas.common import ErrorResponse
from snowball.backtest.engine import BacktestEngine
from snowball.backtest.io import result_to_dict
from snowball.backtest.periodic import InvestmentPhase, InvestmentPlan, run_periodic_investment
from snowball.backtest.strategies import build_strategy
from snowball.core.config import Config

router = APIRouter(prefix="/backtest", dependencies=[AuthDep])

_ERRORS: dict[int | str, dict[str, Any]] = {422: {"model": ErrorResponse}}


def _pick(value: Any, default: Any) -> Any:
    return value if value is not None else default


@router.post("", responses=_ERRORS)
def run_backtest(req: BacktestRequest, config: Config = Depends(get_config)) -> dict[str, Any]:
    engine_cfg = config.backtest.engine_config(**req.engine.model_dump())
    params = {**config.strategies.params_for(req.strategy), **req.params}
    strategy = build_strategy(req.strategy, **params)

    result = BacktestEngine(engine_cfg).run([b.to_bar() for b in req.bars], strategy)
    return {"strategy": req.strategy, "params": params, "result": result_to_dict(result)}


@router.post("/dca", responses=_ERRORS)
def run_dca(req: PeriodicRequest, config: Config = Depends(get_config)) -> dict[str, Any]:
    settings = config.periodic
    plan = InvestmentPlan(
        initial_capital=_pick(req.initial_capital, config.backtest.initial_capital),
        monthly_amount=_pick(req.monthly_amount, settings.monthly_amount),
        monthly_day=_pick(req.monthly_day, settings.monthly_day),
        mode=req.mode,
        commission_rate=_pick(req.commission_rate, config.backtest.commission_rate),
        tax_rate=_pick(req.tax_rate, settings.tax_rate),
        start_date=req.start_date,
        phases=tuple(InvestmentPhase(months=p.months, amount=p.amount) for p in req.phases),
        dip_buy=_pick(req.dip_buy, settings.dip_buy),
        dip_buy_multiplier=_pick(req.dip_buy_multiplier, settings.dip_buy_multiplier),
        rsi_threshold=_pick(req.rsi_threshold, settings.rsi_threshold),
        reinvest_dividends=_pick(req.reinvest_dividends, settings.reinvest_dividends),
    )

    periodic = run_periodic_investment([b.to_bar() for b in req.bars], plan, dividends=req.dividend_map())
    return {"mode": req.mode, **result_to_dict(periodic)}
