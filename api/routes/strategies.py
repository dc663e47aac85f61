from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_config
from api.schemas.backtest import StrategyInfo
from snowball.backtest.strategies import STRATEGIES
from snowball.core.config import Config

router = APIRouter(prefix="/strategies")


@router.get("", response_model=list[StrategyInfo])
def list_strategies(config: Config = Depends(get_config)) -> list[StrategyInfo]:
    return [StrategyInfo(id=name, params=config.strategies.params_for(name)) for name in STRATEGIES]
