from api.schemas.backtest import BacktestRequest, BarIn, EngineParams, PeriodicRequest, StrategyInfo
from api.schemas.common import ErrorResponse

__all__ = [
    "BacktestRequest",
    "BarIn",
    "EngineParams",
    "ErrorResponse",
    "PeriodicRequest",
    "StrategyInfo",
]
