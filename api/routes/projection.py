from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from api.auth import AuthDep
from api.deps import get_config
from api.schemas.backtest import ProjectionRequest
from api.schemas.common import ErrorResponse
from snowball.backtest.io import result_to_dict
from snowball.backtest.projection import project_compound_growth
from snowball.core.config import Config

router = APIRouter(prefix="/projection", dependencies=[AuthDep])


@router.post("", responses={422: {"model": ErrorResponse}})
def run_projection(req: ProjectionRequest, config: Config = Depends(get_config)) -> dict[str, Any]:
    projection = project_compound_growth(
        initial_capital=req.initial_capital,
        monthly_amount=req.monthly_amount if req.monthly_amount is not None else config.periodic.monthly_amount,
        annual_return=req.annual_return if req.annual_return is not None else config.projection.annual_return,
        years=req.years or config.projection.years,
    )
    return result_to_dict(projection)
