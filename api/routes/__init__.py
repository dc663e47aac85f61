from __future__ import annotations

from fastapi import APIRouter

from api.routes import backtest, health, projection, strategies


def get_api_router() -> APIRouter:
    router = APIRouter()

    router.include_router(health.router, tags=["health"])
    router.include_router(strategies.router, tags=["strategies"])
    router.include_router(backtest.router, tags=["backtest"])
    router.include_router(projection.router, tags=["projection"])

    return router
