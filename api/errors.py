from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from snowball.core.exceptions import (
    ConfigError,
    DataFormatError,
    InsufficientDataError,
    SnowballError,
    UnknownStrategyError,
)


class ApiError(Exception):
    def __init__(self, code: str, message: str, status: int = 400, **extra: object) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.extra = extra


_ENGINE_CODES: dict[type[SnowballError], str] = {
    InsufficientDataError: "backtest.insufficient_data",
    UnknownStrategyError: "backtest.unknown_strategy",
    DataFormatError: "backtest.bad_data",
    ConfigError: "backtest.bad_config",
}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    body = {"error": {"code": exc.code, "message": exc.message, **exc.extra}}
    return JSONResponse(status_code=exc.status, content=body)


async def snowball_error_handler(request: Request, exc: SnowballError) -> JSONResponse:
    code = next((c for t, c in _ENGINE_CODES.items() if isinstance(exc, t)), "backtest.failed")
    body = {"error": {"code": code, "message": str(exc)}}
    return JSONResponse(status_code=422, content=body)
