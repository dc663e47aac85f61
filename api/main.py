from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import ApiError, api_error_handler, snowball_error_handler
from api.routes import get_api_router
from snowball import __version__
from snowball.core.config import Config
from snowball.core.exceptions import SnowballError
from snowball.core.logs import configure_logging

logger = logging.getLogger("snowball.api")


def create_app(config: Config | None = None) -> FastAPI:
    start = time.monotonic()
    config = config or Config.load(Path.cwd())
    configure_logging(config.logging)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = start
        # Tests may inject their own config before startup.
        app.state.config = getattr(app.state, "config", None) or config
        logger.info("api_started", extra={"preset": app.state.config.preset})
        yield

    openapi_tags = [
        {"name": "health", "description": "Liveness and version metadata."},
        {"name": "strategies", "description": "Registered signal generators and their defaults."},
        {"name": "backtest", "description": "Strategy backtests and periodic-investment simulation."},
    ]

    app = FastAPI(
        title="snowball API",
        description="Backtest simulator for the market dashboard",
        version=__version__,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(SnowballError, snowball_error_handler)

    # CORS: only enable if origins explicitly configured
    if config.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(get_api_router(), prefix="/api/v1")
    return app


# Module-level app for uvicorn (e.g. `uvicorn api.main:app`).
app = create_app()
