from __future__ import annotations

import pytest

from api.main import create_app
from tests.unit._api_test_client import make_client


@pytest.mark.anyio
async def test_backtest_routes_require_auth(test_config):
    test_config = test_config.model_copy(update={"api": test_config.api.model_copy(update={"auth_token": "secret"})})
    app = create_app(test_config)
    payload = {"bars": [{"time": "2024-01-02", "open": 1, "high": 1, "low": 1, "close": 1}] * 2}

    async with make_client(app) as ac:
        r = await ac.post("/api/v1/backtest", json=payload)
        assert r.status_code == 401
        assert r.json()["error"]["code"] == "auth.missing_token"

        r2 = await ac.post("/api/v1/backtest", json=payload, headers={"Authorization": "Token secret"})
        assert r2.status_code == 401
        assert r2.json()["error"]["code"] == "auth.invalid_header"

        r3 = await ac.post("/api/v1/backtest", json=payload, headers={"Authorization": "Bearer nope"})
        assert r3.status_code == 401
        assert r3.json()["error"]["code"] == "auth.invalid_token"

        r4 = await ac.get("/api/v1/health")
        assert r4.status_code == 200


@pytest.mark.anyio
async def test_valid_token_reaches_the_engine(test_config):
    test_config = test_config.model_copy(update={"api": test_config.api.model_copy(update={"auth_token": "secret"})})
    app = create_app(test_config)
    payload = {"bars": [{"time": "2024-01-02", "open": 1, "high": 1, "low": 1, "close": 1}]}

    async with make_client(app, token="secret") as ac:
        r = await ac.post("/api/v1/backtest", json=payload)
        # authenticated, then rejected by the engine for having one bar
        assert r.status_code == 422
        assert r.json()["error"]["code"] == "backtest.insufficient_data"
