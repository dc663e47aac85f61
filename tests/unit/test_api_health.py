from __future__ import annotations

import pytest

from api.main import create_app
from snowball import __version__
from tests.unit._api_test_client import make_client


@pytest.mark.anyio
async def test_health_returns_version(test_config):
    app = create_app(test_config)

    async with make_client(app) as ac:
        r = await ac.get("/api/v1/health")
        assert r.status_code == 200
        data = r.json()
        assert data["version"] == __version__
        assert "uptime_seconds" in data


@pytest.mark.anyio
async def test_strategies_lists_defaults(test_config):
    app = create_app(test_config)

    async with make_client(app) as ac:
        r = await ac.get("/api/v1/strategies")
        assert r.status_code == 200
        by_id = {s["id"]: s["params"] for s in r.json()}
        assert by_id["buy_hold"] == {}
        assert by_id["golden_cross"] == {"short_period": 10, "long_period": 30}
        assert by_id["rsi"]["period"] == 14
