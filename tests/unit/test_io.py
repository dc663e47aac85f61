from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from snowball.backtest.engine import BacktestEngine
from snowball.backtest.io import PriceHistorySource, load_bars_csv, load_dividends_csv, result_to_dict
from snowball.backtest.models import EngineConfig, PriceBar
from snowball.backtest.periodic import InvestmentPlan, run_periodic_investment
from snowball.backtest.projection import project_compound_growth
from snowball.backtest.strategies import BuyAndHoldStrategy
from snowball.core.exceptions import DataFormatError
from tests.unit._bars import make_bars

GOOD = "Time,Open,High,Low,Close,Volume\n2024-01-02,100,101,99,100.5,1200\n2024-01-03,100.5,102,100,101.5,\n"


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "bars.csv"
    p.write_text(text, encoding="utf-8")
    return p


def test_load_bars_csv(tmp_path: Path) -> None:
    bars = load_bars_csv(_write(tmp_path, GOOD))
    assert bars == [
        PriceBar(time=date(2024, 1, 2), open=100.0, high=101.0, low=99.0, close=100.5, volume=1200.0),
        PriceBar(time=date(2024, 1, 3), open=100.5, high=102.0, low=100.0, close=101.5, volume=None),
    ]


def test_load_bars_csv_without_volume_column(tmp_path: Path) -> None:
    bars = load_bars_csv(_write(tmp_path, "time,open,high,low,close\n2024-01-02T00:00:00,1,1,1,1\n"))
    assert bars[0].time == date(2024, 1, 2)
    assert bars[0].volume is None


@pytest.mark.parametrize(
    "text",
    [
        "time,open,high,low\n2024-01-02,1,1,1\n",
        "time,open,high,low,close\n2024-01-02,1,1,1,abc\n",
        "time,open,high,low,close\n2024-01-02,1,1,1,nan\n",
        "time,open,high,low,close\n01/02/2024,1,1,1,1\n",
        "time,open,high,low,close\n2024-01-03,1,1,1,1\n2024-01-02,1,1,1,1\n",
        "time,open,high,low,close\n2024-01-02,1,1,1,1\n2024-01-02,1,1,1,1\n",
    ],
    ids=["missing-column", "bad-number", "not-finite", "bad-date", "descending", "duplicate"],
)
def test_load_bars_csv_rejects_bad_data(tmp_path: Path, text: str) -> None:
    with pytest.raises(DataFormatError):
        load_bars_csv(_write(tmp_path, text))


def test_load_bars_csv_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DataFormatError):
        load_bars_csv(tmp_path / "nope.csv")


def test_result_to_dict_is_json_safe() -> None:
    cfg = EngineConfig(commission_rate=0.0, slippage=0.0)
    res = BacktestEngine(cfg).run(make_bars([100.0, 100.0, 110.0]), BuyAndHoldStrategy())
    d = result_to_dict(res)

    assert d["start_date"] == "2024-01-02"
    assert d["trades"][0]["type"] == "buy"
    assert d["summary"]["profit_factor"] is None
    assert d["drawdown"]["drawdown_periods"] == []
    json.dumps(d, allow_nan=False)


def test_price_history_source_protocol() -> None:
    class Static:
        def history(self, symbol, *, start=None, end=None):
            return make_bars([1.0, 2.0])

    assert isinstance(Static(), PriceHistorySource)
    assert not isinstance(object(), PriceHistorySource)


def test_load_dividends_csv_sums_same_day_rows(tmp_path: Path) -> None:
    p = tmp_path / "dividends.csv"
    p.write_text("Time,Amount\n2024-07-18,2.5\n2024-07-18,0.5\n2025-01-16,3\n", encoding="utf-8")

    assert load_dividends_csv(p) == {date(2024, 7, 18): 3.0, date(2025, 1, 16): 3.0}


@pytest.mark.parametrize(
    "text",
    ["time\n2024-07-18\n", "time,amount\n2024-07-18,abc\n", "time,amount\n2024-07-18,-1\n"],
    ids=["missing-column", "bad-number", "negative"],
)
def test_load_dividends_csv_rejects_bad_data(tmp_path: Path, text: str) -> None:
    p = tmp_path / "dividends.csv"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(DataFormatError):
        load_dividends_csv(p)


def test_load_dividends_csv_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DataFormatError):
        load_dividends_csv(tmp_path / "nope.csv")


def test_result_to_dict_handles_periodic_and_projection_results() -> None:
    plan = InvestmentPlan(initial_capital=1_000.0, mode="lumpsum", commission_rate=0.0, tax_rate=0.0)
    periodic = result_to_dict(run_periodic_investment(make_bars([100.0, 110.0]), plan))
    assert periodic["result"]["start_date"] == "2024-01-02"
    assert periodic["net_value"] == pytest.approx(1_100.0)

    projection = result_to_dict(project_compound_growth(initial_capital=100.0, monthly_amount=0.0, annual_return=0.0))
    assert projection["doubling_years"] is None
    json.dumps(projection, allow_nan=False)
