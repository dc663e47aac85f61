from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from snowball import __version__
from snowball.cli import build_parser, main


def _scaffold_repo(tmp_path: Path) -> Path:
    """Create a minimal repo root layout expected by the CLI."""

    repo_root = tmp_path
    src_root = Path(__file__).resolve().parents[2]

    (repo_root / "config").mkdir(parents=True, exist_ok=True)
    shutil.copy2(src_root / "config" / "default.yaml", repo_root / "config" / "default.yaml")
    shutil.copytree(src_root / "config" / "presets", repo_root / "config" / "presets")
    return repo_root


def _write_csv(path: Path, closes: list[float]) -> Path:
    lines = ["time,open,high,low,close,volume"]
    for i, c in enumerate(closes):
        lines.append(f"2024-01-{i + 2:02d},{c},{c},{c},{c},1000")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_cli_help_includes_subcommands(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main([])
    assert rc == 2
    out = capsys.readouterr().out
    for cmd in ("backtest", "dca", "project", "strategies", "api"):
        assert cmd in out


def test_cli_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["--version"])
    assert rc == 0
    assert capsys.readouterr().out.strip() == f"snowball v{__version__}"


def test_cli_unknown_command_errors() -> None:
    with pytest.raises(SystemExit):
        main(["nope"])


def test_cli_backtest_parses_strategy_flags() -> None:
    ns = build_parser().parse_args(
        ["backtest", "--csv", "x.csv", "--strategy", "golden_cross", "--short-period", "5", "--long-period", "20"]
    )
    assert ns.strategy == "golden_cross"
    assert (ns.short_period, ns.long_period) == (5, 20)
    assert ns.allow_short is None


def test_cli_backtest_json(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = _scaffold_repo(tmp_path)
    monkeypatch.chdir(repo_root)
    csv_path = _write_csv(repo_root / "bars.csv", [100.0, 100.0, 110.0])

    rc = main(["backtest", "--csv", str(csv_path), "--commission", "0", "--slippage", "0", "--json"])
    assert rc == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["initial_capital"] == 1_000_000.0
    assert payload["final_capital"] == pytest.approx(1_100_000.0)
    assert payload["trades"][0]["shares"] == 10_000
    assert payload["summary"]["profit_factor"] is None


def test_cli_backtest_text_report(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    csv_path = _write_csv(tmp_path / "bars.csv", [100.0 + (i % 5) for i in range(25)])

    rc = main(["backtest", "--csv", str(csv_path), "--strategy", "rsi", "--period", "3"])
    assert rc == 0
    out = capsys.readouterr().out
    assert out.startswith("window: 2024-01-02 .. 2024-01-26")
    assert "total return" in out
    assert "max drawdown" in out


def test_cli_backtest_bad_input_exits_2(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)

    rc = main(["backtest", "--csv", str(tmp_path / "missing.csv")])
    assert rc == 2
    assert capsys.readouterr().err.startswith("error:")

    one_bar = _write_csv(tmp_path / "one.csv", [100.0])
    rc = main(["backtest", "--csv", str(one_bar)])
    assert rc == 2
    assert "at least 2 bars" in capsys.readouterr().err


def test_cli_backtest_rejects_bad_engine_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    csv_path = _write_csv(tmp_path / "bars.csv", [100.0, 101.0])

    rc = main(["backtest", "--csv", str(csv_path), "--capital", "-5"])
    assert rc == 2
    assert "initial_capital" in capsys.readouterr().err


def test_cli_dca_lumpsum(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    csv_path = _write_csv(tmp_path / "bars.csv", [100.0, 110.0])

    rc = main(["dca", "--csv", str(csv_path), "--mode", "lumpsum", "--capital", "1000", "--commission", "0", "--json"])
    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["result"]["trades"][0]["shares"] == 10
    assert payload["result"]["final_capital"] == pytest.approx(1_100.0)
    assert payload["total_shares"] == 10
    assert payload["net_value"] == pytest.approx(1_100.0 * (1.0 - 0.003))


def test_cli_strategies_lists_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = _scaffold_repo(tmp_path)
    monkeypatch.chdir(repo_root)

    rc = main(["strategies"])
    assert rc == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "buy_hold: -",
        "golden_cross: short_period=10, long_period=30",
        "rsi: period=14, oversold=30.0, overbought=70.0",
    ]


@pytest.mark.parametrize("cmd", ["strategies", "api"])
def test_cli_parses_bare_subcommands(cmd: str) -> None:
    ns = build_parser().parse_args([cmd])
    assert ns.command == cmd


def test_cli_dca_phases_and_cash_dividends(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    csv_path = _write_csv(tmp_path / "bars.csv", [100.0] * 5)
    dividends = tmp_path / "dividends.csv"
    dividends.write_text("time,amount\n2024-01-04,2\n", encoding="utf-8")

    rc = main(
        [
            "dca",
            "--csv",
            str(csv_path),
            "--commission",
            "0",
            "--phase",
            "6:500",
            "--phase",
            "6:1000",
            "--dividends",
            str(dividends),
            "--no-reinvest",
        ]
    )
    assert rc == 0
    out = capsys.readouterr().out
    assert "- invested: 500.00" in out
    assert "- dividends: 10.00" in out
    assert "- shares: 5 " in out
    assert "net value after sell costs" in out


def test_cli_dca_rejects_malformed_phase() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["dca", "--csv", "x.csv", "--phase", "six-months"])


def test_cli_project_json(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.chdir(tmp_path)

    rc = main(
        ["project", "--capital", "1000", "--monthly-amount", "100", "--annual-return", "0", "--years", "1", "--json"]
    )
    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["total_capital"] == pytest.approx(2_200.0)
    assert payload["final_value"] == pytest.approx(2_200.0)
    assert payload["doubling_years"] is None
    assert len(payload["timeline"]) == 13


def test_cli_project_text_uses_configured_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = _scaffold_repo(tmp_path)
    monkeypatch.chdir(repo_root)

    rc = main(["project"])
    assert rc == 0
    out = capsys.readouterr().out
    assert out.startswith("10 years at 7.00% a year")
    assert "- contributed: 1,200,000.00" in out
    assert "- doubles every 10.3 years" in out


def test_cli_project_bad_years_exits_2(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)

    rc = main(["project", "--years", "0"])
    assert rc == 2
    assert "years" in capsys.readouterr().err


@pytest.mark.parametrize("cmd", ["strategies", "api"])
@pytest.mark.parametrize(
    "yaml_text",
    ["preset: [taiwan\n", "api:\n  port: not-a-port\n"],
    ids=["unparseable", "invalid-value"],
)
def test_cli_bad_config_exits_2(
    cmd: str, yaml_text: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = _scaffold_repo(tmp_path)
    (repo_root / "config" / "default.yaml").write_text(yaml_text, encoding="utf-8")
    monkeypatch.chdir(repo_root)

    rc = main([cmd])
    assert rc == 2
    captured = capsys.readouterr()
    assert captured.err.startswith("error:")
    assert captured.out == ""
