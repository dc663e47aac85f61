"""snowball.cli

Command line interface entry point for snowball.

Design constraints:
- argparse-based.
- Lazy imports: do not import heavy dependencies at parse time.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

STRATEGY_IDS = ["buy_hold", "golden_cross", "rsi"]


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def _add_engine_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--csv", required=True, type=Path, help="Price file: time,open,high,low,close[,volume]")
    p.add_argument("--capital", type=float, default=None, help="Initial capital.")
    p.add_argument("--commission", type=float, default=None, help="Commission rate per leg (fraction).")
    p.add_argument("--json", action="store_true", help="Print the full result as JSON.")


def _phase(raw: str) -> tuple[int, float]:
    months, sep, amount = raw.partition(":")
    try:
        if not sep:
            raise ValueError(raw)
        return int(months), float(amount)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected MONTHS:AMOUNT, got {raw!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snowball",
        description="Replay price history against a trading signal and report the damage.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )

    sub = parser.add_subparsers(dest="command")

    p_bt = sub.add_parser("backtest", help="Run a strategy backtest over a CSV price history")
    _add_engine_args(p_bt)
    p_bt.add_argument("--strategy", choices=STRATEGY_IDS, default="buy_hold")
    p_bt.add_argument("--slippage", type=float, default=None, help="Adverse price adjustment per fill.")
    p_bt.add_argument("--max-position", type=float, default=None, help="Fraction of capital per trade.")
    p_bt.add_argument("--allow-short", action="store_true", default=None, help="Let sell signals open shorts.")
    p_bt.add_argument("--short-period", type=int, default=None, help="golden_cross: short EMA period.")
    p_bt.add_argument("--long-period", type=int, default=None, help="golden_cross: long EMA period.")
    p_bt.add_argument("--period", type=int, default=None, help="rsi: lookback period.")
    p_bt.add_argument("--oversold", type=float, default=None, help="rsi: buy threshold.")
    p_bt.add_argument("--overbought", type=float, default=None, help="rsi: sell threshold.")

    p_dca = sub.add_parser("dca", help="Simulate periodic (or lump-sum) investing over a CSV price history")
    _add_engine_args(p_dca)
    p_dca.add_argument("--mode", choices=["dca", "lumpsum"], default="dca")
    p_dca.add_argument("--monthly-amount", type=float, default=None)
    p_dca.add_argument("--monthly-day", type=int, default=None)
    p_dca.add_argument("--start-date", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    p_dca.add_argument("--tax-rate", type=float, default=None, help="Sell-side tax rate used for net value.")
    p_dca.add_argument(
        "--phase",
        dest="phases",
        action="append",
        type=_phase,
        default=None,
        metavar="MONTHS:AMOUNT",
        help="Monthly amount schedule step; repeat for more steps.",
    )
    p_dca.add_argument("--dip-buy", choices=["none", "rsi"], default=None, help="Scale buys up while RSI is low.")
    p_dca.add_argument("--dip-multiplier", type=float, default=None)
    p_dca.add_argument("--rsi-threshold", type=float, default=None)
    p_dca.add_argument("--dividends", type=Path, default=None, help="Dividend file: time,amount (cash per share)")
    p_dca.add_argument("--no-reinvest", action="store_true", help="Keep dividends as cash.")

    p_proj = sub.add_parser("project", help="Project fixed-return compound growth of regular contributions")
    p_proj.add_argument("--capital", type=float, default=0.0, help="Initial deposit.")
    p_proj.add_argument("--monthly-amount", type=float, default=None)
    p_proj.add_argument("--annual-return", type=float, default=None, help="Fraction, e.g. 0.07")
    p_proj.add_argument("--years", type=int, default=None)
    p_proj.add_argument("--json", action="store_true", help="Print the full projection as JSON.")

    sub.add_parser("strategies", help="List strategy ids and their default parameters")

    p_api = sub.add_parser("api", help="Start FastAPI server")
    p_api.add_argument("--host", default=None)
    p_api.add_argument("--port", type=int, default=None)

    return parser


def _print_version() -> None:
    from snowball import __version__

    print(f"snowball v{__version__}")


def _load_config(ctx: CliContext):
    from snowball.core.config import Config
    from snowball.core.logs import configure_logging

    config = Config.load(ctx.repo_root)
    configure_logging(config.logging)
    return config


def _strategy_params(name: str, args: argparse.Namespace, defaults: dict[str, Any]) -> dict[str, Any]:
    overrides = {
        "golden_cross": {"short_period": args.short_period, "long_period": args.long_period},
        "rsi": {"period": args.period, "oversold": args.oversold, "overbought": args.overbought},
    }.get(name, {})
    params = dict(defaults)
    params.update({k: v for k, v in overrides.items() if v is not None})
    return params


def _print_result(result: Any, *, as_json: bool) -> None:
    from snowball.backtest.io import result_to_dict

    if as_json:
        print(json.dumps(result_to_dict(result), indent=2))
        return

    s = result.summary
    d = result.drawdown
    print(f"window: {result.start_date} .. {result.end_date}")
    print(f"- capital: {result.initial_capital:,.2f} -> {result.final_capital:,.2f}")
    print(f"- total return: {s.total_return:.2f}% (benchmark {result.benchmark_return:.2f}%)")
    print(f"- annualized return: {s.annualized_return:.2f}%")
    print(f"- trades: {s.total_trades} (win {s.win_trades} / lose {s.lose_trades}, win rate {s.win_rate:.1f}%)")
    print(f"- sharpe: {s.sharpe_ratio:.3f}")
    print(f"- profit factor: {s.profit_factor:.3f}")
    print(f"- max drawdown: {d.max_drawdown:.2f}% ({d.max_drawdown_start} .. {d.max_drawdown_end})")


def _cmd_backtest(ctx: CliContext, args: argparse.Namespace) -> int:
    from snowball.backtest.engine import BacktestEngine
    from snowball.backtest.io import load_bars_csv
    from snowball.backtest.strategies import build_strategy
    from snowball.core.exceptions import SnowballError

    try:
        config = _load_config(ctx)
        engine_cfg = config.backtest.engine_config(
            initial_capital=args.capital,
            commission_rate=args.commission,
            slippage=args.slippage,
            allow_short=args.allow_short,
            max_position_size=args.max_position,
        )
        params = _strategy_params(args.strategy, args, config.strategies.params_for(args.strategy))
        strategy = build_strategy(args.strategy, **params)
        bars = load_bars_csv(args.csv)
        result = BacktestEngine(engine_cfg).run(bars, strategy)
    except SnowballError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    _print_result(result, as_json=bool(args.json))
    return 0


def _pick(value: Any, default: Any) -> Any:
    return value if value is not None else default


def _cmd_dca(ctx: CliContext, args: argparse.Namespace) -> int:
    from snowball.backtest.io import load_bars_csv, load_dividends_csv, result_to_dict
    from snowball.backtest.periodic import InvestmentPhase, InvestmentPlan, run_periodic_investment
    from snowball.core.exceptions import SnowballError

    try:
        config = _load_config(ctx)
        settings = config.periodic
        plan = InvestmentPlan(
            initial_capital=_pick(args.capital, config.backtest.initial_capital),
            monthly_amount=_pick(args.monthly_amount, settings.monthly_amount),
            monthly_day=_pick(args.monthly_day, settings.monthly_day),
            mode=args.mode,
            commission_rate=_pick(args.commission, config.backtest.commission_rate),
            tax_rate=_pick(args.tax_rate, settings.tax_rate),
            start_date=args.start_date,
            phases=tuple(InvestmentPhase(months=m, amount=a) for m, a in (args.phases or [])),
            dip_buy=_pick(args.dip_buy, settings.dip_buy),
            dip_buy_multiplier=_pick(args.dip_multiplier, settings.dip_buy_multiplier),
            rsi_threshold=_pick(args.rsi_threshold, settings.rsi_threshold),
            reinvest_dividends=settings.reinvest_dividends and not args.no_reinvest,
        )
        bars = load_bars_csv(args.csv)
        dividends = load_dividends_csv(args.dividends) if args.dividends else None
        periodic = run_periodic_investment(bars, plan, dividends=dividends)
    except SnowballError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result_to_dict(periodic), indent=2))
        return 0

    _print_result(periodic.result, as_json=False)
    print(f"- invested: {periodic.total_invested:,.2f}")
    print(f"- dividends: {periodic.total_dividends:,.2f}")
    print(f"- shares: {periodic.total_shares} (market value {periodic.market_value:,.2f})")
    print(f"- net value after sell costs: {periodic.net_value:,.2f}")
    return 0


def _cmd_project(ctx: CliContext, args: argparse.Namespace) -> int:
    from snowball.backtest.io import result_to_dict
    from snowball.backtest.projection import project_compound_growth
    from snowball.core.exceptions import SnowballError

    try:
        config = _load_config(ctx)
        projection = project_compound_growth(
            initial_capital=args.capital,
            monthly_amount=_pick(args.monthly_amount, config.periodic.monthly_amount),
            annual_return=_pick(args.annual_return, config.projection.annual_return),
            years=_pick(args.years, config.projection.years),
        )
    except SnowballError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result_to_dict(projection), indent=2))
        return 0

    print(f"{projection.years} years at {projection.annual_return * 100:.2f}% a year")
    print(f"- contributed: {projection.total_capital:,.2f}")
    print(f"- final value: {projection.final_value:,.2f}")
    print(f"- gain: {projection.total_gain:,.2f} ({projection.total_gain_percent:.2f}%)")
    print(f"- doubles every {projection.doubling_years:.1f} years")
    return 0


def _cmd_strategies(ctx: CliContext, args: argparse.Namespace) -> int:
    from snowball.core.exceptions import SnowballError

    try:
        config = _load_config(ctx)
    except SnowballError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    for name in STRATEGY_IDS:
        params = config.strategies.params_for(name)
        rendered = ", ".join(f"{k}={v}" for k, v in params.items()) or "-"
        print(f"{name}: {rendered}")
    return 0


def _cmd_api(ctx: CliContext, args: argparse.Namespace) -> int:
    from snowball.core.exceptions import SnowballError

    try:
        config = _load_config(ctx)
    except SnowballError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    host = args.host or config.api.host
    port = args.port or config.api.port

    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=False)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd())

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "backtest": _cmd_backtest,
        "dca": _cmd_dca,
        "project": _cmd_project,
        "strategies": _cmd_strategies,
        "api": _cmd_api,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
