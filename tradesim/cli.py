"""tradesim.cli

Command line interface entry point for tradesim.

Design constraints:
- argparse-based.
- Lazy imports: do not import numpy or pydantic at parse time.
"""

from __future__ import annotations

import argparse
import json
import math
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def _kv(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected key=value, got {raw!r}")
    return key.strip(), value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradesim",
        description="Deterministic strategy backtesting with simulated execution.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )

    sub = parser.add_subparsers(dest="command")

    p_bt = sub.add_parser("backtest", help="Backtest one strategy over a candle CSV")
    p_bt.add_argument("--csv", required=True, type=Path, help="Candle CSV (timestamp, close, ...)")
    p_bt.add_argument("--symbol", default=None, help="Symbol for CSVs without a symbol column")
    p_bt.add_argument("--type", dest="strategy_type", default="MOMENTUM", help="Strategy archetype")
    p_bt.add_argument("--id", dest="strategy_id", default="cli", help="Strategy id")
    p_bt.add_argument(
        "--param",
        action="append",
        type=_kv,
        default=[],
        metavar="KEY=VALUE",
        help="Strategy parameter (repeatable)",
    )
    p_bt.add_argument("--seed", type=int, default=None, help="Fill model RNG seed")
    p_bt.add_argument("--config", type=Path, default=None, help="Config YAML (default: config/default.yaml)")
    p_bt.add_argument("--report", action="store_true", help="Print an assessment report instead of JSON")

    sub.add_parser("version", help="Print version")

    return parser


def _print_version() -> None:
    from tradesim import __version__

    print(f"tradesim v{__version__}")


def _param_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _json_safe(value: Any) -> Any:
    """Spell non-finite floats as strings so the output stays strict JSON."""

    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def _cmd_version(ctx: CliContext, args: argparse.Namespace) -> int:
    _print_version()
    return 0


def _cmd_backtest(ctx: CliContext, args: argparse.Namespace) -> int:
    from tradesim.backtest.analysis import Thresholds, assess_strategy, render_report
    from tradesim.backtest.engine import run_backtest
    from tradesim.backtest.io import load_candles_csv
    from tradesim.core.config import Config
    from tradesim.core.exceptions import TradesimError
    from tradesim.core.logging import configure_logging
    from tradesim.core.models import StrategyModel

    try:
        if args.config is not None:
            config = Config.from_yaml(args.config)
        elif (ctx.repo_root / "config" / "default.yaml").exists():
            config = Config.from_repo_defaults(ctx.repo_root)
        else:
            config = Config()
        configure_logging(config.logging)

        bt_cfg = config.backtest
        if args.seed is not None:
            bt_cfg = bt_cfg.model_copy(update={"random_seed": args.seed})

        strategy = StrategyModel(
            id=args.strategy_id,
            type=args.strategy_type,
            parameters={k: _param_value(v) for k, v in args.param},
        ).to_strategy()
        candles = load_candles_csv(args.csv, symbol=args.symbol)
        result = run_backtest(strategy, candles, bt_cfg)
    except (TradesimError, OSError, ValueError) as e:
        print(f"backtest failed: {e}", file=sys.stderr)
        return 1

    if args.report:
        assessment = assess_strategy(result, strategy, Thresholds.from_config(config.analysis))
        print(render_report(assessment, strategy))
    else:
        print(json.dumps(_json_safe(result.to_dict()), indent=2, default=str, allow_nan=False))
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
        "version": _cmd_version,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
