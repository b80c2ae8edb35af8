"""CLI entry point for the replay tool.

Usage:
    python -m backtest prices.csv
    python -m backtest prices.csv --symbols BTCUSDT,ETHUSDT --config monitor.yaml
    python -m backtest prices.csv --output results.json
"""

import argparse
import logging
import os
import sys

import yaml

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.models.config import EngineConfig

from backtest.report import ReportFormatter
from backtest.runner import ReplayRunner, load_samples


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay historical prices through the trend monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest prices.csv
  python -m backtest prices.csv --symbols BTCUSDT --config monitor.yaml
  python -m backtest prices.csv --macd-mode recompute --output results.json
        """,
    )
    parser.add_argument("csv", help="CSV file with timestamp,symbol,price columns")
    parser.add_argument(
        "--symbols",
        type=str,
        default=None,
        help="Comma-separated symbols to replay (default: all in file)",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Monitor YAML/JSON config (engine sections are used)",
    )
    parser.add_argument(
        "--macd-mode",
        choices=["incremental", "recompute"],
        default=None,
        help="Override the MACD computation mode",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args()


def load_engine_config(path: str | None) -> EngineConfig:
    if not path:
        return EngineConfig()
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return EngineConfig(**raw)


def main() -> None:
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    config = load_engine_config(args.config)
    if args.macd_mode:
        config.trend.enhanced.macd_mode = args.macd_mode

    symbols = [s.strip() for s in args.symbols.split(",")] if args.symbols else None
    samples = load_samples(args.csv, symbols)
    if not samples:
        print(f"No samples found in {args.csv}")
        sys.exit(1)

    runner = ReplayRunner(config)
    result = runner.run(samples)
    ReportFormatter.print_console(result)

    if args.output:
        ReportFormatter.save_json(result, args.output)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
