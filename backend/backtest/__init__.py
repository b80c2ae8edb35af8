"""Replay tool for the trend monitor.

Fully independent of app/: only depends on core/ for business logic.

Usage:
    python -m backtest prices.csv
    python -m backtest prices.csv --symbols BTCUSDT --config monitor.yaml
"""

from backtest.runner import ReplayResult, ReplayRunner, load_samples

__all__ = ["ReplayResult", "ReplayRunner", "load_samples"]
