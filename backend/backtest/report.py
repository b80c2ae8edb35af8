"""Report formatting for replay results.

Outputs results to console (formatted tables) and JSON files.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import orjson

from backtest.runner import ReplayResult


def _fmt_time(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class ReportFormatter:
    """Format replay results for display and export."""

    @staticmethod
    def print_console(result: ReplayResult) -> None:
        """Print formatted report to console."""
        stats = result.report.get("global", {})

        print("\n" + "=" * 70)
        print("  REPLAY RESULTS")
        print("=" * 70)
        print(f"  Period: {_fmt_time(result.start)} → {_fmt_time(result.end)} UTC")
        print(f"  Symbols: {', '.join(result.symbols) or '-'}")
        print(f"  Ticks: {result.ticks}")

        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Closed trades:  {stats.get('total_trades', 0)}")
        print(f"  Wins:           {stats.get('winning_trades', 0)}")
        print(f"  Losses:         {stats.get('losing_trades', 0)}")
        print(f"  Win rate:       {stats.get('win_rate', 0.0):.1f}%")
        print(f"  Total PnL:      {stats.get('total_profit', 0.0):+.2f}")
        print(f"  Still open:     {len(result.open_trades)}")
        print(f"  Max concurrent: {stats.get('max_concurrent_trades', 0)}")

        symbols = result.report.get("symbols", {})
        if symbols:
            print("\n" + "-" * 70)
            print("  BY SYMBOL")
            print("-" * 70)
            print(f"  {'Symbol':<14} {'Total':>6} {'Wins':>6} {'Losses':>6} {'Win%':>8} {'PnL':>10}")
            for symbol, s in symbols.items():
                print(
                    f"  {symbol:<14} {s['total_trades']:>6} {s['winning_trades']:>6} "
                    f"{s['losing_trades']:>6} {s['win_rate']:>7.1f}% {s['total_profit']:>+10.2f}"
                )

        if result.signals:
            print("\n" + "-" * 70)
            print("  SIGNALS")
            print("-" * 70)
            for key, count in sorted(result.signals.items()):
                print(f"  {key:<24} {count:>6}")

        if result.closed_trades:
            print("\n" + "-" * 70)
            print("  LAST TRADES")
            print("-" * 70)
            print(f"  {'Exit time':<20} {'Symbol':<12} {'Dir':<6} {'Reason':<12} {'PnL':>10}")
            for t in result.closed_trades[-10:]:
                print(
                    f"  {_fmt_time(t.exit_time):<20} {t.symbol:<12} {t.direction.value:<6} "
                    f"{t.exit_reason.value:<12} {t.exit_profit:>+10.2f}"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(result: ReplayResult) -> dict:
        """Convert results to a JSON-serializable dict."""
        return {
            "metadata": {
                "start": result.start,
                "end": result.end,
                "symbols": result.symbols,
                "ticks": result.ticks,
                "duration_seconds": round(result.duration, 3),
            },
            "stats": result.report,
            "signals": dict(result.signals),
            "alerts": dict(result.alerts),
            "closed_trades": [t.model_dump(mode="json") for t in result.closed_trades],
            "open_trades": [t.model_dump(mode="json") for t in result.open_trades],
        }

    @staticmethod
    def save_json(result: ReplayResult, path: Path | str) -> None:
        Path(path).write_bytes(
            orjson.dumps(ReportFormatter.to_dict(result), option=orjson.OPT_INDENT_2)
        )
