"""ReplayRunner: feeds historical prices through the tick pipeline.

Independent of app/: reads a CSV of price samples and drives
``core.tick_processor.TickProcessor`` exactly as the live monitor does,
using each sample's own timestamp as the clock.

CSV columns: ``timestamp,symbol,price``. Timestamps are Unix seconds
(milliseconds are detected and converted) or ISO-8601 strings.
"""

from __future__ import annotations

import csv
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from core.models.config import EngineConfig
from core.models.signal import Signal
from core.models.trade import Trade
from core.tick_processor import TickProcessor

logger = logging.getLogger(__name__)

# Values above this are treated as Unix milliseconds
_MS_THRESHOLD = 1e11


@dataclass(slots=True)
class PriceRow:
    symbol: str
    timestamp: float
    price: float


def parse_timestamp(value: str) -> float:
    """Parse Unix seconds, Unix milliseconds or ISO-8601 into Unix seconds."""
    value = value.strip()
    try:
        ts = float(value)
    except ValueError:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp()
    return ts / 1000 if ts > _MS_THRESHOLD else ts


def load_samples(path: Path | str, symbols: list[str] | None = None) -> list[PriceRow]:
    """
    Load price samples from CSV, sorted by timestamp.

    Args:
        path: CSV file with a header row
        symbols: Keep only these symbols (all when None)

    Returns:
        Rows ordered by timestamp (stable for equal timestamps)
    """
    wanted = set(symbols) if symbols else None
    rows = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = {"timestamp", "symbol", "price"} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"{path}: missing columns {sorted(missing)}")
        for line_no, record in enumerate(reader, start=2):
            symbol = record["symbol"].strip()
            if wanted is not None and symbol not in wanted:
                continue
            try:
                rows.append(PriceRow(
                    symbol=symbol,
                    timestamp=parse_timestamp(record["timestamp"]),
                    price=float(record["price"]),
                ))
            except ValueError as e:
                logger.warning(f"{path}:{line_no}: skipped ({e})")
    rows.sort(key=lambda r: r.timestamp)
    return rows


@dataclass
class ReplayResult:
    """Outcome of one replay run."""

    symbols: list[str]
    start: float | None
    end: float | None
    ticks: int
    signals: Counter = field(default_factory=Counter)
    alerts: Counter = field(default_factory=Counter)
    closed_trades: list[Trade] = field(default_factory=list)
    open_trades: list[Trade] = field(default_factory=list)
    report: dict = field(default_factory=dict)
    duration: float = 0.0


class ReplayRunner:
    """Replay price samples through a fresh TickProcessor."""

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.processor = TickProcessor(self.config)

    def run(self, samples: Iterable[PriceRow]) -> ReplayResult:
        started = time.time()
        symbols: list[str] = []
        signals: Counter = Counter()
        alerts: Counter = Counter()
        first = last = None
        ticks = 0

        for row in samples:
            if row.symbol not in symbols:
                symbols.append(row.symbol)
            first = row.timestamp if first is None else first
            last = row.timestamp

            result = self.processor.process_tick(row.symbol, row.price, row.timestamp)
            ticks += 1
            if result.signal is not None and result.signal.signal != Signal.HOLD:
                key = f"{result.signal.signal.value} {result.signal.confidence.value}"
                signals[key] += 1
            for alert in result.alerts:
                alerts[alert.kind.value] += 1

        trades = self.processor.trades
        logger.info(
            f"Replayed {ticks} ticks for {len(symbols)} symbols: "
            f"{len(trades.history())} closed, {len(trades.active_trades())} open"
        )
        return ReplayResult(
            symbols=symbols,
            start=first,
            end=last,
            ticks=ticks,
            signals=signals,
            alerts=alerts,
            closed_trades=trades.history(),
            open_trades=trades.active_trades(),
            report=self.processor.report(),
            duration=time.time() - started,
        )

    def run_file(self, path: Path | str, symbols: list[str] | None = None) -> ReplayResult:
        return self.run(load_samples(path, symbols))
