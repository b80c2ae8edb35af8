"""Per-symbol price storage.

``RollingWindow`` is the only mutable market state in the engine. It keeps
the raw samples, the recent price deltas used by RSI and the incremental
MACD state so that an indicator snapshot is a pure function of the window.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.indicators.macd import MacdState

# Samples older than this multiple of the analysis window are dropped
RETENTION_FACTOR = 1.5
# Count ceiling / count kept after trimming, as multiples of the MACD minimum
MAX_POINTS_FACTOR = 4
KEEP_POINTS_FACTOR = 3


@dataclass(slots=True)
class PriceSample:
    """Single observed price."""

    price: float
    timestamp: float  # Unix seconds


@dataclass(slots=True)
class RollingWindow:
    """Ordered price samples for one symbol, oldest first."""

    symbol: str
    rsi_period: int = 14
    samples: list[PriceSample] = field(default_factory=list)
    deltas: list[float] = field(default_factory=list)
    macd: MacdState = field(default_factory=MacdState)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def last(self) -> PriceSample | None:
        return self.samples[-1] if self.samples else None

    def push(self, price: float, timestamp: float) -> PriceSample:
        """Append a sample and update deltas and MACD state.

        Args:
            price: Observed price
            timestamp: Unix seconds; expected to be non-decreasing

        Returns:
            The stored sample
        """
        if self.samples:
            self.deltas.append(price - self.samples[-1].price)
            if len(self.deltas) > self.rsi_period:
                del self.deltas[: len(self.deltas) - self.rsi_period]

        sample = PriceSample(price=price, timestamp=timestamp)
        self.samples.append(sample)
        self.macd.update(price)
        return sample

    def prune(self, time_window: float, min_points: int) -> int:
        """Drop stale samples.

        Samples older than ``RETENTION_FACTOR * time_window`` relative to the
        newest sample are removed, but never below the newest ``min_points``
        samples; if more than ``MAX_POINTS_FACTOR * min_points`` remain, only
        the newest ``KEEP_POINTS_FACTOR * min_points`` are kept. The retained
        samples are always the newest contiguous run, and deltas never reach
        back past the oldest retained sample.

        Returns:
            Number of samples removed
        """
        if not self.samples:
            return 0

        before = len(self.samples)
        cutoff = self.samples[-1].timestamp - time_window * RETENTION_FACTOR
        kept = [s for s in self.samples if s.timestamp > cutoff]

        if len(kept) < min_points:
            kept = self.samples[-min_points:]
        elif len(kept) > min_points * MAX_POINTS_FACTOR:
            kept = kept[-min_points * KEEP_POINTS_FACTOR:]

        self.samples = kept
        max_deltas = max(len(kept) - 1, 0)
        if len(self.deltas) > max_deltas:
            del self.deltas[: len(self.deltas) - max_deltas]
        return before - len(kept)

    def prices(self) -> list[float]:
        """Sample prices, oldest first."""
        return [s.price for s in self.samples]
