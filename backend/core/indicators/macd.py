"""MACD computation, zero-axis crossing and divergence detection.

Two ways to obtain MACD values:

- ``MacdState``: incremental EMA12/EMA26/signal EMA9 updated once per sample.
  This is the default and yields a true signal line.
- ``macd()``: recompute from the whole price sequence. The signal line is an
  approximation (mean of up to nine MACD values taken over the leading
  26-sample slices), kept for parity with historical monitor output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from core.indicators.indicators import ema, sma
from core.models.snapshot import MacdResult, ZeroCross

FAST_PERIOD = 12
SLOW_PERIOD = 26
SIGNAL_PERIOD = 9


def macd_line(
    prices: Sequence[float],
    fast_period: int = FAST_PERIOD,
    slow_period: int = SLOW_PERIOD,
) -> float | None:
    """EMA(fast) - EMA(slow) over the whole sequence."""
    fast = ema(prices, fast_period)
    slow = ema(prices, slow_period)
    if fast is None or slow is None:
        return None
    return fast - slow


def _recompute(
    prices: Sequence[float],
    fast_period: int,
    slow_period: int,
    signal_period: int,
) -> tuple[float, float, float] | None:
    line = macd_line(prices, fast_period, slow_period)
    if line is None:
        return None

    values = []
    for i in range(signal_period):
        if len(prices) - i < slow_period:
            break
        value = macd_line(prices[i:i + slow_period], fast_period, slow_period)
        if value is not None:
            values.append(value)

    signal = sma(values)
    if signal is None:
        signal = line
    return line, signal, line - signal


def macd(
    prices: Sequence[float],
    fast_period: int = FAST_PERIOD,
    slow_period: int = SLOW_PERIOD,
    signal_period: int = SIGNAL_PERIOD,
) -> tuple[float, float, float, float] | None:
    """Recompute MACD from scratch.

    Args:
        prices: Prices, oldest first
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: Maximum number of slice MACD values averaged into
            the signal line

    Returns:
        (line, signal, histogram, histogram_delta), or None if fewer than
        ``slow_period`` prices. ``histogram_delta`` compares against the
        same computation without the newest price (0 when unavailable).
    """
    current = _recompute(prices, fast_period, slow_period, signal_period)
    if current is None:
        return None

    line, signal, histogram = current
    previous = _recompute(prices[:-1], fast_period, slow_period, signal_period)
    delta = histogram - previous[2] if previous is not None else 0.0
    return line, signal, histogram, delta


def _ema_step(current: float | None, seed: list[float], value: float, period: int) -> float | None:
    if current is None:
        seed.append(value)
        if len(seed) < period:
            return None
        return sma(seed)
    return (value - current) * (2 / (period + 1)) + current


@dataclass(slots=True)
class MacdState:
    """Incremental MACD carried alongside a rolling window.

    Each EMA seeds with the SMA of its first ``period`` inputs. Until
    ``signal_period`` MACD values exist, the signal is their running mean.
    """

    fast_period: int = FAST_PERIOD
    slow_period: int = SLOW_PERIOD
    signal_period: int = SIGNAL_PERIOD

    fast_ema: float | None = None
    slow_ema: float | None = None
    line: float | None = None
    signal: float | None = None
    histogram: float | None = None
    previous_histogram: float | None = None

    _fast_seed: list[float] = field(default_factory=list, repr=False)
    _slow_seed: list[float] = field(default_factory=list, repr=False)
    _signal_seed: list[float] = field(default_factory=list, repr=False)

    def update(self, price: float) -> None:
        """Feed one price."""
        self.fast_ema = _ema_step(self.fast_ema, self._fast_seed, price, self.fast_period)
        self.slow_ema = _ema_step(self.slow_ema, self._slow_seed, price, self.slow_period)
        if self.fast_ema is None or self.slow_ema is None:
            return

        self.line = self.fast_ema - self.slow_ema
        if len(self._signal_seed) < self.signal_period:
            self._signal_seed.append(self.line)
            self.signal = sma(self._signal_seed)
        else:
            self.signal = (self.line - self.signal) * (2 / (self.signal_period + 1)) + self.signal

        self.previous_histogram = self.histogram
        self.histogram = self.line - self.signal

    @property
    def ready(self) -> bool:
        return self.line is not None

    @property
    def histogram_delta(self) -> float:
        if self.histogram is None or self.previous_histogram is None:
            return 0.0
        return self.histogram - self.previous_histogram

    def values(self) -> tuple[float, float, float, float] | None:
        """(line, signal, histogram, histogram_delta), or None before warm-up."""
        if not self.ready:
            return None
        return self.line, self.signal, self.histogram, self.histogram_delta


def detect_zero_cross(line: float, signal: float, threshold: float = 0.0005) -> ZeroCross:
    """Classify MACD and signal line positions around the zero axis."""
    return ZeroCross(
        bullish=line > threshold and signal > threshold and line > signal,
        bearish=line < -threshold and signal < -threshold and line < signal,
        crossing_up=line > 0 and signal < 0 and line > signal,
        crossing_down=line < 0 and signal > 0 and line < signal,
    )


def detect_bullish_divergence(prices: Sequence[float], line: float, lookback: int = 5) -> bool:
    """Price makes a new low against the earlier half while MACD stays positive."""
    if lookback <= 0 or len(prices) < lookback * 2:
        return False
    recent = prices[-lookback * 2:]
    earlier_low = min(recent[:lookback])
    return recent[-1] < earlier_low and line > 0


def detect_bearish_divergence(prices: Sequence[float], line: float, lookback: int = 5) -> bool:
    """Price makes a new high against the earlier half while MACD stays negative."""
    if lookback <= 0 or len(prices) < lookback * 2:
        return False
    recent = prices[-lookback * 2:]
    earlier_high = max(recent[:lookback])
    return recent[-1] > earlier_high and line < 0


def build_macd_result(
    values: tuple[float, float, float, float],
    prices: Sequence[float],
    zero_cross_threshold: float = 0.0005,
    divergence_lookback: int = 5,
) -> MacdResult:
    """Wrap raw MACD values with zero-cross and divergence flags."""
    line, signal, histogram, delta = values
    return MacdResult(
        line=line,
        signal=signal,
        histogram=histogram,
        histogram_delta=delta,
        zero_cross=detect_zero_cross(line, signal, zero_cross_threshold),
        bullish_divergence=detect_bullish_divergence(prices, line, divergence_lookback),
        bearish_divergence=detect_bearish_divergence(prices, line, divergence_lookback),
    )
