"""Technical indicators over plain price sequences.

All functions take ordered sequences of floats (oldest first) and return a
single latest value. ``None`` means the indicator is unavailable for the
given input (too few samples or degenerate algebra).
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from core.errors import ComputationError
from core.models.config import KdjMode
from core.models.snapshot import BollingerBands, KdjResult

KDJ_OVERBOUGHT = 80
KDJ_OVERSOLD = 20
KDJ_CROSS_GAP = 5


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def ratio(numerator: float, denominator: float) -> float:
    """Divide, raising ComputationError on a zero denominator."""
    if denominator == 0:
        raise ComputationError(f"zero denominator for numerator {numerator}")
    return numerator / denominator


def sma(values: Sequence[float]) -> float | None:
    """Arithmetic mean of all values.

    Returns:
        Mean, or None if ``values`` is empty
    """
    if len(values) == 0:
        return None
    return float(np.mean(_as_array(values)))


def ema(values: Sequence[float], period: int) -> float | None:
    """Exponential moving average seeded with the SMA of the first period values.

    Args:
        values: Prices, oldest first
        period: EMA period

    Returns:
        Latest EMA value, or None if fewer than ``period`` values
    """
    if period <= 0 or len(values) < period:
        return None

    multiplier = 2 / (period + 1)
    current = sma(values[:period])
    for price in values[period:]:
        current = (price - current) * multiplier + current
    return current


def stddev(values: Sequence[float], mean: float) -> float:
    """Population standard deviation of ``values`` around ``mean``."""
    if len(values) == 0:
        return 0.0
    arr = _as_array(values)
    return float(np.sqrt(np.mean((arr - mean) ** 2)))


def bollinger_bands(
    values: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
    squeeze_threshold: float = 0.1,
) -> BollingerBands | None:
    """Bollinger Bands over the last ``period`` values.

    Args:
        values: Prices, oldest first
        period: SMA/stddev lookback
        std_dev: Band width in standard deviations
        squeeze_threshold: Band width / middle below which the bands count
            as squeezed

    Returns:
        BollingerBands, or None if fewer than ``period`` values or the
        middle band is zero
    """
    if period <= 0 or len(values) < period:
        return None

    recent = values[-period:]
    middle = sma(recent)
    sigma = stddev(recent, middle)
    width = 2 * std_dev * sigma

    try:
        relative_width = ratio(width, middle)
    except ComputationError:
        return None

    return BollingerBands(
        upper=middle + std_dev * sigma,
        middle=middle,
        lower=middle - std_dev * sigma,
        bandwidth_pct=relative_width * 100,
        squeeze=relative_width < squeeze_threshold,
    )


def _rsv(closes: Sequence[float], highs: Sequence[float], lows: Sequence[float]) -> float:
    highest = max(highs)
    lowest = min(lows)
    return ratio(closes[-1] - lowest, highest - lowest) * 100


def kdj(
    closes: Sequence[float],
    highs: Sequence[float] | None = None,
    lows: Sequence[float] | None = None,
    period: int = 9,
    slow_k: int = 3,
    slow_d: int = 3,
    mode: KdjMode = "simple",
) -> KdjResult | None:
    """KDJ stochastic oscillator.

    When only closes are available, pass them alone: highs and lows default
    to the closes.

    ``simple`` mode reports K = RSV and D = K. ``recursive`` mode smooths K
    and D with ``slow_k`` / ``slow_d`` starting from 50 and walks every full
    ``period`` window in the sequence.

    Returns:
        KdjResult, or None if fewer than ``period`` values or the latest
        window has zero range
    """
    highs = closes if highs is None else highs
    lows = closes if lows is None else lows
    if period <= 0 or len(closes) < period:
        return None

    try:
        if mode == "recursive":
            k = d = 50.0
            for end in range(period, len(closes) + 1):
                start = end - period
                rsv = _rsv(closes[start:end], highs[start:end], lows[start:end])
                k = ((slow_k - 1) * k + rsv) / slow_k
                d = ((slow_d - 1) * d + k) / slow_d
        else:
            k = _rsv(closes[-period:], highs[-period:], lows[-period:])
            d = k
    except ComputationError:
        return None

    j = 3 * k - 2 * d
    return KdjResult(
        k=k,
        d=d,
        j=j,
        overbought=k > KDJ_OVERBOUGHT,
        oversold=k < KDJ_OVERSOLD,
        bullish_cross=k > d and k - d > KDJ_CROSS_GAP,
        bearish_cross=k < d and d - k > KDJ_CROSS_GAP,
    )


def rsi(deltas: Sequence[float], period: int = 14) -> float | None:
    """Relative Strength Index over the trailing ``period`` price deltas.

    Uses simple averages of gains and losses (no Wilder smoothing).

    Returns:
        RSI in [0, 100], 100 when there are no losses, or None if fewer
        than ``period`` deltas
    """
    if period <= 0 or len(deltas) < period:
        return None

    recent = _as_array(deltas[-period:])
    avg_gain = float(np.sum(recent[recent > 0])) / period
    avg_loss = float(-np.sum(recent[recent < 0])) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - 100 / (1 + rs)
