"""Trend turning point scoring.

Each side (bottom / top) evaluates a fixed list of weighted conditions
against the indicator snapshot. A side fires when at least two conditions
hold; its confidence is the sum of their weights.
"""

from __future__ import annotations

from typing import Sequence

from core.models.signal import TurningPointResult
from core.models.snapshot import IndicatorSnapshot

MIN_PRICES = 10
RECENT_PRICES = 5
MIN_CONDITIONS = 2
PRICE_SWING_PCT = 2.0

# Histogram values within this fraction of the price count as zero
FLAT_TOLERANCE = 1e-9

WEIGHT_DIVERGENCE = 30
WEIGHT_ZERO_CROSS = 25
WEIGHT_PRICE_SWING = 20
WEIGHT_HISTOGRAM = 15
WEIGHT_BOLLINGER = 10


def _score(conditions: list[tuple[str, str, int, bool]]) -> tuple[bool, int, list[str], dict[str, bool]]:
    hits = [(key, reason, weight) for key, reason, weight, ok in conditions if ok]
    indicators = {key: True for key, _, _ in hits}
    if len(hits) < MIN_CONDITIONS:
        return False, 0, [], indicators
    return True, sum(w for _, _, w in hits), [r for _, r, _ in hits], indicators


class TurningPointDetector:
    """Scores potential bottoms and tops from MACD, price action and Bollinger."""

    def __init__(self, flat_tolerance: float = FLAT_TOLERANCE):
        self.flat_tolerance = flat_tolerance

    def detect(
        self,
        prices: Sequence[float],
        snapshot: IndicatorSnapshot,
        current_price: float,
    ) -> TurningPointResult:
        """
        Score the latest tick.

        Args:
            prices: Window prices, oldest first
            snapshot: Indicator snapshot for the same window
            current_price: Latest price

        Returns:
            TurningPointResult; empty when fewer than 10 prices or MACD is
            unavailable
        """
        macd = snapshot.macd
        if len(prices) < MIN_PRICES or macd is None:
            return TurningPointResult()

        recent = prices[-RECENT_PRICES:]
        tolerance = abs(current_price) * self.flat_tolerance
        histogram = macd.histogram if abs(macd.histogram) > tolerance else 0.0
        delta = macd.histogram_delta if abs(macd.histogram_delta) > tolerance else 0.0

        lowest = min(recent)
        recovery = (current_price - lowest) / lowest * 100 if lowest else 0.0
        bottom = _score([
            ("macd_divergence", "MACD bullish divergence", WEIGHT_DIVERGENCE, macd.bullish_divergence),
            ("macd_cross_up", "MACD zero-axis cross up", WEIGHT_ZERO_CROSS, macd.zero_cross.crossing_up),
            ("price_recovery", "Price recovery from recent low", WEIGHT_PRICE_SWING, recovery > PRICE_SWING_PCT),
            ("histogram_reversal", "MACD histogram reversal", WEIGHT_HISTOGRAM, histogram < 0 and delta > 0),
        ])

        highest = max(recent)
        decline = (current_price - highest) / highest * 100 if highest else 0.0
        bands = snapshot.bollinger
        top = _score([
            ("macd_divergence", "MACD bearish divergence", WEIGHT_DIVERGENCE, macd.bearish_divergence),
            ("macd_cross_down", "MACD zero-axis cross down", WEIGHT_ZERO_CROSS, macd.zero_cross.crossing_down),
            ("price_decline", "Price decline from recent high", WEIGHT_PRICE_SWING, decline < -PRICE_SWING_PCT),
            ("histogram_reversal", "MACD histogram reversal", WEIGHT_HISTOGRAM, histogram > 0 and delta < 0),
            ("bollinger_upper", "Bollinger upper band resistance", WEIGHT_BOLLINGER,
             bands is not None and current_price >= bands.upper),
        ])

        result = TurningPointResult()
        result.potential_bottom, result.bottom_confidence, bottom_reasons, result.bottom_indicators = bottom
        result.potential_top, result.top_confidence, top_reasons, result.top_indicators = top
        result.reasons = bottom_reasons + top_reasons
        return result
