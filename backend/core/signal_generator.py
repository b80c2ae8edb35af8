"""Trading signal synthesis.

This module is pure business logic with no I/O dependencies. The generator
is stateless: the same snapshot and turning point result always yield the
same signal.
"""

from __future__ import annotations

import logging

from core.models.config import TrendAnalysisConfig
from core.models.signal import (
    Confidence,
    Signal,
    SignalType,
    TradingSignal,
    TurningPointResult,
)
from core.models.snapshot import IndicatorSnapshot

logger = logging.getLogger(__name__)

TURNING_POINT_MIN_CONFIDENCE = 50
TURNING_POINT_CONVICTION = 70
NEUTRAL_RSI_LOW = 40
NEUTRAL_RSI_HIGH = 60
NEUTRAL_EMA_SPREAD = 0.01


class SignalGenerator:
    """Grades BUY / SELL / HOLD signals from indicators and turning points.

    Turning point signals take priority over the regular rule set.
    """

    def __init__(self, config: TrendAnalysisConfig | None = None):
        self.config = config or TrendAnalysisConfig()

    def _conditions(
        self,
        snapshot: IndicatorSnapshot,
        turning_points: TurningPointResult | None,
    ) -> dict[str, bool]:
        enhanced = self.config.enhanced
        momentum_t = enhanced.long_momentum_threshold
        weak = enhanced.macd_hist_weak
        strong = enhanced.macd_hist_strong

        price = snapshot.current_price
        momentum = snapshot.long_momentum_ratio
        ema_fast = snapshot.ema_fast
        ema_slow = snapshot.ema_slow
        histogram = snapshot.macd.histogram if snapshot.macd else None
        zero_cross = snapshot.macd.zero_cross if snapshot.macd else None
        rsi = snapshot.rsi
        has_ema = ema_fast is not None and ema_slow is not None

        return {
            "long_momentum": momentum is not None and momentum > 1 + momentum_t,
            "ema_bullish": has_ema and ema_fast > ema_slow and price > ema_fast,
            "macd_bullish": histogram is not None and histogram >= weak,
            "rsi_not_overbought": rsi is not None and rsi < self.config.rsi_overbought,
            "macd_zero_cross_up": zero_cross is not None and zero_cross.crossing_up,
            "potential_bottom": turning_points is not None and turning_points.potential_bottom,
            "short_momentum": momentum is not None and momentum < 1 - momentum_t,
            "ema_bearish": has_ema and ema_fast < ema_slow and price < ema_fast,
            "macd_bearish": histogram is not None and histogram <= weak,
            "rsi_not_oversold": rsi is not None and rsi > self.config.rsi_oversold,
            "macd_zero_cross_down": zero_cross is not None and zero_cross.crossing_down,
            "potential_top": turning_points is not None and turning_points.potential_top,
            "strong_bullish_macd": histogram is not None and histogram >= strong,
            "strong_bearish_macd": histogram is not None and histogram <= -strong,
            "very_bullish_momentum": momentum is not None and momentum > 1 + momentum_t * 2,
            "very_bearish_momentum": momentum is not None and momentum < 1 - momentum_t * 2,
        }

    def _is_neutral(self, snapshot: IndicatorSnapshot) -> bool:
        enhanced = self.config.enhanced
        momentum = snapshot.long_momentum_ratio
        spread = snapshot.ema_spread
        macd = snapshot.macd
        rsi = snapshot.rsi
        if momentum is None or spread is None or macd is None or rsi is None:
            return False
        if snapshot.current_price == 0:
            return False
        return (
            abs(momentum - 1) < enhanced.long_momentum_threshold * 0.5
            and abs(spread) / snapshot.current_price < NEUTRAL_EMA_SPREAD
            and abs(macd.histogram) < enhanced.macd_hist_strong * 0.5
            and NEUTRAL_RSI_LOW < rsi < NEUTRAL_RSI_HIGH
        )

    def generate(
        self,
        snapshot: IndicatorSnapshot,
        turning_points: TurningPointResult | None = None,
    ) -> TradingSignal:
        """
        Generate the signal for one tick.

        Args:
            snapshot: Indicator snapshot
            turning_points: Turning point scoring for the same tick

        Returns:
            TradingSignal (HOLD when nothing qualifies)
        """
        c = self._conditions(snapshot, turning_points)

        def build(signal, confidence, reasons, signal_type=SignalType.REGULAR):
            logger.debug(
                f"Signal {signal.value} ({confidence.value}, {signal_type.value}) "
                f"at {snapshot.current_price}: {'; '.join(reasons)}"
            )
            return TradingSignal(
                signal=signal,
                confidence=confidence,
                signal_type=signal_type,
                reasons=reasons,
                conditions=c,
                technicals=snapshot,
                turning_points=turning_points,
            )

        tp = turning_points
        if c["potential_bottom"] and tp.bottom_confidence > TURNING_POINT_MIN_CONFIDENCE:
            confidence = (
                Confidence.CONVICTION
                if tp.bottom_confidence > TURNING_POINT_CONVICTION
                else Confidence.HIGH
            )
            reasons = [f"Bottom turning point (confidence {tp.bottom_confidence})", *tp.reasons]
            return build(Signal.BUY, confidence, reasons, SignalType.TURNING_POINT)

        if c["potential_top"] and tp.top_confidence > TURNING_POINT_MIN_CONFIDENCE:
            confidence = (
                Confidence.CONVICTION
                if tp.top_confidence > TURNING_POINT_CONVICTION
                else Confidence.HIGH
            )
            reasons = [f"Top turning point (confidence {tp.top_confidence})", *tp.reasons]
            return build(Signal.SELL, confidence, reasons, SignalType.TURNING_POINT)

        bullish = sum(
            (c["long_momentum"], c["ema_bullish"], c["macd_bullish"], c["rsi_not_overbought"])
        )
        bearish = sum(
            (c["short_momentum"], c["ema_bearish"], c["macd_bearish"], c["rsi_not_oversold"])
        )
        very_bullish = bullish >= 3 and (c["strong_bullish_macd"] or c["very_bullish_momentum"])
        very_bearish = bearish >= 3 and (c["strong_bearish_macd"] or c["very_bearish_momentum"])

        if very_bullish:
            return build(Signal.BUY, Confidence.CONVICTION, [
                "Strong bullish momentum", "EMA bullish alignment", "MACD bullish", "RSI healthy",
            ])
        if bullish >= 3:
            return build(Signal.BUY, Confidence.HIGH, [
                "Clear bullish momentum", "EMA supports upside", "MACD strengthening",
            ])
        if bullish >= 2:
            return build(Signal.BUY, Confidence.MEDIUM, [
                "Early bullish signal", "Indicators lean bullish",
            ])
        if very_bearish:
            return build(Signal.SELL, Confidence.CONVICTION, [
                "Strong bearish momentum", "EMA bearish alignment", "MACD bearish", "RSI healthy",
            ])
        if bearish >= 3:
            return build(Signal.SELL, Confidence.HIGH, [
                "Clear bearish momentum", "EMA supports downside", "MACD weakening",
            ])
        if bearish >= 2:
            return build(Signal.SELL, Confidence.MEDIUM, [
                "Early bearish signal", "Indicators lean bearish",
            ])

        if self._is_neutral(snapshot):
            return build(Signal.HOLD, Confidence.MEDIUM, [
                "Range-bound market", "No clear trend", "Waiting for breakout",
            ])
        return build(Signal.HOLD, Confidence.LOW, ["Conflicting signals", "Needs confirmation"])
