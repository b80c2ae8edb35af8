"""Tests for signal synthesis."""

import logging

import pytest

from core.models.config import TrendAnalysisConfig
from core.models.signal import Confidence, Signal, SignalType, TurningPointResult
from core.models.snapshot import IndicatorSnapshot, MacdResult, ZeroCross
from core.signal_generator import SignalGenerator


def snapshot(
    price=100.0,
    momentum=None,
    ema_fast=None,
    ema_slow=None,
    histogram=None,
    rsi=None,
):
    macd = None
    if histogram is not None:
        macd = MacdResult(
            line=0.0,
            signal=-histogram,
            histogram=histogram,
            histogram_delta=0.0,
            zero_cross=ZeroCross(),
        )
    return IndicatorSnapshot(
        current_price=price,
        prices=(price,),
        ema_fast=ema_fast,
        ema_slow=ema_slow,
        macd=macd,
        rsi=rsi,
        long_momentum_ratio=momentum,
    )


def bottom(confidence: int) -> TurningPointResult:
    return TurningPointResult(
        potential_bottom=True,
        bottom_confidence=confidence,
        reasons=["MACD bullish divergence", "MACD zero-axis cross up"],
        bottom_indicators={"macd_divergence": True, "macd_cross_up": True},
    )


def top(confidence: int) -> TurningPointResult:
    return TurningPointResult(
        potential_top=True,
        top_confidence=confidence,
        reasons=["Price decline from recent high", "MACD histogram reversal"],
    )


class TestTurningPointSignals:
    """Turning point results take priority over the regular rules."""

    @pytest.fixture
    def generator(self):
        return SignalGenerator(TrendAnalysisConfig())

    @pytest.fixture
    def bearish(self):
        # Would be SELL CONVICTION without turning points
        return snapshot(price=95.0, momentum=0.95, ema_fast=96.0, ema_slow=98.0, histogram=-0.01, rsi=40.0)

    def test_bottom_high(self, generator, bearish):
        signal = generator.generate(bearish, bottom(55))

        assert signal.signal == Signal.BUY
        assert signal.confidence == Confidence.HIGH
        assert signal.signal_type == SignalType.TURNING_POINT
        assert signal.reasons[0] == "Bottom turning point (confidence 55)"
        assert signal.reasons[1:] == ["MACD bullish divergence", "MACD zero-axis cross up"]
        assert signal.actionable is True

    def test_bottom_conviction(self, generator, bearish):
        signal = generator.generate(bearish, bottom(75))
        assert signal.confidence == Confidence.CONVICTION

    def test_confidence_must_exceed_fifty(self, generator, bearish):
        signal = generator.generate(bearish, bottom(50))

        assert signal.signal_type == SignalType.REGULAR
        assert signal.signal == Signal.SELL

    def test_top(self, generator):
        bullish = snapshot(price=105.0, momentum=1.05, ema_fast=104.0, ema_slow=102.0, histogram=0.01, rsi=60.0)
        signal = generator.generate(bullish, top(60))

        assert signal.signal == Signal.SELL
        assert signal.confidence == Confidence.HIGH
        assert signal.signal_type == SignalType.TURNING_POINT
        assert signal.reasons[0] == "Top turning point (confidence 60)"

    def test_classification_logged(self, generator, bearish, caplog):
        with caplog.at_level(logging.DEBUG, logger="core.signal_generator"):
            signal = generator.generate(bearish, bottom(55))

        messages = [r.getMessage() for r in caplog.records if r.name == "core.signal_generator"]
        assert len(messages) == 1
        assert signal.signal.value in messages[0]
        assert "Bottom turning point (confidence 55)" in messages[0]

    def test_bottom_checked_before_top(self, generator, bearish):
        both = bottom(55)
        both.potential_top = True
        both.top_confidence = 90
        assert generator.generate(bearish, both).signal == Signal.BUY


class TestRegularSignals:
    @pytest.fixture
    def generator(self):
        return SignalGenerator()

    def test_bullish_conviction(self, generator):
        snap = snapshot(price=105.0, momentum=1.05, ema_fast=104.0, ema_slow=102.0, histogram=0.002, rsi=60.0)
        signal = generator.generate(snap)

        assert signal.signal == Signal.BUY
        assert signal.confidence == Confidence.CONVICTION
        assert signal.signal_type == SignalType.REGULAR
        assert signal.conditions["strong_bullish_macd"] is True
        assert signal.actionable is True

    def test_bullish_high(self, generator):
        snap = snapshot(price=105.0, momentum=1.03, ema_fast=104.0, ema_slow=102.0, histogram=0.0005, rsi=85.0)
        signal = generator.generate(snap)

        assert signal.signal == Signal.BUY
        assert signal.confidence == Confidence.HIGH

    def test_bullish_medium_not_actionable(self, generator):
        snap = snapshot(price=105.0, momentum=1.03, ema_fast=104.0, ema_slow=102.0)
        signal = generator.generate(snap)

        assert signal.signal == Signal.BUY
        assert signal.confidence == Confidence.MEDIUM
        assert signal.actionable is False

    def test_bearish_conviction(self, generator):
        snap = snapshot(price=90.0, momentum=0.9, ema_fast=92.0, ema_slow=95.0, histogram=-0.01, rsi=30.0)
        signal = generator.generate(snap)

        assert signal.signal == Signal.SELL
        assert signal.confidence == Confidence.CONVICTION

    def test_bearish_high(self, generator):
        snap = snapshot(price=97.0, momentum=0.97, ema_fast=98.0, ema_slow=99.0, histogram=-0.0002, rsi=15.0)
        signal = generator.generate(snap)

        assert signal.signal == Signal.SELL
        assert signal.confidence == Confidence.HIGH

    def test_flat_market_leans_bearish(self, generator):
        """A zero histogram counts as bearish and RSI 100 is not oversold."""
        snap = snapshot(price=100.0, momentum=1.0, ema_fast=100.0, ema_slow=100.0, histogram=0.0, rsi=100.0)
        signal = generator.generate(snap)

        assert signal.signal == Signal.SELL
        assert signal.confidence == Confidence.MEDIUM

    def test_everything_unavailable(self, generator):
        signal = generator.generate(IndicatorSnapshot(current_price=100.0, prices=(100.0,)))

        assert signal.signal == Signal.HOLD
        assert signal.confidence == Confidence.LOW
        assert not any(signal.conditions.values())
        assert signal.actionable is False

    def test_conflicting(self, generator):
        snap = snapshot(price=100.0, momentum=1.0, histogram=0.0001)
        signal = generator.generate(snap)

        assert signal.signal == Signal.HOLD
        assert signal.confidence == Confidence.LOW
        assert signal.reasons == ["Conflicting signals", "Needs confirmation"]

    def test_condition_keys(self, generator):
        signal = generator.generate(snapshot())
        assert set(signal.conditions) == {
            "long_momentum", "ema_bullish", "macd_bullish", "rsi_not_overbought",
            "macd_zero_cross_up", "potential_bottom",
            "short_momentum", "ema_bearish", "macd_bearish", "rsi_not_oversold",
            "macd_zero_cross_down", "potential_top",
            "strong_bullish_macd", "strong_bearish_macd",
            "very_bullish_momentum", "very_bearish_momentum",
        }

    def test_deterministic(self, generator):
        snap = snapshot(price=105.0, momentum=1.05, ema_fast=104.0, ema_slow=102.0, histogram=0.002, rsi=60.0)
        first = generator.generate(snap)
        second = generator.generate(snap)

        assert first.signal == second.signal
        assert first.confidence == second.confidence
        assert first.conditions == second.conditions


class TestNeutralMarket:
    def test_range_bound(self):
        generator = SignalGenerator()
        snap = snapshot(price=100.0, momentum=1.001, ema_fast=100.05, ema_slow=100.0, histogram=0.0001, rsi=50.0)
        assert generator._is_neutral(snap) is True

    def test_trending_is_not_neutral(self):
        generator = SignalGenerator()
        snap = snapshot(price=100.0, momentum=1.05, ema_fast=100.05, ema_slow=100.0, histogram=0.0001, rsi=50.0)
        assert generator._is_neutral(snap) is False

    def test_missing_inputs_are_not_neutral(self):
        assert SignalGenerator()._is_neutral(snapshot(momentum=1.0)) is False
