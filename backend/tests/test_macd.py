"""Tests for MACD computation, zero-axis crossing and divergence."""

import pytest

from core.indicators import (
    MacdState,
    detect_bearish_divergence,
    detect_bullish_divergence,
    detect_zero_cross,
    macd,
    macd_line,
)
from core.indicators.macd import build_macd_result


def wave(n: int) -> list[float]:
    """Deterministic zig-zag around an upward drift."""
    return [100.0 + i * 0.3 + (1.5 if i % 3 == 0 else -0.7 if i % 3 == 1 else 0.0) for i in range(n)]


class TestMacdLine:
    def test_insufficient_data(self):
        assert macd_line([100.0] * 25) is None

    def test_constant_series(self):
        assert macd_line([50.0] * 40) == pytest.approx(0.0)

    def test_linear_series(self):
        """EMA lag on a linear series is (period - 1) / 2 steps."""
        prices = [100.0 + i for i in range(40)]
        assert macd_line(prices) == pytest.approx(12.5 - 5.5)


class TestRecomputeMacd:
    """Tests for the recompute-from-scratch path."""

    def test_insufficient_data(self):
        assert macd([100.0] * 25) is None

    def test_first_value_has_flat_histogram(self):
        """With exactly 26 prices the signal is the line itself."""
        line, signal, histogram, delta = macd(wave(26))

        assert signal == pytest.approx(line)
        assert histogram == pytest.approx(0.0)
        assert delta == 0.0

    def test_signal_averages_leading_slices(self):
        prices = wave(30)
        line, signal, histogram, _ = macd(prices)

        slices = [macd_line(prices[i:i + 26]) for i in range(5)]
        assert line == pytest.approx(macd_line(prices))
        assert signal == pytest.approx(sum(slices) / len(slices))
        assert histogram == pytest.approx(line - signal)

    def test_signal_uses_at_most_nine_slices(self):
        prices = wave(60)
        _, signal, _, _ = macd(prices)

        slices = [macd_line(prices[i:i + 26]) for i in range(9)]
        assert signal == pytest.approx(sum(slices) / 9)

    def test_delta_against_previous_prices(self):
        prices = wave(35)
        _, _, histogram, delta = macd(prices)
        _, _, previous_histogram, _ = macd(prices[:-1])
        assert delta == pytest.approx(histogram - previous_histogram)


class TestMacdState:
    """Tests for incremental MACD."""

    def test_not_ready_before_slow_period(self):
        state = MacdState()
        for price in wave(25):
            state.update(price)

        assert state.ready is False
        assert state.values() is None

    def test_first_value(self):
        state = MacdState()
        for price in wave(26):
            state.update(price)

        line, signal, histogram, delta = state.values()
        assert line == pytest.approx(macd_line(wave(26)))
        assert signal == pytest.approx(line)
        assert histogram == pytest.approx(0.0)
        assert delta == 0.0

    def test_line_matches_full_recompute(self):
        """Without pruning the incremental line equals EMA12 - EMA26 of all prices."""
        prices = wave(80)
        state = MacdState()
        for price in prices:
            state.update(price)

        assert state.line == pytest.approx(macd_line(prices))

    def test_signal_running_mean_then_ema(self):
        prices = wave(40)
        state = MacdState()
        lines = []
        for price in prices:
            state.update(price)
            if state.ready:
                lines.append(state.line)

        expected = sum(lines[:9]) / 9
        for value in lines[9:]:
            expected = (value - expected) * 0.2 + expected
        assert state.signal == pytest.approx(expected)

    def test_histogram_delta(self):
        state = MacdState()
        for price in wave(30):
            state.update(price)
        previous = state.histogram
        state.update(120.0)

        assert state.histogram_delta == pytest.approx(state.histogram - previous)

    def test_constant_series(self):
        state = MacdState()
        for _ in range(50):
            state.update(100.0)

        line, signal, histogram, delta = state.values()
        assert line == pytest.approx(0.0)
        assert signal == pytest.approx(0.0)
        assert histogram == pytest.approx(0.0)
        assert delta == pytest.approx(0.0)


class TestZeroCross:
    def test_bullish(self):
        zc = detect_zero_cross(0.002, 0.001, threshold=0.0005)
        assert zc.bullish is True
        assert zc.bearish is False
        assert zc.crossing_up is False

    def test_bullish_requires_threshold(self):
        assert detect_zero_cross(0.002, 0.0001, threshold=0.0005).bullish is False

    def test_bearish(self):
        zc = detect_zero_cross(-0.002, -0.001, threshold=0.0005)
        assert zc.bearish is True
        assert zc.bullish is False

    def test_crossing_up(self):
        zc = detect_zero_cross(0.0001, -0.0002)
        assert zc.crossing_up is True
        assert zc.crossing_down is False

    def test_crossing_down(self):
        zc = detect_zero_cross(-0.0001, 0.0002)
        assert zc.crossing_down is True
        assert zc.crossing_up is False

    def test_at_zero(self):
        zc = detect_zero_cross(0.0, 0.0)
        assert not (zc.bullish or zc.bearish or zc.crossing_up or zc.crossing_down)


class TestDivergence:
    LOWER_LOW = [10.0, 11.0, 12.0, 13.0, 14.0, 13.0, 12.0, 11.0, 10.0, 9.0]
    HIGHER_HIGH = [10.0, 9.0, 8.0, 7.0, 6.0, 7.0, 8.0, 9.0, 10.0, 11.0]

    def test_bullish_divergence(self):
        assert detect_bullish_divergence(self.LOWER_LOW, line=0.5) is True

    def test_bullish_needs_positive_line(self):
        assert detect_bullish_divergence(self.LOWER_LOW, line=-0.5) is False

    def test_bullish_needs_new_low(self):
        assert detect_bullish_divergence(self.HIGHER_HIGH, line=0.5) is False

    def test_bearish_divergence(self):
        assert detect_bearish_divergence(self.HIGHER_HIGH, line=-0.5) is True

    def test_bearish_needs_negative_line(self):
        assert detect_bearish_divergence(self.HIGHER_HIGH, line=0.5) is False

    def test_insufficient_prices(self):
        assert detect_bullish_divergence(self.LOWER_LOW[1:], line=0.5) is False
        assert detect_bearish_divergence(self.HIGHER_HIGH[1:], line=-0.5) is False

    def test_lookback(self):
        prices = [5.0, 5.0] + self.LOWER_LOW[-4:] + [20.0, 20.0]
        assert detect_bullish_divergence(prices, line=0.5, lookback=4) is False

    def test_zero_lookback(self):
        assert detect_bullish_divergence(self.LOWER_LOW, line=0.5, lookback=0) is False
        assert detect_bearish_divergence(self.HIGHER_HIGH, line=-0.5, lookback=0) is False


class TestBuildMacdResult:
    def test_flags(self):
        result = build_macd_result(
            (0.0001, -0.0002, 0.0003, 0.0001),
            TestDivergence.LOWER_LOW,
        )
        assert result.line == 0.0001
        assert result.histogram_delta == 0.0001
        assert result.zero_cross.crossing_up is True
        assert result.bullish_divergence is True
        assert result.bearish_divergence is False
