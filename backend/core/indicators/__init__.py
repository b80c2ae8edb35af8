"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    ema,
    sma,
    stddev,
    ratio,
    rsi,
    bollinger_bands,
    kdj,
)
from core.indicators.macd import (
    MacdState,
    macd,
    macd_line,
    detect_zero_cross,
    detect_bullish_divergence,
    detect_bearish_divergence,
)
from core.indicators.calculator import IndicatorCalculator

__all__ = [
    "ema",
    "sma",
    "stddev",
    "ratio",
    "rsi",
    "bollinger_bands",
    "kdj",
    "MacdState",
    "macd",
    "macd_line",
    "detect_zero_cross",
    "detect_bullish_divergence",
    "detect_bearish_divergence",
    "IndicatorCalculator",
]
