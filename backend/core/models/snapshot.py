"""Indicator result models.

Frozen slotted dataclasses: a snapshot is recomputed every tick and never
mutated afterwards. ``None`` on any field means "unavailable".
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ZeroCross:
    """MACD line / signal line position relative to the zero axis."""

    bullish: bool = False
    bearish: bool = False
    crossing_up: bool = False
    crossing_down: bool = False


@dataclass(slots=True, frozen=True)
class MacdResult:
    """MACD line, signal, histogram and derived reversal hints."""

    line: float
    signal: float
    histogram: float
    histogram_delta: float
    zero_cross: ZeroCross
    bullish_divergence: bool = False
    bearish_divergence: bool = False


@dataclass(slots=True, frozen=True)
class BollingerBands:
    """Bollinger Bands around an SMA."""

    upper: float
    middle: float
    lower: float
    bandwidth_pct: float
    squeeze: bool


@dataclass(slots=True, frozen=True)
class KdjResult:
    """KDJ stochastic oscillator values and flags."""

    k: float
    d: float
    j: float
    overbought: bool
    oversold: bool
    bullish_cross: bool
    bearish_cross: bool


@dataclass(slots=True, frozen=True)
class IndicatorSnapshot:
    """All indicators for one symbol at one tick."""

    current_price: float
    prices: tuple[float, ...]
    sma_short: float | None = None
    sma_medium: float | None = None
    sma_long: float | None = None
    ema_fast: float | None = None
    ema_slow: float | None = None
    macd: MacdResult | None = None
    rsi: float | None = None
    bollinger: BollingerBands | None = None
    kdj: KdjResult | None = None
    long_momentum_ratio: float | None = None

    @property
    def ema_spread(self) -> float | None:
        """EMA fast minus EMA slow."""
        if self.ema_fast is None or self.ema_slow is None:
            return None
        return self.ema_fast - self.ema_slow

    def to_dict(self) -> dict:
        """Flat summary for logs and notifications."""
        macd = self.macd
        return {
            "price": self.current_price,
            "long_momentum_pct": (
                (self.long_momentum_ratio - 1) * 100
                if self.long_momentum_ratio is not None
                else None
            ),
            "ema_spread": self.ema_spread,
            "macd_line": macd.line if macd else None,
            "macd_signal": macd.signal if macd else None,
            "macd_histogram": macd.histogram if macd else None,
            "rsi": self.rsi,
            "bollinger_bandwidth": self.bollinger.bandwidth_pct if self.bollinger else None,
            "kdj_k": self.kdj.k if self.kdj else None,
        }
