"""Basic trend analysis over a rolling window.

Direction from the window's overall price change, strength from a
least-squares slope, volatility from the population standard deviation and
a breakout flag from the distance to the window SMA. Direction changes are
alerted on only when ``trend_change_alert_due`` accepts them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from core.errors import DataInsufficientError
from core.indicators.indicators import rsi, sma, stddev
from core.models.config import AlertConfig, TrendAnalysisConfig
from core.models.market import RollingWindow

logger = logging.getLogger(__name__)

# Trend change alerts need this multiple of min_data_points
TREND_ALERT_MIN_POINTS_FACTOR = 1.5


class TrendDirection(str, Enum):
    """Overall window direction."""

    UPTREND = "uptrend"
    DOWNTREND = "downtrend"
    NEUTRAL = "neutral"


class BreakoutType(str, Enum):
    UP = "breakout_up"
    DOWN = "breakout_down"


@dataclass(slots=True, frozen=True)
class Breakout:
    type: BreakoutType
    strength: float  # |price - sma| / sma


@dataclass(slots=True, frozen=True)
class TrendAnalysis:
    """Result of ``analyze_trend``."""

    direction: TrendDirection
    strength: float
    price_change: float
    price_change_percent: float
    volatility: float  # percent
    sma: float
    current_price: float
    start_price: float
    data_points: int
    rsi: float | None = None
    breakout: Breakout | None = None


def _slope(prices: list[float]) -> float:
    n = len(prices)
    x = np.arange(n, dtype=np.float64)
    y = np.asarray(prices, dtype=np.float64)
    denominator = n * float(np.sum(x * x)) - float(np.sum(x)) ** 2
    if denominator == 0:
        return 0.0
    return (n * float(np.sum(x * y)) - float(np.sum(x)) * float(np.sum(y))) / denominator


def detect_breakout(current_price: float, mean: float, threshold: float) -> Breakout | None:
    """Price more than ``threshold`` (fraction) away from the SMA."""
    if mean == 0:
        return None
    distance = (current_price - mean) / mean
    if abs(distance) <= threshold:
        return None
    return Breakout(
        type=BreakoutType.UP if distance > 0 else BreakoutType.DOWN,
        strength=abs(distance),
    )


def analyze_trend(window: RollingWindow, config: TrendAnalysisConfig) -> TrendAnalysis:
    """
    Analyze the overall trend of a window.

    Args:
        window: Rolling window for one symbol
        config: Trend analysis configuration

    Returns:
        TrendAnalysis for the window's latest sample

    Raises:
        DataInsufficientError: If the window holds fewer than
            ``config.min_data_points`` samples
    """
    if len(window) < config.min_data_points:
        raise DataInsufficientError("trend analysis", config.min_data_points, len(window))

    prices = window.prices()
    first = prices[0]
    last = prices[-1]
    change = last - first
    change_fraction = change / first if first else 0.0

    if change_fraction > config.trend_threshold:
        direction = TrendDirection.UPTREND
    elif change_fraction < -config.trend_threshold:
        direction = TrendDirection.DOWNTREND
    else:
        direction = TrendDirection.NEUTRAL

    mean = sma(prices)
    volatility = stddev(prices, mean) / mean if mean else 0.0
    strength = abs(_slope(prices) / last) if last else 0.0

    analysis = TrendAnalysis(
        direction=direction,
        strength=strength,
        price_change=change,
        price_change_percent=change_fraction * 100,
        volatility=volatility * 100,
        sma=mean,
        current_price=last,
        start_price=first,
        data_points=len(prices),
        rsi=rsi(window.deltas, config.rsi_period),
        breakout=detect_breakout(last, mean, config.breakout_threshold),
    )
    logger.debug(
        f"{window.symbol} trend: {direction.value} change={analysis.price_change_percent:.2f}% "
        f"strength={strength:.4f} rsi={analysis.rsi}"
    )
    return analysis


def trend_change_alert_due(
    analysis: TrendAnalysis,
    previous: TrendDirection,
    min_data_points: int,
    alerts: AlertConfig,
) -> bool:
    """
    Decide whether a direction change is reliable enough to alert on.

    The direction must differ from ``previous`` and not be neutral, the
    window must hold enough samples, and the move must be strong, large,
    not too volatile and not at an RSI extreme. Cooldown is the caller's.

    Args:
        analysis: Latest trend analysis
        previous: Direction last alerted on
        min_data_points: Trend analysis minimum sample count
        alerts: Alert thresholds

    Returns:
        True if a trend change alert should be sent
    """
    direction = analysis.direction
    if direction == TrendDirection.NEUTRAL or direction == previous:
        return False

    name = direction.value
    if analysis.data_points < min_data_points * TREND_ALERT_MIN_POINTS_FACTOR:
        logger.debug(f"Trend change to {name} ignored: {analysis.data_points} data points")
        return False
    if analysis.strength < alerts.trend_min_strength:
        logger.debug(f"Trend change to {name} ignored: strength {analysis.strength * 100:.2f}%")
        return False
    if abs(analysis.price_change_percent) < alerts.trend_min_change_percent:
        logger.debug(f"Trend change to {name} ignored: change {analysis.price_change_percent:.2f}%")
        return False
    if analysis.volatility > alerts.trend_max_volatility:
        logger.debug(f"Trend change to {name} ignored: volatility {analysis.volatility:.2f}%")
        return False
    if analysis.rsi is not None and not alerts.trend_rsi_low <= analysis.rsi <= alerts.trend_rsi_high:
        logger.debug(f"Trend change to {name} ignored: RSI {analysis.rsi:.2f}")
        return False
    return True
