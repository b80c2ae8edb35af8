"""Indicator snapshot assembly for a rolling window."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.errors import ComputationError, DataInsufficientError
from core.indicators.indicators import bollinger_bands, ema, kdj, ratio, rsi, sma
from core.indicators.macd import build_macd_result, macd
from core.models.config import TrendAnalysisConfig
from core.models.snapshot import IndicatorSnapshot, MacdResult

if TYPE_CHECKING:
    from core.models.market import RollingWindow

SMA_SHORT = 10
SMA_MEDIUM = 20
EMA_FAST = 12
EMA_SLOW = 26


class IndicatorCalculator:
    """Calculator for every indicator the signal logic consumes."""

    def __init__(self, config: TrendAnalysisConfig | None = None):
        self.config = config or TrendAnalysisConfig()

    def calculate_snapshot(self, window: RollingWindow) -> IndicatorSnapshot:
        """
        Build the indicator snapshot for the window's latest sample.

        Args:
            window: Rolling window; its MACD state is read, never advanced

        Returns:
            IndicatorSnapshot with unavailable indicators set to None

        Raises:
            DataInsufficientError: If the window holds fewer samples than
                ``min_data_points_for_macd``
        """
        enhanced = self.config.enhanced
        required = enhanced.min_data_points_for_macd
        if len(window) < required:
            raise DataInsufficientError("indicator snapshot", required, len(window))

        prices = window.prices()
        current = prices[-1]
        sma_long = sma(prices)

        try:
            momentum = ratio(current, sma_long)
        except ComputationError:
            momentum = None

        bb = enhanced.bollinger
        kd = enhanced.kdj
        return IndicatorSnapshot(
            current_price=current,
            prices=tuple(prices),
            sma_short=sma(prices[-SMA_SHORT:]),
            sma_medium=sma(prices[-SMA_MEDIUM:]),
            sma_long=sma_long,
            ema_fast=ema(prices, EMA_FAST),
            ema_slow=ema(prices, EMA_SLOW),
            macd=self._macd(window, prices),
            rsi=rsi(window.deltas, self.config.rsi_period),
            bollinger=bollinger_bands(prices, bb.period, bb.std_dev, bb.squeeze_threshold),
            kdj=kdj(prices, period=kd.period, slow_k=kd.slow_k, slow_d=kd.slow_d, mode=kd.mode),
            long_momentum_ratio=momentum,
        )

    def _macd(self, window: RollingWindow, prices: list[float]) -> MacdResult | None:
        enhanced = self.config.enhanced
        if enhanced.macd_mode == "recompute":
            values = macd(prices)
        else:
            values = window.macd.values()
        if values is None:
            return None

        tp = enhanced.turning_point
        return build_macd_result(
            values,
            prices,
            zero_cross_threshold=tp.zero_cross_threshold,
            divergence_lookback=tp.divergence_lookback,
        )
