"""Engine configuration models.

Defaults mirror the monitor's shipped configuration. Durations are seconds.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

MacdMode = Literal["incremental", "recompute"]
KdjMode = Literal["simple", "recursive"]


class TurningPointConfig(BaseModel):
    """MACD turning point detection parameters."""

    zero_cross_threshold: float = Field(default=0.0005, ge=0)
    divergence_lookback: int = Field(default=5, ge=1)
    # Accepted for config compatibility, not used by the detector
    histogram_reversal_ratio: float = 0.3
    confirmation_candles: int = Field(default=2, ge=1)


class BollingerConfig(BaseModel):
    """Bollinger Bands parameters."""

    period: int = Field(default=20, ge=1)
    std_dev: float = Field(default=2.0, gt=0)
    squeeze_threshold: float = 0.1  # band width / middle


class KdjConfig(BaseModel):
    """KDJ parameters.

    ``simple`` keeps K = RSV and D = K (the monitor's historical behavior).
    ``recursive`` is the textbook smoothed KDJ and changes signal output.
    """

    period: int = Field(default=9, ge=1)
    slow_k: int = Field(default=3, ge=1)
    slow_d: int = Field(default=3, ge=1)
    mode: KdjMode = "simple"


class EnhancedTrendConfig(BaseModel):
    """Indicator engine and signal classification thresholds."""

    long_momentum_threshold: float = 0.02
    macd_hist_weak: float = 0.0
    macd_hist_strong: float = 0.001
    min_data_points_for_macd: int = 26
    macd_mode: MacdMode = "incremental"

    turning_point: TurningPointConfig = Field(default_factory=TurningPointConfig)
    bollinger: BollingerConfig = Field(default_factory=BollingerConfig)
    kdj: KdjConfig = Field(default_factory=KdjConfig)

    @model_validator(mode="after")
    def _validate(self):
        if self.min_data_points_for_macd < 26:
            raise ValueError(
                f"min_data_points_for_macd must be >= 26, got {self.min_data_points_for_macd}"
            )
        return self


class TrendAnalysisConfig(BaseModel):
    """Rolling window and basic trend analysis parameters."""

    time_window: float = Field(default=30 * 60, gt=0)  # analysis window, seconds
    min_data_points: int = Field(default=8, ge=1)
    trend_threshold: float = Field(default=0.015, ge=0)
    # Accepted for config compatibility, not used
    volatility_threshold: float = 0.03
    breakout_threshold: float = Field(default=0.025, ge=0)

    rsi_period: int = Field(default=14, ge=1)
    rsi_overbought: float = Field(default=80, ge=0, le=100)
    rsi_oversold: float = Field(default=20, ge=0, le=100)
    rsi_alert_cooldown: float = Field(default=300, ge=0)

    enhanced: EnhancedTrendConfig = Field(default_factory=EnhancedTrendConfig)


class TurningPointTradingConfig(BaseModel):
    """Extra rules for trades opened from turning point signals."""

    bottom_confirmation_candles: int = Field(default=2, ge=1)
    top_confirmation_candles: int = Field(default=1, ge=1)
    # Accepted for config compatibility, not used
    reentry_allowance: float = 0.005
    stop_loss_tightening: float = Field(default=0.5, gt=0)
    take_profit_widening: float = Field(default=1.5, gt=0)

    # Hold turning point entries until the confirmation rule passes
    require_confirmation: bool = False
    confirmation_max_ticks: int = Field(default=5, ge=1)


class TradingConfig(BaseModel):
    """Simulated trading parameters."""

    position_size: float = 100
    leverage: float = 1
    take_profit_ratio: float = 0.02
    stop_loss_ratio: float = 0.01
    # Accepted but unused: the admission gate allows one open trade per symbol
    max_trades_per_symbol: int = Field(default=3, ge=1)
    min_signal_interval: float = Field(default=180, ge=0)
    trade_log_file: str = "trading_log.json"

    turning_point: TurningPointTradingConfig = Field(
        default_factory=TurningPointTradingConfig
    )

    @model_validator(mode="after")
    def _validate(self):
        if self.take_profit_ratio <= 0 or self.stop_loss_ratio <= 0:
            raise ValueError("take_profit_ratio and stop_loss_ratio must be positive")
        if self.position_size <= 0 or self.leverage <= 0:
            raise ValueError("position_size and leverage must be positive")
        return self


class AlertConfig(BaseModel):
    """Alert thresholds and cooldowns."""

    price_change_threshold: float = Field(default=0.04, gt=0)
    price_alert_cooldown: float = Field(default=120, ge=0)
    signal_alert_cooldown: float = Field(default=180, ge=0)

    # Trend direction change alert gates
    trend_alert_cooldown: float = Field(default=180, ge=0)
    trend_min_strength: float = Field(default=0.008, ge=0)  # slope / price per sample
    trend_min_change_percent: float = Field(default=1.5, ge=0)
    trend_max_volatility: float = Field(default=5.0, gt=0)  # percent
    trend_rsi_low: float = Field(default=25, ge=0, le=100)
    trend_rsi_high: float = Field(default=75, ge=0, le=100)


class EngineConfig(BaseModel):
    """Complete engine configuration, swapped as a whole."""

    trend: TrendAnalysisConfig = Field(default_factory=TrendAnalysisConfig)
    trading: TradingConfig = Field(default_factory=TradingConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
