"""Turning point and trading signal models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from core.models.snapshot import IndicatorSnapshot


class Signal(str, Enum):
    """Trading action."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Confidence(str, Enum):
    """Signal confidence tier, lowest first."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CONVICTION = "CONVICTION"

    @property
    def actionable(self) -> bool:
        """High enough to open a trade."""
        return self in (Confidence.HIGH, Confidence.CONVICTION)


class SignalType(str, Enum):
    """Which rule set produced the signal."""

    REGULAR = "REGULAR"
    TURNING_POINT = "TURNING_POINT"


@dataclass(slots=True)
class TurningPointResult:
    """Bottom / top scoring for one tick.

    Confidence is the sum of the weights of the true conditions (0-100).
    A side is flagged as potential only with at least two true conditions.
    """

    potential_bottom: bool = False
    potential_top: bool = False
    bottom_confidence: int = 0
    top_confidence: int = 0
    reasons: list[str] = field(default_factory=list)
    bottom_indicators: dict[str, bool] = field(default_factory=dict)
    top_indicators: dict[str, bool] = field(default_factory=dict)


@dataclass(slots=True)
class TradingSignal:
    """Graded trading signal with the inputs it was derived from."""

    signal: Signal
    confidence: Confidence
    signal_type: SignalType = SignalType.REGULAR
    reasons: list[str] = field(default_factory=list)
    conditions: dict[str, bool] = field(default_factory=dict)
    technicals: IndicatorSnapshot | None = None
    turning_points: TurningPointResult | None = None

    @property
    def is_hold(self) -> bool:
        return self.signal == Signal.HOLD

    @property
    def actionable(self) -> bool:
        """Eligible for the admission gate.

        Turning point signals always are; regular ones need HIGH or
        CONVICTION confidence.
        """
        if self.is_hold:
            return False
        return self.signal_type == SignalType.TURNING_POINT or self.confidence.actionable
