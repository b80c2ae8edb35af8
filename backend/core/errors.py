"""Error taxonomy for the analysis engine.

Indicator failures never escape the public indicator functions: they are
absorbed into ``None`` ("unavailable"). Only the analysis entry points raise
``DataInsufficientError`` so the tick pipeline can skip a tick explicitly.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for engine errors."""


class DataInsufficientError(EngineError):
    """Window holds fewer samples than an analysis step requires."""

    def __init__(self, what: str, required: int, available: int):
        self.what = what
        self.required = required
        self.available = available
        super().__init__(f"{what}: need {required} samples, have {available}")


class ComputationError(EngineError):
    """Degenerate algebra (zero range, zero denominator)."""


class TradeStateError(EngineError, ValueError):
    """Invalid trade lifecycle transition (e.g. closing a closed trade)."""
