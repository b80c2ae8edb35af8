"""Simulated trade and statistics models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from core.errors import TradeStateError
from core.models.signal import Confidence, SignalType


class Direction(str, Enum):
    """Trade direction."""

    LONG = "LONG"
    SHORT = "SHORT"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ExitReason(str, Enum):
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_LOSS = "STOP_LOSS"


class Trade(BaseModel):
    """Simulated position opened from a trading signal.

    A trade moves OPEN -> CLOSED exactly once. Mark-to-market updates on a
    closed trade are ignored; closing it again raises TradeStateError.
    """

    id: str
    symbol: str
    direction: Direction
    entry_price: float
    position_size: float
    leverage: float
    take_profit_price: float
    stop_loss_price: float
    entry_time: float  # Unix seconds
    status: TradeStatus = TradeStatus.OPEN
    current_price: float | None = None
    current_profit: float = 0.0
    profit_percentage: float = 0.0
    max_profit: float = 0.0
    max_loss: float = 0.0
    signal_confidence: Confidence | None = None
    signal_type: SignalType = SignalType.REGULAR
    exit_price: float | None = None
    exit_time: float | None = None
    exit_reason: ExitReason | None = None
    exit_profit: float = 0.0

    def model_post_init(self, __context) -> None:
        if self.current_price is None:
            self.current_price = self.entry_price

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN

    @property
    def is_long(self) -> bool:
        return self.direction == Direction.LONG

    def pnl_at(self, price: float) -> float:
        """Profit in quote currency if the trade were valued at ``price``."""
        move = (price - self.entry_price) / self.entry_price
        if not self.is_long:
            move = -move
        return move * self.position_size * self.leverage

    def mark(self, price: float) -> None:
        """Update running PnL and excursion extremes. No-op once closed."""
        if not self.is_open:
            return
        self.current_price = price
        self.current_profit = self.pnl_at(price)
        self.profit_percentage = self.current_profit / self.position_size * 100
        self.max_profit = max(self.max_profit, self.current_profit)
        self.max_loss = min(self.max_loss, self.current_profit)

    def check_exit(self, price: float) -> tuple[ExitReason, float] | None:
        """Return (reason, exit price) when ``price`` reaches TP or SL.

        Take profit is checked first. The exit price is the level itself.
        """
        if self.is_long:
            if price >= self.take_profit_price:
                return ExitReason.TAKE_PROFIT, self.take_profit_price
            if price <= self.stop_loss_price:
                return ExitReason.STOP_LOSS, self.stop_loss_price
        else:
            if price <= self.take_profit_price:
                return ExitReason.TAKE_PROFIT, self.take_profit_price
            if price >= self.stop_loss_price:
                return ExitReason.STOP_LOSS, self.stop_loss_price
        return None

    def close(self, exit_price: float, reason: ExitReason, timestamp: float) -> None:
        """Freeze the trade at ``exit_price``.

        Raises:
            TradeStateError: If the trade is already closed
        """
        if not self.is_open:
            raise TradeStateError(f"Trade {self.id} is already closed")
        self.status = TradeStatus.CLOSED
        self.exit_price = exit_price
        self.exit_time = timestamp
        self.exit_reason = reason
        self.exit_profit = self.pnl_at(exit_price)

    @property
    def duration(self) -> float | None:
        """Holding time in seconds, None while open."""
        if self.exit_time is None:
            return None
        return self.exit_time - self.entry_time


class TradeStats(BaseModel):
    """Running trade statistics for one symbol or globally."""

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_profit: float = 0.0
    active_trades: int = 0
    max_concurrent_trades: int = 0

    @property
    def win_rate(self) -> float:
        """Win rate as a percentage."""
        if self.total_trades == 0:
            return 0.0
        return self.winning_trades / self.total_trades * 100

    def record_open(self) -> None:
        self.active_trades += 1
        self.max_concurrent_trades = max(self.max_concurrent_trades, self.active_trades)

    def record_close(self, profit: float, was_active: bool = True) -> None:
        self.total_trades += 1
        if profit > 0:
            self.winning_trades += 1
        else:
            self.losing_trades += 1
        self.total_profit += profit
        if was_active and self.active_trades > 0:
            self.active_trades -= 1

    def to_dict(self) -> dict:
        return {**self.model_dump(), "win_rate": self.win_rate}
