"""Simulated position lifecycle.

Opens trades from signals, marks them to market on every tick, closes them
at take profit / stop loss and keeps per-symbol and global statistics.
Pure business logic: persistence is done by the caller from the returned
trade events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from core.models.config import TradingConfig, TurningPointTradingConfig
from core.models.signal import Confidence, Signal, SignalType, TradingSignal, TurningPointResult
from core.models.trade import Direction, ExitReason, Trade, TradeStats

logger = logging.getLogger(__name__)

CONFIRMATION_HISTORY = 10


class TradeEventKind(str, Enum):
    OPENED = "opened"
    UPDATED = "updated"
    CLOSED = "closed"


@dataclass(slots=True)
class TradeEvent:
    """Lifecycle event for one trade."""

    kind: TradeEventKind
    trade: Trade


@dataclass(slots=True)
class ExitDecision:
    """Outcome of marking a trade to market."""

    should_close: bool = False
    reason: ExitReason | None = None
    exit_price: float | None = None


@dataclass(slots=True)
class SymbolBook:
    """Trades and statistics for one symbol."""

    active: list[Trade] = field(default_factory=list)
    history: list[Trade] = field(default_factory=list)
    stats: TradeStats = field(default_factory=TradeStats)
    last_trade_time: float | None = None


class TurningPointConfirmation:
    """Price-action confirmation for turning point entries.

    Every check records the price. A BUY is confirmed when the last
    ``bottom_confirmation_candles`` recorded prices are strictly increasing,
    a SELL when the last ``top_confirmation_candles`` are strictly
    decreasing.
    """

    def __init__(self, config: TurningPointTradingConfig | None = None):
        self.config = config or TurningPointTradingConfig()
        self._history: dict[str, list[float]] = {}

    def check(self, symbol: str, price: float, signal: Signal) -> bool:
        history = self._history.setdefault(symbol, [])
        history.append(price)
        if len(history) > CONFIRMATION_HISTORY:
            del history[: len(history) - CONFIRMATION_HISTORY]

        if signal == Signal.BUY:
            needed = self.config.bottom_confirmation_candles
        else:
            needed = self.config.top_confirmation_candles
        if needed <= 0 or len(history) < needed:
            return False

        prices = history[-needed:]
        pairs = list(zip(prices, prices[1:]))
        if signal == Signal.BUY:
            return all(b > a for a, b in pairs)
        return all(b < a for a, b in pairs)

    def reset(self, symbol: str) -> None:
        self._history.pop(symbol, None)

    def history(self, symbol: str) -> list[float]:
        return list(self._history.get(symbol, []))


class TradeManager:
    """
    Owns simulated trades for all symbols.

    Global statistics can be injected so several managers (or a restored
    session) share one running total.
    """

    def __init__(
        self,
        config: TradingConfig | None = None,
        global_stats: TradeStats | None = None,
    ):
        self.config = config or TradingConfig()
        self.global_stats = global_stats if global_stats is not None else TradeStats()
        self._books: dict[str, SymbolBook] = {}
        self._counter = 0

    def update_config(self, config: TradingConfig) -> None:
        self.config = config

    def book(self, symbol: str) -> SymbolBook:
        if symbol not in self._books:
            self._books[symbol] = SymbolBook()
        return self._books[symbol]

    @property
    def symbols(self) -> list[str]:
        return list(self._books)

    def _next_id(self, timestamp: float) -> str:
        self._counter += 1
        return f"TRADE_{int(timestamp * 1000)}_{self._counter}"

    def can_open(self, symbol: str, timestamp: float) -> bool:
        """Admission gate: no open trade and the signal interval has elapsed."""
        book = self.book(symbol)
        if book.active:
            return False
        if book.last_trade_time is None:
            return True
        return timestamp - book.last_trade_time > self.config.min_signal_interval

    def open_trade(
        self,
        symbol: str,
        signal: Signal,
        entry_price: float,
        confidence: Confidence,
        timestamp: float,
        signal_type: SignalType = SignalType.REGULAR,
        turning_points: TurningPointResult | None = None,
    ) -> Trade:
        """
        Open a simulated trade.

        Args:
            symbol: Trading pair
            signal: BUY opens LONG, SELL opens SHORT
            entry_price: Fill price
            confidence: Confidence of the originating signal
            timestamp: Unix seconds
            signal_type: Turning point entries use a tighter stop and a
                wider target
            turning_points: Scoring behind a turning point entry (logged)

        Returns:
            The new OPEN trade
        """
        if signal == Signal.HOLD:
            raise ValueError("Cannot open a trade from a HOLD signal")

        tp_ratio = self.config.take_profit_ratio
        sl_ratio = self.config.stop_loss_ratio
        if signal_type == SignalType.TURNING_POINT:
            tp_ratio *= self.config.turning_point.take_profit_widening
            sl_ratio *= self.config.turning_point.stop_loss_tightening

        is_long = signal == Signal.BUY
        trade = Trade(
            id=self._next_id(timestamp),
            symbol=symbol,
            direction=Direction.LONG if is_long else Direction.SHORT,
            entry_price=entry_price,
            position_size=self.config.position_size,
            leverage=self.config.leverage,
            take_profit_price=entry_price * (1 + tp_ratio) if is_long else entry_price * (1 - tp_ratio),
            stop_loss_price=entry_price * (1 - sl_ratio) if is_long else entry_price * (1 + sl_ratio),
            entry_time=timestamp,
            signal_confidence=confidence,
            signal_type=signal_type,
        )

        book = self.book(symbol)
        book.active.append(trade)
        book.last_trade_time = timestamp
        book.stats.record_open()
        self.global_stats.record_open()

        extra = ""
        if turning_points is not None:
            extra = f" bottom={turning_points.bottom_confidence} top={turning_points.top_confidence}"
        logger.info(
            f"Opened {trade.direction.value} {symbol} @ {entry_price} "
            f"TP={trade.take_profit_price:.6f} SL={trade.stop_loss_price:.6f} "
            f"({confidence.value}, {signal_type.value}{extra})"
        )
        return trade

    def open_from_signal(self, symbol: str, signal: TradingSignal, price: float, timestamp: float) -> Trade:
        return self.open_trade(
            symbol,
            signal.signal,
            price,
            signal.confidence,
            timestamp,
            signal_type=signal.signal_type,
            turning_points=signal.turning_points,
        )

    def update_trade(self, trade: Trade, price: float) -> ExitDecision:
        """Mark a trade to market and decide whether it should close."""
        if not trade.is_open:
            return ExitDecision()
        trade.mark(price)
        hit = trade.check_exit(price)
        if hit is None:
            return ExitDecision()
        reason, exit_price = hit
        return ExitDecision(should_close=True, reason=reason, exit_price=exit_price)

    def close_trade(self, trade: Trade, exit_price: float, reason: ExitReason, timestamp: float) -> Trade:
        """
        Close a trade and update statistics.

        Raises:
            TradeStateError: If the trade is already closed
        """
        trade.close(exit_price, reason, timestamp)

        book = self.book(trade.symbol)
        was_active = trade in book.active
        if was_active:
            book.active.remove(trade)
        book.history.append(trade)
        book.stats.record_close(trade.exit_profit, was_active)
        self.global_stats.record_close(trade.exit_profit, was_active)

        logger.info(
            f"Closed {trade.direction.value} {trade.symbol} {reason.value} @ {exit_price:.6f} "
            f"PnL={trade.exit_profit:.2f} (win rate {book.stats.win_rate:.2f}%)"
        )
        return trade

    def monitor(self, symbol: str, price: float, timestamp: float) -> list[TradeEvent]:
        """Re-evaluate every open trade of ``symbol`` at ``price``."""
        events = []
        for trade in list(self.book(symbol).active):
            decision = self.update_trade(trade, price)
            if decision.should_close:
                self.close_trade(trade, decision.exit_price, decision.reason, timestamp)
                events.append(TradeEvent(TradeEventKind.CLOSED, trade))
            else:
                events.append(TradeEvent(TradeEventKind.UPDATED, trade))
        return events

    def active_trades(self, symbol: str | None = None) -> list[Trade]:
        if symbol is not None:
            return list(self.book(symbol).active)
        return [t for book in self._books.values() for t in book.active]

    def history(self, symbol: str | None = None) -> list[Trade]:
        """Closed trades, oldest first."""
        if symbol is not None:
            return list(self.book(symbol).history)
        trades = [t for book in self._books.values() for t in book.history]
        return sorted(trades, key=lambda t: t.exit_time or t.entry_time)

    def stats(self, symbol: str | None = None) -> TradeStats:
        if symbol is None:
            return self.global_stats
        return self.book(symbol).stats

    def load_history(self, trades: Iterable[Trade]) -> int:
        """Restore closed trades and rebuild statistics from them.

        Open trades in the input are ignored.

        Returns:
            Number of trades restored
        """
        count = 0
        for trade in trades:
            if trade.is_open:
                continue
            book = self.book(trade.symbol)
            book.history.append(trade)
            book.stats.record_close(trade.exit_profit, was_active=False)
            self.global_stats.record_close(trade.exit_profit, was_active=False)
            count += 1
        logger.info(f"Loaded {count} closed trades, total PnL {self.global_stats.total_profit:.2f}")
        return count

    def report(self, signals: dict[str, TradingSignal] | None = None) -> dict:
        """Statistics report: global totals plus one entry per symbol."""
        signals = signals or {}
        per_symbol = {}
        for symbol, book in self._books.items():
            current = signals.get(symbol)
            per_symbol[symbol] = {
                **book.stats.to_dict(),
                "active_trades": len(book.active),
                "current_signal": (
                    f"{current.signal.value} ({current.confidence.value})" if current else None
                ),
            }
        return {"global": self.global_stats.to_dict(), "symbols": per_symbol}
