"""Per-tick pipeline shared by the live monitor and the replay tool.

One call to ``TickProcessor.process_tick`` runs a symbol's tick to
completion: store the sample, re-evaluate open trades, analyze, build the
signal, raise alerts and pass actionable signals through the admission
gate. Nothing here does I/O; the caller dispatches the returned alerts and
trade events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from core.errors import DataInsufficientError
from core.indicators.calculator import IndicatorCalculator
from core.models.config import EngineConfig
from core.models.market import RollingWindow
from core.models.signal import SignalType, TradingSignal
from core.models.snapshot import IndicatorSnapshot
from core.models.trade import Trade
from core.signal_generator import SignalGenerator
from core.trade_manager import (
    TradeEvent,
    TradeEventKind,
    TradeManager,
    TurningPointConfirmation,
)
from core.trend import TrendAnalysis, TrendDirection, analyze_trend, trend_change_alert_due
from core.turning_point import TurningPointDetector

logger = logging.getLogger(__name__)


class AlertKind(str, Enum):
    PRICE_CHANGE = "price_change"
    TREND_CHANGE = "trend_change"
    RSI_OVERBOUGHT = "rsi_overbought"
    RSI_OVERSOLD = "rsi_oversold"
    TRADING_SIGNAL = "trading_signal"
    TRADE_OPENED = "trade_opened"
    TRADE_CLOSED = "trade_closed"


@dataclass(slots=True)
class Alert:
    """Notification to be delivered by the caller."""

    kind: AlertKind
    symbol: str
    title: str
    message: str


@dataclass(slots=True)
class TickResult:
    """Everything one tick produced."""

    symbol: str
    price: float
    timestamp: float
    trend: TrendAnalysis | None = None
    snapshot: IndicatorSnapshot | None = None
    signal: TradingSignal | None = None
    trade_events: list[TradeEvent] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)

    @property
    def opened(self) -> list[Trade]:
        return [e.trade for e in self.trade_events if e.kind == TradeEventKind.OPENED]

    @property
    def closed(self) -> list[Trade]:
        return [e.trade for e in self.trade_events if e.kind == TradeEventKind.CLOSED]


@dataclass(slots=True)
class PendingEntry:
    """Turning point signal waiting for price confirmation."""

    signal: TradingSignal
    ticks: int = 0


@dataclass(slots=True)
class SymbolState:
    window: RollingWindow
    last_price_alert: float | None = None
    last_trend_alert: float | None = None
    previous_direction: TrendDirection = TrendDirection.NEUTRAL
    last_rsi_alert: float | None = None
    last_signal_alert: float | None = None
    last_signal: TradingSignal | None = None
    pending: PendingEntry | None = None


def _cooled_down(last: float | None, now: float, cooldown: float) -> bool:
    return last is None or now - last >= cooldown


class TickProcessor:
    """
    Runs the analysis and trading pipeline for every symbol.

    Symbols are independent; ticks for one symbol must be fed in timestamp
    order and each call completes before the next one starts.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        trade_manager: TradeManager | None = None,
    ):
        self.config = config or EngineConfig()
        self.trades = trade_manager or TradeManager(self.config.trading)
        self.calculator = IndicatorCalculator(self.config.trend)
        self.detector = TurningPointDetector()
        self.generator = SignalGenerator(self.config.trend)
        self.confirmation = TurningPointConfirmation(self.config.trading.turning_point)
        self._symbols: dict[str, SymbolState] = {}

    def update_config(self, config: EngineConfig) -> None:
        """Swap the whole configuration. Windows and trades are kept."""
        self.config = config
        self.trades.update_config(config.trading)
        self.calculator.config = config.trend
        self.generator.config = config.trend
        self.confirmation.config = config.trading.turning_point
        for state in self._symbols.values():
            state.window.rsi_period = config.trend.rsi_period
        logger.info("Engine configuration updated")

    def state(self, symbol: str) -> SymbolState:
        if symbol not in self._symbols:
            window = RollingWindow(symbol=symbol, rsi_period=self.config.trend.rsi_period)
            self._symbols[symbol] = SymbolState(window=window)
        return self._symbols[symbol]

    def window(self, symbol: str) -> RollingWindow:
        return self.state(symbol).window

    def push_sample(self, symbol: str, price: float, timestamp: float) -> None:
        """Store a sample without running any analysis."""
        window = self.state(symbol).window
        window.push(price, timestamp)
        removed = window.prune(
            self.config.trend.time_window,
            self.config.trend.enhanced.min_data_points_for_macd,
        )
        if removed:
            logger.debug(f"{symbol}: pruned {removed} samples, {len(window)} kept")

    def current_signals(self) -> dict[str, TradingSignal]:
        return {
            symbol: state.last_signal
            for symbol, state in self._symbols.items()
            if state.last_signal is not None
        }

    def report(self) -> dict:
        return self.trades.report(self.current_signals())

    def process_tick(self, symbol: str, price: float, timestamp: float) -> TickResult:
        """
        Run the full pipeline for one price observation.

        Args:
            symbol: Trading pair
            price: Observed price
            timestamp: Unix seconds

        Returns:
            TickResult with the signal (if any), trade events and alerts
        """
        state = self.state(symbol)
        previous = state.window.last
        result = TickResult(symbol=symbol, price=price, timestamp=timestamp)

        self.push_sample(symbol, price, timestamp)

        for event in self.trades.monitor(symbol, price, timestamp):
            result.trade_events.append(event)
            if event.kind == TradeEventKind.CLOSED:
                result.alerts.append(self._trade_closed_alert(event.trade))

        if previous is not None:
            self._check_price_change(state, previous.price, result)

        try:
            result.trend = analyze_trend(state.window, self.config.trend)
        except DataInsufficientError as e:
            logger.debug(f"{symbol}: trend analysis skipped ({e})")
        if result.trend is not None:
            self._check_trend_change(state, result)
            self._check_rsi(state, result)

        try:
            result.snapshot = self.calculator.calculate_snapshot(state.window)
        except DataInsufficientError as e:
            logger.debug(f"{symbol}: signal skipped ({e})")

        if result.snapshot is not None:
            prices = result.snapshot.prices
            turning_points = self.detector.detect(prices, result.snapshot, price)
            result.signal = self.generator.generate(result.snapshot, turning_points)
            state.last_signal = result.signal
            self._check_signal_alert(state, result)

        self._admit(state, result)
        return result

    # -- alerts --

    def _check_price_change(self, state: SymbolState, previous: float, result: TickResult) -> None:
        if previous == 0:
            return
        change = (result.price - previous) / previous
        alerts = self.config.alerts
        if abs(change) < alerts.price_change_threshold:
            return
        if not _cooled_down(state.last_price_alert, result.timestamp, alerts.price_alert_cooldown):
            logger.debug(f"{result.symbol}: price alert cooling down")
            return

        state.last_price_alert = result.timestamp
        word = "up" if change > 0 else "down"
        result.alerts.append(Alert(
            kind=AlertKind.PRICE_CHANGE,
            symbol=result.symbol,
            title=f"{result.symbol} {word} {abs(change) * 100:.2f}% ({result.price})",
            message=f"Current price: {result.price}\nPrevious price: {previous}",
        ))

    def _check_trend_change(self, state: SymbolState, result: TickResult) -> None:
        trend = result.trend
        alerts = self.config.alerts
        if not _cooled_down(state.last_trend_alert, result.timestamp, alerts.trend_alert_cooldown):
            return
        previous = state.previous_direction
        if not trend_change_alert_due(trend, previous, self.config.trend.min_data_points, alerts):
            return

        state.last_trend_alert = result.timestamp
        state.previous_direction = trend.direction
        rsi_line = f"\nRSI: {trend.rsi:.2f}" if trend.rsi is not None else ""
        result.alerts.append(Alert(
            kind=AlertKind.TREND_CHANGE,
            symbol=result.symbol,
            title=f"{result.symbol} trend changed to {trend.direction.value}",
            message=(
                f"{previous.value} -> {trend.direction.value}\n"
                f"Price change: {trend.price_change:+.4f} ({trend.price_change_percent:.2f}%)\n"
                f"Strength: {trend.strength * 100:.2f}%\n"
                f"Data points: {trend.data_points}\n"
                f"Current price: {result.price}"
                f"{rsi_line}\n"
                f"Volatility: {trend.volatility:.2f}%"
            ),
        ))

    def _check_rsi(self, state: SymbolState, result: TickResult) -> None:
        value = result.trend.rsi
        trend_config = self.config.trend
        if value is None:
            return
        if not _cooled_down(state.last_rsi_alert, result.timestamp, trend_config.rsi_alert_cooldown):
            return

        if value >= trend_config.rsi_overbought:
            kind, label = AlertKind.RSI_OVERBOUGHT, "overbought"
        elif value <= trend_config.rsi_oversold:
            kind, label = AlertKind.RSI_OVERSOLD, "oversold"
        else:
            return

        state.last_rsi_alert = result.timestamp
        result.alerts.append(Alert(
            kind=kind,
            symbol=result.symbol,
            title=f"{result.symbol} RSI {label} ({result.price})",
            message=f"RSI: {value:.2f}\nPrice: {result.price}",
        ))

    def _check_signal_alert(self, state: SymbolState, result: TickResult) -> None:
        signal = result.signal
        if signal.is_hold or not signal.confidence.actionable:
            return
        cooldown = self.config.alerts.signal_alert_cooldown
        if not _cooled_down(state.last_signal_alert, result.timestamp, cooldown):
            return

        state.last_signal_alert = result.timestamp
        reasons = "\n".join(f"- {r}" for r in signal.reasons)
        result.alerts.append(Alert(
            kind=AlertKind.TRADING_SIGNAL,
            symbol=result.symbol,
            title=f"{result.symbol} {signal.signal.value} signal ({result.price})",
            message=(
                f"{signal.signal.value} ({signal.confidence.value}, {signal.signal_type.value})\n"
                f"{reasons}"
            ),
        ))

    def _trade_opened_alert(self, trade: Trade) -> Alert:
        return Alert(
            kind=AlertKind.TRADE_OPENED,
            symbol=trade.symbol,
            title=f"{trade.symbol} {trade.direction.value} opened @ {trade.entry_price}",
            message=(
                f"Size: {trade.position_size} x{trade.leverage}\n"
                f"Take profit: {trade.take_profit_price:.6f}\n"
                f"Stop loss: {trade.stop_loss_price:.6f}"
            ),
        )

    def _trade_closed_alert(self, trade: Trade) -> Alert:
        outcome = "profit" if trade.exit_profit > 0 else "loss"
        stats = self.trades.stats(trade.symbol)
        return Alert(
            kind=AlertKind.TRADE_CLOSED,
            symbol=trade.symbol,
            title=f"{trade.symbol} trade closed with {outcome}",
            message=(
                f"{trade.direction.value} {trade.entry_price:.6f} -> {trade.exit_price:.6f} "
                f"({trade.exit_reason.value})\n"
                f"PnL: {trade.exit_profit:.2f} ({trade.exit_profit / trade.position_size * 100:.2f}%)\n"
                f"Win rate: {stats.win_rate:.2f}%, total PnL: {stats.total_profit:.2f}"
            ),
        )

    # -- admission --

    def _open(self, state: SymbolState, signal: TradingSignal, result: TickResult) -> None:
        symbol = result.symbol
        if not self.trades.can_open(symbol, result.timestamp):
            logger.debug(f"{symbol}: admission gate closed, {signal.signal.value} not traded")
            return
        trade = self.trades.open_from_signal(symbol, signal, result.price, result.timestamp)
        result.trade_events.append(TradeEvent(TradeEventKind.OPENED, trade))
        result.alerts.append(self._trade_opened_alert(trade))
        state.pending = None

    def _admit(self, state: SymbolState, result: TickResult) -> None:
        signal = result.signal
        tp_config = self.config.trading.turning_point

        if signal is not None and signal.actionable:
            needs_confirmation = (
                tp_config.require_confirmation
                and signal.signal_type == SignalType.TURNING_POINT
            )
            if not needs_confirmation:
                self._open(state, signal, result)
                return
            if state.pending is None or state.pending.signal.signal != signal.signal:
                self.confirmation.reset(result.symbol)
                state.pending = PendingEntry(signal=signal)

        pending = state.pending
        if pending is None:
            return

        if self.confirmation.check(result.symbol, result.price, pending.signal.signal):
            self._open(state, pending.signal, result)
            state.pending = None
            return

        pending.ticks += 1
        if pending.ticks >= tp_config.confirmation_max_ticks:
            logger.debug(
                f"{result.symbol}: {pending.signal.signal.value} turning point not confirmed, dropped"
            )
            state.pending = None

