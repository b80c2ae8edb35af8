"""Tests for the per-tick pipeline."""

from unittest.mock import MagicMock

import pytest

from core.models.config import EngineConfig, TradingConfig, TrendAnalysisConfig, TurningPointTradingConfig
from core.models.signal import Confidence, Signal, SignalType, TradingSignal, TurningPointResult
from core.models.trade import Direction, ExitReason
from core.tick_processor import AlertKind, TickProcessor
from core.trend import TrendDirection

SYMBOL = "BTCUSDT"
STEP = 10.0


def feed(processor, prices, start=0.0, symbol=SYMBOL):
    """Feed prices STEP seconds apart, return every TickResult."""
    return [
        processor.process_tick(symbol, price, start + i * STEP)
        for i, price in enumerate(prices)
    ]


def alert_kinds(results):
    return [a.kind for r in results for a in r.alerts]


def bottom_signal(confidence=Confidence.HIGH):
    return TradingSignal(
        signal=Signal.BUY,
        confidence=confidence,
        signal_type=SignalType.TURNING_POINT,
        reasons=["Bottom turning point (confidence 55)"],
        turning_points=TurningPointResult(potential_bottom=True, bottom_confidence=55),
    )


def confirming_config():
    return EngineConfig(
        trading=TradingConfig(
            turning_point=TurningPointTradingConfig(require_confirmation=True, confirmation_max_ticks=5),
        ),
    )


class TestWarmUp:
    def test_snapshot_requires_macd_minimum(self):
        processor = TickProcessor()
        results = feed(processor, [100.0 + i for i in range(26)])

        assert all(r.snapshot is None and r.signal is None for r in results[:25])
        assert results[25].snapshot is not None
        assert results[25].signal is not None

    def test_trend_requires_min_data_points(self):
        processor = TickProcessor()
        results = feed(processor, [100.0] * 8)

        assert all(r.trend is None for r in results[:7])
        assert results[7].trend is not None

    def test_short_time_window_keeps_macd_minimum(self):
        config = EngineConfig(trend=TrendAnalysisConfig(time_window=60))
        processor = TickProcessor(config)
        results = feed(processor, [100.0] * 40)

        assert len(processor.window(SYMBOL)) == 26
        assert results[-1].snapshot is not None
        assert results[-1].signal is not None

    def test_sparse_feed_still_analyzed(self):
        # 12 symbols on 10 s slots: each symbol ticks every 120 s
        processor = TickProcessor()
        results = [
            processor.process_tick(SYMBOL, 100.0 + (i % 5), i * 120.0)
            for i in range(200)
        ]

        assert len(processor.window(SYMBOL)) == 26
        assert all(r.snapshot is not None for r in results[25:])

    def test_symbols_independent(self):
        processor = TickProcessor()
        feed(processor, [100.0] * 5)
        feed(processor, [3000.0] * 3, symbol="ETHUSDT")

        assert len(processor.window(SYMBOL)) == 5
        assert processor.window("ETHUSDT").prices() == [3000.0] * 3


class TestScenarios:
    """End-to-end price paths through the whole pipeline."""

    def test_linear_uptrend(self):
        processor = TickProcessor()
        result = feed(processor, [100.0 + i * 30 / 29 for i in range(30)])[-1]

        assert result.trend.direction == TrendDirection.UPTREND
        assert result.trend.price_change_percent > 1.5
        assert result.snapshot.rsi == 100.0
        assert result.signal.signal == Signal.BUY
        assert result.signal.turning_points.potential_bottom is False
        assert result.signal.turning_points.potential_top is False

    def test_v_shaped_recovery_flags_bottom(self):
        processor = TickProcessor()
        prices = [100.0] * 35 + [98.0, 96.0, 94.0, 92.0, 90.0, 93.0, 96.0]
        result = feed(processor, prices)[-1]

        macd = result.snapshot.macd
        assert macd.histogram < 0
        assert macd.histogram_delta > 0

        tp = result.signal.turning_points
        assert tp.potential_bottom is True
        assert tp.bottom_confidence == 35
        assert tp.bottom_indicators == {"price_recovery": True, "histogram_reversal": True}
        assert tp.potential_top is False
        # Below the turning point threshold, so the regular rules decide
        assert result.signal.signal_type == SignalType.REGULAR

    def test_one_open_trade_per_symbol(self):
        processor = TickProcessor()
        prices = [100.0 + i * 0.5 for i in range(60)]
        for result in feed(processor, prices):
            assert len(processor.trades.active_trades(SYMBOL)) <= 1
            assert len(result.opened) <= 1

    def test_snapshot_is_pure(self):
        processor = TickProcessor()
        feed(processor, [100.0 + (i % 7) for i in range(40)])
        window = processor.window(SYMBOL)

        first = processor.calculator.calculate_snapshot(window)
        second = processor.calculator.calculate_snapshot(window)
        assert first == second

    def test_recompute_mode(self):
        config = EngineConfig()
        config.trend.enhanced.macd_mode = "recompute"
        processor = TickProcessor(config)
        result = feed(processor, [100.0 + i for i in range(30)])[-1]

        assert result.snapshot.macd is not None
        assert result.signal.signal == Signal.BUY


class TestAlerts:
    def test_price_change_alert_and_cooldown(self):
        processor = TickProcessor()
        results = feed(processor, [100.0, 105.0, 110.25])
        later = processor.process_tick(SYMBOL, 115.7625, 140.0)

        assert results[0].alerts == []
        assert [a.kind for a in results[1].alerts] == [AlertKind.PRICE_CHANGE]
        assert results[1].alerts[0].title == "BTCUSDT up 5.00% (105.0)"
        assert results[2].alerts == []
        assert [a.kind for a in later.alerts] == [AlertKind.PRICE_CHANGE]

    def test_small_move_no_alert(self):
        processor = TickProcessor()
        results = feed(processor, [100.0, 103.0, 100.0])
        assert alert_kinds(results) == []

    def test_price_drop_alert(self):
        processor = TickProcessor()
        results = feed(processor, [100.0, 95.0])
        assert results[1].alerts[0].title.startswith("BTCUSDT down 5.00%")

    def test_trend_change_alert(self):
        processor = TickProcessor()
        results = feed(processor, [100.0 + i for i in range(12)])

        # 12 = 1.5 x min_data_points samples are needed
        assert alert_kinds(results[:11]) == []
        assert [a.kind for a in results[11].alerts] == [AlertKind.TREND_CHANGE]
        assert results[11].alerts[0].title == "BTCUSDT trend changed to uptrend"
        assert processor.state(SYMBOL).previous_direction == TrendDirection.UPTREND

        same = processor.process_tick(SYMBOL, 112.0, 120.0)
        assert AlertKind.TREND_CHANGE not in [a.kind for a in same.alerts]

    def test_trend_change_cooldown(self):
        processor = TickProcessor()
        feed(processor, [100.0 + i for i in range(12)])
        processor.state(SYMBOL).previous_direction = TrendDirection.DOWNTREND

        cooling = processor.process_tick(SYMBOL, 112.0, 120.0)
        later = processor.process_tick(SYMBOL, 113.0, 290.0)

        assert AlertKind.TREND_CHANGE not in [a.kind for a in cooling.alerts]
        assert [a.kind for a in later.alerts] == [AlertKind.TREND_CHANGE]

    def test_rsi_alert_cooldown(self):
        processor = TickProcessor()
        results = feed(processor, [100.0 + i * 0.1 for i in range(40)])

        kinds = alert_kinds(results)
        assert kinds.count(AlertKind.RSI_OVERBOUGHT) == 1
        assert AlertKind.RSI_OVERBOUGHT in [a.kind for a in results[14].alerts]

    def test_rsi_oversold(self):
        processor = TickProcessor()
        results = feed(processor, [100.0 - i * 0.1 for i in range(16)])
        assert AlertKind.RSI_OVERSOLD in alert_kinds(results)


class TestAdmission:
    """Signal admission into simulated trades."""

    @pytest.fixture
    def processor(self):
        processor = TickProcessor()
        feed(processor, [100.0] * 30)
        return processor

    def test_flat_market_opens_nothing(self, processor):
        assert processor.trades.active_trades() == []
        assert processor.current_signals()[SYMBOL].signal == Signal.SELL

    def test_turning_point_opens_immediately(self, processor):
        processor.generator.generate = MagicMock(return_value=bottom_signal())
        result = processor.process_tick(SYMBOL, 100.0, 300.0)

        assert len(result.opened) == 1
        trade = result.opened[0]
        assert trade.direction == Direction.LONG
        assert trade.signal_type == SignalType.TURNING_POINT
        kinds = [a.kind for a in result.alerts]
        assert AlertKind.TRADING_SIGNAL in kinds
        assert AlertKind.TRADE_OPENED in kinds

        again = processor.process_tick(SYMBOL, 100.1, 310.0)
        assert again.opened == []

    def test_trade_closes_on_later_tick(self, processor):
        processor.generator.generate = MagicMock(return_value=bottom_signal())
        trade = processor.process_tick(SYMBOL, 100.0, 300.0).opened[0]
        result = processor.process_tick(SYMBOL, 104.0, 320.0)

        assert result.closed == [trade]
        assert trade.exit_reason == ExitReason.TAKE_PROFIT
        assert trade.exit_price == pytest.approx(trade.take_profit_price)
        assert AlertKind.TRADE_CLOSED in [a.kind for a in result.alerts]
        # Signal interval still running
        assert result.opened == []

    def test_medium_confidence_not_traded(self, processor):
        signal = bottom_signal()
        signal.signal_type = SignalType.REGULAR
        signal.confidence = Confidence.MEDIUM
        processor.generator.generate = MagicMock(return_value=signal)

        assert processor.process_tick(SYMBOL, 100.0, 300.0).opened == []

    def test_report_includes_current_signal(self, processor):
        report = processor.report()
        assert report["symbols"][SYMBOL]["current_signal"] == "SELL (MEDIUM)"

        processor.generator.generate = MagicMock(return_value=bottom_signal())
        processor.process_tick(SYMBOL, 100.0, 300.0)
        report = processor.report()
        assert report["symbols"][SYMBOL]["current_signal"] == "BUY (HIGH)"
        assert report["global"]["active_trades"] == 1


class TestConfirmation:
    @pytest.fixture
    def processor(self):
        processor = TickProcessor(confirming_config())
        feed(processor, [100.0] * 30)
        processor.generator.generate = MagicMock(return_value=bottom_signal())
        return processor

    def test_waits_for_rising_prices(self, processor):
        first = processor.process_tick(SYMBOL, 100.0, 300.0)
        assert first.opened == []
        assert processor.state(SYMBOL).pending is not None

        second = processor.process_tick(SYMBOL, 101.0, 310.0)
        assert len(second.opened) == 1
        assert second.opened[0].entry_price == 101.0
        assert processor.state(SYMBOL).pending is None

    def test_pending_expires(self, processor):
        results = feed(processor, [100.0, 99.0, 98.0, 97.0, 96.0], start=300.0)

        assert all(r.opened == [] for r in results)
        assert processor.state(SYMBOL).pending is None
        assert processor.trades.active_trades() == []

    def test_regular_signals_skip_confirmation(self, processor):
        signal = bottom_signal()
        signal.signal_type = SignalType.REGULAR
        processor.generator.generate = MagicMock(return_value=signal)

        assert len(processor.process_tick(SYMBOL, 100.0, 300.0).opened) == 1


class TestUpdateConfig:
    def test_swap_keeps_windows(self):
        processor = TickProcessor()
        feed(processor, [100.0] * 20)

        new = EngineConfig(trend=TrendAnalysisConfig(rsi_period=7))
        processor.update_config(new)

        assert processor.config is new
        assert processor.calculator.config is new.trend
        assert processor.generator.config is new.trend
        assert processor.trades.config is new.trading
        assert processor.window(SYMBOL).rsi_period == 7
        assert len(processor.window(SYMBOL)) == 20
