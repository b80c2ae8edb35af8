"""Polling price monitor.

Fetches one symbol per time slot (round-robin), feeds the price through
the tick pipeline and dispatches the resulting alerts. Core computation is
synchronous; only the REST call, the pushes and the history save await.
"""

import asyncio
import logging
import math
import time
from typing import Callable

import httpx

from app.clients.binance_rest import BinanceRestClient
from app.monitor_config import MonitorConfig, TimeControl
from app.services.notifier import BarkNotifier
from app.storage.trade_history import TradeHistoryStore
from core.tick_processor import TickProcessor, TickResult

logger = logging.getLogger(__name__)

# Pause between symbols while collecting the first prices
INITIAL_FETCH_PAUSE = 0.5


def next_target_delay(now: float, time_control: TimeControl) -> float:
    """Seconds until the next ``target_seconds`` mark of the minute.

    A mark that is currently running counts as reached while less than
    ``allowed_time_deviation`` seconds have passed.
    """
    if not time_control.target_seconds:
        return 0.0

    second = int(now % 60)
    fraction = now % 1
    best = math.inf
    for target in time_control.target_seconds:
        if target > second:
            delay = target - second - fraction
        elif target < second:
            delay = 60 - second + target - fraction
        elif fraction <= time_control.allowed_time_deviation:
            delay = 0.0
        else:
            delay = 60 - fraction
        best = min(best, delay)
    return max(0.0, best)


class PriceMonitor:
    """
    Drives the tick pipeline from live ticker prices.

    Consecutive fetch failures are counted per symbol; reaching
    ``max_failed_attempts`` sends one warning push. The counter resets on
    the next successful fetch.
    """

    def __init__(
        self,
        config: MonitorConfig,
        client: BinanceRestClient,
        notifier: BarkNotifier,
        store: TradeHistoryStore | None = None,
        processor: TickProcessor | None = None,
        report_interval: float = 300.0,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.client = client
        self.notifier = notifier
        self.store = store
        self.processor = processor or TickProcessor(config)
        self.report_interval = report_interval
        self._clock = clock

        self._failures: dict[str, int] = {}
        self._index = 0
        self._task: asyncio.Task | None = None
        self._report_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def failures(self, symbol: str) -> int:
        return self._failures.get(symbol, 0)

    def next_symbol(self) -> str:
        symbols = self.config.symbols
        symbol = symbols[self._index % len(symbols)]
        self._index = (self._index + 1) % len(symbols)
        return symbol

    def reload_config(self, config: MonitorConfig) -> None:
        """Swap the whole configuration; windows and open trades are kept."""
        self.config = config
        self.processor.update_config(config)
        self._index %= len(config.symbols)
        logger.info(f"Monitor config reloaded: {', '.join(config.symbols)}")

    async def fetch_price(self, symbol: str) -> float | None:
        """Fetch a price, counting failures instead of raising."""
        name = self.config.coin_name(symbol)
        limit = self.config.max_failed_attempts
        try:
            price = await self.client.get_price(symbol)
        except (httpx.HTTPError, ValueError) as e:
            count = self._failures.get(symbol, 0) + 1
            self._failures[symbol] = count
            logger.error(f"{name} price fetch failed ({count}/{limit}): {e}")
            if count == limit:
                await self.notifier.send(
                    f"{name} price monitor warning",
                    f"{limit} consecutive failures fetching {name} price, check the connection",
                )
            return None

        self._failures[symbol] = 0
        logger.debug(f"{name} price: {price}")
        return price

    async def tick(self, symbol: str) -> TickResult | None:
        """Fetch, process and dispatch one symbol."""
        price = await self.fetch_price(symbol)
        if price is None:
            return None

        result = self.processor.process_tick(symbol, price, self._clock())
        for alert in result.alerts:
            await self.notifier.send_alert(alert)
        if result.closed:
            self.save_history()
        return result

    async def run_cycle(self) -> TickResult | None:
        return await self.tick(self.next_symbol())

    def save_history(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.processor.trades.history())
        except OSError as e:
            logger.error(f"Failed to save trade history: {e}")

    def load_history(self) -> int:
        if self.store is None:
            return 0
        try:
            trades = self.store.load()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load trade history: {e}")
            return 0
        return self.processor.trades.load_history(trades)

    async def collect_initial(self) -> dict[str, float | None]:
        """Process one tick for every symbol, in order."""
        prices = {}
        for i, symbol in enumerate(self.config.symbols):
            if i:
                await asyncio.sleep(INITIAL_FETCH_PAUSE)
            result = await self.tick(symbol)
            prices[symbol] = result.price if result else None
        return prices

    def log_report(self) -> dict:
        report = self.processor.report()
        stats = report["global"]
        logger.info(
            f"Trades: {stats['total_trades']} total, {stats['winning_trades']} won, "
            f"{stats['losing_trades']} lost, win rate {stats['win_rate']:.2f}%, "
            f"PnL {stats['total_profit']:.2f}, active {stats['active_trades']}, "
            f"max concurrent {stats['max_concurrent_trades']}"
        )
        for symbol, s in report["symbols"].items():
            if s["total_trades"]:
                logger.info(
                    f"  {symbol}: {s['total_trades']} trades, win rate {s['win_rate']:.2f}%, "
                    f"PnL {s['total_profit']:.2f}"
                )
        return report

    async def start(self) -> None:
        """Restore history, collect first prices and start the slot loop."""
        self.load_history()
        initial = await self.collect_initial()

        tc = self.config.time_control
        trading = self.config.trading
        lines = [f"{self.config.coin_name(s)}: {p if p is not None else 'unavailable'}" for s, p in initial.items()]
        await self.notifier.send(
            "Price monitor started",
            f"Watching {len(self.config.coins)} symbols every {tc.interval:g}s\n"
            f"TP {trading.take_profit_ratio * 100:.1f}% / SL {trading.stop_loss_ratio * 100:.1f}%\n"
            + "\n".join(lines),
        )

        self._task = asyncio.create_task(self._loop())
        if self.report_interval > 0:
            self._report_task = asyncio.create_task(self._report_loop())

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        await asyncio.sleep(next_target_delay(self._clock(), self.config.time_control))
        logger.info("Slot loop started")
        while True:
            started = loop.time()
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Monitoring cycle failed")
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.config.time_control.interval - elapsed))

    async def _report_loop(self) -> None:
        while True:
            await asyncio.sleep(self.report_interval)
            self.log_report()

    async def stop(self) -> None:
        """Cancel the loops, persist history and close clients."""
        for task in (self._task, self._report_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._report_task = None

        self.save_history()
        await self.client.close()
        await self.notifier.close()
        logger.info("Price monitor stopped")
