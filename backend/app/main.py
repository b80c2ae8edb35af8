"""Main application entry point."""

import asyncio
import logging
import signal

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from app.clients.binance_rest import BinanceRestClient
from app.config import get_settings
from app.monitor_config import load_monitor_config
from app.services.notifier import BarkNotifier
from app.services.price_monitor import PriceMonitor
from app.storage.trade_history import TradeHistoryStore

logger = logging.getLogger(__name__)


async def main() -> None:
    settings = get_settings()
    config = load_monitor_config(settings.monitor_config_path)

    client = BinanceRestClient(base_url=settings.rest_base_url, timeout=settings.http_timeout)
    notifier = BarkNotifier(
        base_url=settings.push_api_url,
        keys=settings.push_api_keys,
        timeout=settings.http_timeout,
    )
    store = TradeHistoryStore(settings.trade_log_file or config.trading.trade_log_file)
    monitor = PriceMonitor(
        config,
        client,
        notifier,
        store=store,
        report_interval=settings.report_interval,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    logger.info(f"Starting price monitor for {', '.join(config.symbols)}")
    try:
        await monitor.start()
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await monitor.stop()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
