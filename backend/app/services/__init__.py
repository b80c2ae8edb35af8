"""Business services."""

from app.services.notifier import BarkNotifier
from app.services.price_monitor import PriceMonitor, next_target_delay

__all__ = [
    "BarkNotifier",
    "PriceMonitor",
    "next_target_delay",
]
