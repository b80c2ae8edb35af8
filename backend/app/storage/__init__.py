"""Data storage layer."""

from app.storage.trade_history import TradeHistoryStore

__all__ = [
    "TradeHistoryStore",
]
