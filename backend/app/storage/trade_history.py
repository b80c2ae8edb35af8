"""Trade history persistence.

The history file is a JSON array of closed trades, rewritten in full on
every save.
"""

import logging
import os
from pathlib import Path

import orjson
from pydantic import ValidationError

from core.models.trade import Trade

logger = logging.getLogger(__name__)


class TradeHistoryStore:
    """Reads and writes the closed-trade log."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> list[Trade]:
        """Load all trades; an absent file is an empty history."""
        if not self.path.exists():
            return []

        data = orjson.loads(self.path.read_bytes())
        if not isinstance(data, list):
            raise ValueError(f"{self.path}: expected a JSON array of trades")

        trades = []
        for i, item in enumerate(data):
            try:
                trades.append(Trade.model_validate(item))
            except ValidationError as e:
                logger.warning(f"{self.path}: skipping invalid trade #{i}: {e.error_count()} errors")
        logger.info(f"Loaded {len(trades)} trades from {self.path}")
        return trades

    def save(self, trades: list[Trade]) -> None:
        """Rewrite the file with ``trades``."""
        payload = orjson.dumps(
            [t.model_dump(mode="json") for t in trades],
            option=orjson.OPT_INDENT_2,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_bytes(payload)
        os.replace(tmp, self.path)
        logger.info(f"Saved {len(trades)} trades to {self.path}")
