"""Monitor configuration loaded from monitor.yaml (or a JSON file).

The file holds the engine sections (``trend``, ``trading``, ``alerts``)
plus the coins to watch and the polling schedule. A missing file yields
the defaults. Reloading replaces the whole object.
"""

import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from core.models.config import EngineConfig

logger = logging.getLogger(__name__)


class CoinConfig(BaseModel):
    """A symbol to monitor."""

    symbol: str
    name: str = ""

    @model_validator(mode="after")
    def _default_name(self):
        if not self.name:
            self.name = self.symbol.removesuffix("USDT") or self.symbol
        return self


class TimeControl(BaseModel):
    """Polling schedule.

    One symbol is processed per slot, round-robin. Slots start ``interval``
    seconds apart, aligned to the first upcoming ``target_seconds`` mark.
    """

    interval: float = 10.0
    target_seconds: list[int] = [0, 10, 20, 30, 40, 50]
    allowed_time_deviation: float = 0.5

    @model_validator(mode="after")
    def _validate(self):
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        bad = [s for s in self.target_seconds if not 0 <= s < 60]
        if bad:
            raise ValueError(f"target_seconds must be within 0-59, got {bad}")
        return self


class MonitorConfig(EngineConfig):
    """Top-level monitor configuration."""

    coins: list[CoinConfig] = Field(default_factory=lambda: [CoinConfig(symbol="BTCUSDT")])
    max_failed_attempts: int = 10
    time_control: TimeControl = Field(default_factory=TimeControl)

    @model_validator(mode="after")
    def _validate_coins(self):
        if not self.coins:
            raise ValueError("at least one coin must be configured")
        symbols = [c.symbol for c in self.coins]
        duplicates = sorted({s for s in symbols if symbols.count(s) > 1})
        if duplicates:
            raise ValueError(f"duplicate coin symbols: {duplicates}")
        if self.max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be >= 1")
        return self

    @property
    def symbols(self) -> list[str]:
        return [c.symbol for c in self.coins]

    def coin_name(self, symbol: str) -> str:
        for coin in self.coins:
            if coin.symbol == symbol:
                return coin.name
        return symbol


_DEFAULT_PATH = Path(__file__).parent.parent / "monitor.yaml"


def load_monitor_config(path: Path | str | None = None) -> MonitorConfig:
    """Load monitor config from a YAML or JSON file.

    Falls back to defaults if the file doesn't exist.
    """
    config_path = Path(path) if path else _DEFAULT_PATH

    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info("No monitor config found at %s, using defaults", config_path)
        return MonitorConfig()

    # JSON is a subset of YAML, so safe_load reads both
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = MonitorConfig(**raw)
    logger.info(
        "Loaded monitor config: %d coins (%s), interval=%ss, TP=%.2f%% SL=%.2f%%",
        len(config.coins),
        ", ".join(config.symbols),
        config.time_control.interval,
        config.trading.take_profit_ratio * 100,
        config.trading.stop_loss_ratio * 100,
    )
    return config
