"""Application settings."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from stocksim.storage.storage import IStorageService

logger = logging.getLogger(__name__)

BASE_URL_PAPER = "https://paper-api.alpaca.markets"
BASE_URL_LIVE = "https://api.alpaca.markets"
DATA_URL = "https://data.alpaca.markets"

DEFAULT_WATCHLIST = ["AAPL", "MSFT", "GOOGL", "AMZN", "TSLA"]
DEFAULT_STORAGE_DIR = str(Path.home() / ".stocksim")

SETTINGS_STORAGE_KEY = "app_settings"

# Environment overrides
ENV_STORAGE_DIR = "STOCKSIM_STORAGE_DIR"
ENV_LOG_LEVEL = "STOCKSIM_LOG_LEVEL"


@dataclass
class AppSettings:
    """Application settings model."""
    paper_base_url: str = BASE_URL_PAPER
    live_base_url: str = BASE_URL_LIVE
    data_base_url: str = DATA_URL
    timeout_s: float = 10.0
    batch_size: int = 5  # concurrent quote lookups per market data batch
    default_watchlist: List[str] = field(default_factory=lambda: list(DEFAULT_WATCHLIST))
    storage_dir: str = DEFAULT_STORAGE_DIR
    log_level: str = "INFO"

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """Create from dictionary; missing or invalid entries keep their defaults."""
        defaults = cls()
        try:
            batch_size = int(data.get("batch_size", defaults.batch_size))
        except (TypeError, ValueError):
            batch_size = defaults.batch_size
        try:
            timeout_s = float(data.get("timeout_s", defaults.timeout_s))
        except (TypeError, ValueError):
            timeout_s = defaults.timeout_s
        watchlist = data.get("default_watchlist")
        if not isinstance(watchlist, list):
            watchlist = defaults.default_watchlist
        return cls(
            paper_base_url=data.get("paper_base_url", defaults.paper_base_url),
            live_base_url=data.get("live_base_url", defaults.live_base_url),
            data_base_url=data.get("data_base_url", defaults.data_base_url),
            timeout_s=timeout_s,
            batch_size=max(1, batch_size),
            default_watchlist=[str(s).upper() for s in watchlist],
            storage_dir=data.get("storage_dir", defaults.storage_dir),
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
        )

    def apply_env(self) -> "AppSettings":
        """Apply environment overrides in place and return self."""
        storage_dir = os.environ.get(ENV_STORAGE_DIR)
        if storage_dir:
            self.storage_dir = storage_dir
        log_level = os.environ.get(ENV_LOG_LEVEL)
        if log_level:
            self.log_level = log_level.upper()
        return self


def load_settings(storage: Optional[IStorageService] = None) -> AppSettings:
    """Load settings from storage (if any) merged over defaults, then env."""
    settings = AppSettings()
    if storage is not None:
        data = storage.load(SETTINGS_STORAGE_KEY)
        if isinstance(data, dict):
            settings = AppSettings.from_dict(data)
        elif data is not None:
            logger.warning(f"Ignoring malformed settings entry: {data!r}")
    return settings.apply_env()


def save_settings(storage: IStorageService, settings: AppSettings) -> None:
    storage.save(SETTINGS_STORAGE_KEY, settings.to_dict())
