"""Persistent storage of the brokerage API key pair.

When the user has not stored a key pair the store answers with built-in demo
paper-trading values so that the client always has something to send.
"""

from __future__ import annotations

import logging

from stocksim.broker.models import Credentials
from stocksim.storage.storage import IStorageService

logger = logging.getLogger(__name__)

# Placeholder paper trading keys; they are not expected to authenticate.
DEFAULT_PAPER_API_KEY = "PKHTOQKMNVUD5HGLMGVM"
DEFAULT_PAPER_SECRET_KEY = "qrxeV73yQJKaQpannQe1w24xxzS02UgjhCUs0pAF"

API_KEY_STORAGE_KEY = "alpaca_api_key"
SECRET_KEY_STORAGE_KEY = "alpaca_secret_key"
PAPER_TRADING_STORAGE_KEY = "alpaca_paper_trading"

DEMO_CREDENTIALS = Credentials(DEFAULT_PAPER_API_KEY, DEFAULT_PAPER_SECRET_KEY, True)


class CredentialStore:
    """Reads and writes the three credential entries of a storage service."""

    def __init__(self, storage: IStorageService) -> None:
        self._storage = storage

    def _load_str(self, key: str) -> str:
        try:
            value = self._storage.load(key)
        except Exception as e:
            logger.error(f"Failed to read '{key}': {e}")
            return ""
        return value if isinstance(value, str) else ""

    def get_api_key(self) -> str:
        return self._load_str(API_KEY_STORAGE_KEY) or DEFAULT_PAPER_API_KEY

    def get_secret_key(self) -> str:
        return self._load_str(SECRET_KEY_STORAGE_KEY) or DEFAULT_PAPER_SECRET_KEY

    def is_paper_trading(self) -> bool:
        """Stored trading mode; paper when nothing is stored."""
        value = self._load_str(PAPER_TRADING_STORAGE_KEY)
        if not value:
            return True
        return value == "true"

    def load(self) -> Credentials:
        """Stored credentials, each field falling back to the demo value."""
        return Credentials(
            api_key=self.get_api_key(),
            secret_key=self.get_secret_key(),
            paper_trading=self.is_paper_trading(),
        )

    def save(self, credentials: Credentials) -> bool:
        try:
            self._storage.save(API_KEY_STORAGE_KEY, credentials.api_key)
            self._storage.save(SECRET_KEY_STORAGE_KEY, credentials.secret_key)
            self._storage.save(
                PAPER_TRADING_STORAGE_KEY, "true" if credentials.paper_trading else "false"
            )
            return True
        except Exception as e:
            logger.error(f"Failed to save API credentials: {e}")
            return False

    def clear(self) -> bool:
        try:
            self._storage.delete(API_KEY_STORAGE_KEY)
            self._storage.delete(SECRET_KEY_STORAGE_KEY)
            self._storage.delete(PAPER_TRADING_STORAGE_KEY)
            return True
        except Exception as e:
            logger.error(f"Failed to clear API credentials: {e}")
            return False

    def has_custom_credentials(self) -> bool:
        """True when the user has stored a key pair of their own."""
        return bool(self._load_str(API_KEY_STORAGE_KEY) and self._load_str(SECRET_KEY_STORAGE_KEY))
