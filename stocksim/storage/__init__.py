# Storage module
"""Persistence services for credentials, settings and session state."""

from stocksim.storage.storage import IStorageService, JsonFileStorage, MemoryStorage

__all__ = ["IStorageService", "JsonFileStorage", "MemoryStorage"]
