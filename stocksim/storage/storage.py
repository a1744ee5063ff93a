"""Key-value persistence for credentials, settings and session state.

Every persisted entry is addressed by a string key. ``JsonFileStorage`` keeps
one JSON document per key on disk; ``MemoryStorage`` keeps them in a dict for
ephemeral sessions and tests.
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class IStorageService(ABC):
    """Abstract base class for storage services."""

    @abstractmethod
    def save(self, key: str, data: Any) -> None:
        """Save JSON-serializable data under ``key``."""
        ...

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Load data for ``key``.

        Returns:
            The stored data, or None if nothing is stored under the key
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete data for ``key``; deleting a missing key is a no-op."""
        ...


class JsonFileStorage(IStorageService):
    """JSON file-based storage implementation.

    Stores each key as a separate JSON file in the base directory.
    """

    def __init__(self, base_path: str | Path) -> None:
        """Initialize the JSON file storage.

        Args:
            base_path: Directory where JSON files are stored; created if missing
        """
        self._base_path = Path(base_path).expanduser()
        self._base_path.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _get_file_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._base_path / f"{safe_key}.json"

    def save(self, key: str, data: Any) -> None:
        """Write ``data`` to ``<base>/<key>.json``.

        Raises:
            TypeError: If data is not JSON-serializable
            OSError: If the file cannot be written
        """
        file_path = self._get_file_path(key)
        try:
            with file_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except (TypeError, OSError) as e:
            logger.error(f"Failed to save data for key '{key}': {e}")
            raise

    def load(self, key: str) -> Optional[Any]:
        """Read ``<base>/<key>.json``.

        Returns:
            The stored data, or None if the file is missing or unreadable
        """
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None

        try:
            with file_path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupted data for key '{key}': {e}")
            return None
        except OSError as e:
            logger.error(f"Failed to load data for key '{key}': {e}")
            return None

    def delete(self, key: str) -> None:
        file_path = self._get_file_path(key)
        try:
            if file_path.exists():
                file_path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete data for key '{key}': {e}")
            raise


class MemoryStorage(IStorageService):
    """In-process storage; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.save(key, value)

    def save(self, key: str, data: Any) -> None:
        # Round-trip through JSON so callers see the same type coercions
        # as with JsonFileStorage.
        try:
            self._data[key] = json.loads(json.dumps(data))
        except TypeError as e:
            logger.error(f"Failed to save data for key '{key}': {e}")
            raise

    def load(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
