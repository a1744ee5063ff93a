"""Observable state container base.

State containers are QObjects so that views bind to them with signals. All
signals are emitted on the thread that called the container operation.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from PySide6.QtCore import QObject, Signal


class StateContainer(QObject):
    """Holds fetched data plus ``is_loading`` and ``error``.

    Subclasses list their public fields in ``_state_fields`` and mutate them
    only through ``_update`` so that observers are notified.
    """

    changed = Signal()
    loadingChanged = Signal(bool)
    errorChanged = Signal(str)

    _state_fields: Tuple[str, ...] = ()

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.is_loading: bool = False
        self.error: Optional[str] = None

    def _update(self, **fields: Any) -> None:
        prev_loading, prev_error = self.is_loading, self.error
        for name, value in fields.items():
            if name not in ("is_loading", "error") and name not in self._state_fields:
                raise AttributeError(f"{type(self).__name__} has no state field {name!r}")
            setattr(self, name, value)
        if self.is_loading != prev_loading:
            self.loadingChanged.emit(self.is_loading)
        if self.error != prev_error:
            self.errorChanged.emit(self.error or "")
        self.changed.emit()

    def _fail(self, exc: BaseException, fallback: str) -> None:
        """Record a caught error as the container's error message."""
        self._update(is_loading=False, error=str(exc) or fallback)

    def snapshot(self) -> Dict[str, Any]:
        """Current public state as a plain dict."""
        state = {name: getattr(self, name) for name in self._state_fields}
        state["is_loading"] = self.is_loading
        state["error"] = self.error
        return state
