"""Authentication state: login, logout and the start-up credential check."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, Signal

from stocksim.broker.client import AlpacaClient
from stocksim.broker.models import Credentials
from stocksim.storage.storage import IStorageService

from .base import StateContainer

logger = logging.getLogger(__name__)

AUTH_STORAGE_KEY = "auth_state"

INVALID_CREDENTIALS_MESSAGE = "Invalid API credentials. Please check and try again."
SAVE_FAILED_MESSAGE = "Failed to save credentials"


class AuthStatus(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class AuthState(StateContainer):
    """Tracks whether the client's key pair has been verified.

    The authenticated flag and trading mode are persisted under
    ``auth_state`` so that the previous session's state is known at launch.
    """

    statusChanged = Signal(str)

    _state_fields = ("status", "is_paper_trading")

    def __init__(
        self,
        client: AlpacaClient,
        storage: Optional[IStorageService] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._client = client
        self._storage = storage
        self.status = AuthStatus.UNAUTHENTICATED
        self.is_paper_trading = True
        self._restore()

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED

    def _restore(self) -> None:
        if self._storage is None:
            return
        data = self._storage.load(AUTH_STORAGE_KEY)
        if not isinstance(data, dict):
            return
        if data.get("is_authenticated"):
            self.status = AuthStatus.AUTHENTICATED
        self.is_paper_trading = bool(data.get("is_paper_trading", True))

    def _persist(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.save(
                AUTH_STORAGE_KEY,
                {
                    "is_authenticated": self.is_authenticated,
                    "is_paper_trading": self.is_paper_trading,
                },
            )
        except Exception as e:
            logger.error(f"Failed to persist auth state: {e}")

    def _set_status(self, status: AuthStatus, **fields) -> None:
        changed = status is not self.status
        self._update(status=status, **fields)
        self._persist()
        if changed:
            self.statusChanged.emit(status.value)

    def login(self, credentials: Credentials) -> bool:
        """Persist ``credentials`` and verify them with an account lookup.

        On verification failure the just-saved credentials are cleared.

        Returns:
            True if the credentials were verified
        """
        self._set_status(AuthStatus.AUTHENTICATING, is_loading=True, error=None)
        try:
            if not self._client.save_credentials(credentials):
                self._set_status(
                    AuthStatus.UNAUTHENTICATED, is_loading=False, error=SAVE_FAILED_MESSAGE
                )
                return False

            try:
                self._client.get_account()
            except Exception as e:
                logger.error(f"Credential verification failed: {e}")
                self._client.clear_credentials()
                self._set_status(
                    AuthStatus.UNAUTHENTICATED,
                    is_loading=False,
                    error=INVALID_CREDENTIALS_MESSAGE,
                )
                return False

            self._set_status(
                AuthStatus.AUTHENTICATED,
                is_paper_trading=credentials.paper_trading,
                is_loading=False,
            )
            mode = "paper" if credentials.paper_trading else "live"
            logger.info(f"Logged in ({mode} trading)")
            return True
        except Exception as e:
            logger.error(f"Login failed: {e}")
            self._set_status(
                AuthStatus.UNAUTHENTICATED,
                is_loading=False,
                error=str(e) or "An unknown error occurred",
            )
            return False

    def logout(self) -> None:
        """Forget the credentials. There is no remote sign-out."""
        self._update(is_loading=True)
        try:
            self._client.clear_credentials()
            self._set_status(
                AuthStatus.UNAUTHENTICATED,
                is_paper_trading=True,
                is_loading=False,
                error=None,
            )
            logger.info("Logged out")
        except Exception as e:
            logger.error(f"Logout failed: {e}")
            self._fail(e, "Failed to logout")

    def check_auth(self) -> bool:
        """Verify stored credentials with a live call.

        A failed verification demotes to unauthenticated without setting
        ``error``.
        """
        self._set_status(AuthStatus.AUTHENTICATING, is_loading=True)
        try:
            if not self._client.has_credentials():
                self._set_status(AuthStatus.UNAUTHENTICATED, is_loading=False)
                return False
            try:
                self._client.get_account()
            except Exception as e:
                logger.info(f"Stored credentials rejected: {e}")
                self._set_status(AuthStatus.UNAUTHENTICATED, is_loading=False)
                return False
            self._set_status(
                AuthStatus.AUTHENTICATED,
                is_paper_trading=self._client.is_paper_trading,
                is_loading=False,
            )
            return True
        except Exception as e:
            logger.error(f"Authentication check failed: {e}")
            self._set_status(
                AuthStatus.UNAUTHENTICATED,
                is_loading=False,
                error=str(e) or "Failed to check authentication",
            )
            return False

    def has_custom_credentials(self) -> bool:
        return self._client.has_custom_credentials()
