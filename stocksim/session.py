"""Session wiring: one client and one set of state containers per session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from stocksim.broker.client import AlpacaClient, ClientConfig
from stocksim.config.credentials import CredentialStore
from stocksim.config.settings import AppSettings, load_settings
from stocksim.state.auth import AuthState
from stocksim.state.market import MarketState
from stocksim.state.orders import OrderState
from stocksim.state.portfolio import PortfolioState
from stocksim.storage.storage import IStorageService, JsonFileStorage

logger = logging.getLogger(__name__)


def client_config(settings: AppSettings, credentials: CredentialStore) -> ClientConfig:
    return ClientConfig(
        credentials=credentials.load(),
        paper_base_url=settings.paper_base_url,
        live_base_url=settings.live_base_url,
        data_base_url=settings.data_base_url,
        timeout_s=settings.timeout_s,
    )


@dataclass
class Session:
    """Everything a front end binds to.

    The state containers share the session's single client.
    """
    settings: AppSettings
    storage: IStorageService
    credentials: CredentialStore
    client: AlpacaClient
    auth: AuthState
    market: MarketState
    orders: OrderState
    portfolio: PortfolioState

    @classmethod
    def create(
        cls,
        settings: Optional[AppSettings] = None,
        storage: Optional[IStorageService] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "Session":
        """Build a session.

        Args:
            settings: Settings to use; loaded from storage when omitted
            storage: Storage service; a JSON file store under
                ``settings.storage_dir`` when omitted
            transport: Optional httpx transport for the client
        """
        if storage is None:
            base_dir = (settings or load_settings()).storage_dir
            storage = JsonFileStorage(base_dir)
        if settings is None:
            settings = load_settings(storage)

        credentials = CredentialStore(storage)
        client = AlpacaClient.from_config(
            client_config(settings, credentials),
            credential_store=credentials,
            transport=transport,
        )
        logger.info(f"Session created (paper trading: {client.is_paper_trading})")
        return cls(
            settings=settings,
            storage=storage,
            credentials=credentials,
            client=client,
            auth=AuthState(client, storage),
            market=MarketState(
                client,
                storage,
                batch_size=settings.batch_size,
                watchlist=settings.default_watchlist,
            ),
            orders=OrderState(client),
            portfolio=PortfolioState(client),
        )

    def close(self) -> None:
        self.client.close()
