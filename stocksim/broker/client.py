"""REST client for the Alpaca brokerage API.

One client instance holds one active key pair. Trading endpoints go to the
paper or live base URL depending on the trading mode; market data endpoints
go to the data base URL. Every call is a single attempt: there is no retry
and no rate-limit handling, and failures propagate to the caller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import httpx

from stocksim.broker.errors import ApiError, CredentialsError
from stocksim.broker.models import (
    Account,
    Asset,
    Bar,
    Credentials,
    Order,
    Position,
    Quote,
    Timeframe,
)
from stocksim.config.credentials import DEMO_CREDENTIALS, CredentialStore
from stocksim.config.settings import BASE_URL_LIVE, BASE_URL_PAPER, DATA_URL
from stocksim.util.env import make_ssl_context

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

DateLike = Union[str, date, datetime]


@dataclass(frozen=True)
class ClientConfig:
    """Everything a client needs to reach the brokerage."""
    credentials: Credentials = DEMO_CREDENTIALS
    paper_base_url: str = BASE_URL_PAPER
    live_base_url: str = BASE_URL_LIVE
    data_base_url: str = DATA_URL
    timeout_s: float = 10.0


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "value"):  # Enum members
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def format_timestamp(value: DateLike) -> str:
    """RFC 3339 timestamp (or plain date) for bar queries."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    if isinstance(value, date):
        return value.isoformat()
    return value


class AlpacaClient:
    """Stateful wrapper over the brokerage REST endpoints.

    Args:
        config: Base URLs, timeout and the initial key pair
        credential_store: Persistent credential storage; when omitted the
            client only knows the key pair from ``config``
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        credential_store: Optional[CredentialStore] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._store = credential_store
        self._credentials = self._config.credentials
        self._client = httpx.Client(
            timeout=self._config.timeout_s,
            verify=make_ssl_context(),
            transport=transport,
        )
        if self._store is not None:
            self.load_credentials()

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        credential_store: Optional[CredentialStore] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "AlpacaClient":
        return cls(config, credential_store=credential_store, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AlpacaClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ----- Credentials -----
    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def is_paper_trading(self) -> bool:
        return self._credentials.paper_trading

    def load_credentials(self) -> None:
        """Adopt the persisted key pair, or the demo pair when none is stored."""
        if self._store is None:
            return
        try:
            self._credentials = self._store.load()
        except Exception as e:
            logger.error(f"Failed to load Alpaca credentials: {e}")

    def save_credentials(self, credentials: Credentials) -> bool:
        """Adopt ``credentials`` and persist them.

        Returns:
            True if the credentials were persisted
        """
        self._credentials = credentials
        if self._store is None:
            return True
        return self._store.save(credentials)

    def clear_credentials(self) -> bool:
        """Remove persisted credentials and revert to the demo pair in paper mode."""
        success = True
        if self._store is not None:
            success = self._store.clear()
            self._credentials = replace(self._store.load(), paper_trading=True)
        else:
            self._credentials = DEMO_CREDENTIALS
        return success

    def has_credentials(self) -> bool:
        self.load_credentials()
        return self._credentials.is_complete

    def has_custom_credentials(self) -> bool:
        if self._store is None:
            return False
        return self._store.has_custom_credentials()

    # ----- Transport -----
    @property
    def base_url(self) -> str:
        if self._credentials.paper_trading:
            return self._config.paper_base_url
        return self._config.live_base_url

    def _headers(self) -> Dict[str, str]:
        return {
            "APCA-API-KEY-ID": self._credentials.api_key,
            "APCA-API-SECRET-KEY": self._credentials.secret_key,
            "Content-Type": "application/json",
        }

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Any] = None,
        base_url: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Args:
            endpoint: Path starting with ``/``
            method: HTTP method
            body: JSON body; only sent for POST, PUT and PATCH
            base_url: Overrides the trading base URL (e.g. for market data)
            params: Query string parameters

        Returns:
            Decoded JSON, or an empty dict for an empty body

        Raises:
            CredentialsError: If no key pair is available
            ApiError: On a non-2xx response
            httpx.HTTPError: On transport failures
        """
        if not self._credentials.is_complete:
            self.load_credentials()
            if not self._credentials.is_complete:
                raise CredentialsError("API credentials not set")

        method = method.upper()
        url = f"{base_url or self.base_url}{endpoint}"
        content = None
        if body is not None and method in BODY_METHODS:
            content = json.dumps(body, default=_json_default)

        logger.debug(f"{method} {url} params={params}")
        try:
            response = self._client.request(
                method, url, headers=self._headers(), params=params, content=content
            )
        except httpx.HTTPError as e:
            logger.error(f"Error in {method} request to {endpoint}: {e}")
            raise

        if not response.is_success:
            error = ApiError(response.status_code, response.text, method, endpoint)
            logger.error(f"Error in {method} request to {endpoint}: {error}")
            raise error

        return response.json() if response.content.strip() else {}

    # ----- Account -----
    def get_account(self) -> Account:
        return Account.from_dict(self.request("/v2/account"))

    # ----- Positions -----
    def get_positions(self) -> List[Position]:
        return [Position.from_dict(p) for p in self.request("/v2/positions") or []]

    def get_position(self, symbol: str) -> Position:
        return Position.from_dict(self.request(f"/v2/positions/{symbol}"))

    def close_position(self, symbol: str) -> Order:
        return Order.from_dict(self.request(f"/v2/positions/{symbol}", "DELETE"))

    def close_all_positions(self) -> List[dict]:
        """Liquidate everything; returns the per-symbol status entries."""
        result = self.request("/v2/positions", "DELETE")
        return result if isinstance(result, list) else []

    # ----- Orders -----
    def get_orders(self, status: str = "open", limit: int = 50) -> List[Order]:
        data = self.request("/v2/orders", params={"status": status, "limit": limit})
        return [Order.from_dict(o) for o in data or []]

    def get_order(self, order_id: str) -> Order:
        return Order.from_dict(self.request(f"/v2/orders/{order_id}"))

    def create_order(self, params: Dict[str, Any]) -> Order:
        """Submit an order. ``params`` is the request body as sent on the wire."""
        return Order.from_dict(self.request("/v2/orders", "POST", params))

    def cancel_order(self, order_id: str) -> None:
        self.request(f"/v2/orders/{order_id}", "DELETE")

    def cancel_all_orders(self) -> None:
        self.request("/v2/orders", "DELETE")

    # ----- Assets -----
    def get_assets(self, status: str = "active") -> List[Asset]:
        data = self.request("/v2/assets", params={"status": status})
        return [Asset.from_dict(a) for a in data or []]

    def get_asset(self, symbol: str) -> Asset:
        return Asset.from_dict(self.request(f"/v2/assets/{symbol}"))

    def search_assets(self, query: str) -> List[Asset]:
        """Active assets whose symbol or name contains ``query``, ignoring case.

        There is no server-side search; the full asset list is filtered here.
        """
        return [asset for asset in self.get_assets() if asset.matches(query)]

    # ----- Market data -----
    def get_bars(
        self,
        symbol: str,
        timeframe: Union[Timeframe, str],
        start: DateLike,
        end: DateLike,
        limit: int = 1000,
    ) -> List[Bar]:
        data = self.request(
            f"/v2/stocks/{symbol}/bars",
            params={
                "timeframe": Timeframe(timeframe).value,
                "start": format_timestamp(start),
                "end": format_timestamp(end),
                "limit": limit,
            },
            base_url=self._config.data_base_url,
        )
        bars = data.get("bars")
        if isinstance(bars, dict):
            bars = bars.get(symbol)
        if bars is None:
            bars = data.get(symbol)
        return [Bar.from_dict(b) for b in bars or []]

    def get_quote(self, symbol: str) -> Quote:
        return Quote.from_dict(
            self.request(
                f"/v2/stocks/{symbol}/quotes/latest",
                base_url=self._config.data_base_url,
            )
        )
