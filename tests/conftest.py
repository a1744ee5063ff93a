from __future__ import annotations

import json
import os
from decimal import Decimal
from typing import Callable, Dict, List, Optional

import httpx
import pytest
from PySide6.QtCore import QCoreApplication

from stocksim.broker.client import AlpacaClient, ClientConfig
from stocksim.broker.errors import ApiError
from stocksim.broker.models import Account, Asset, Bar, Order, Position, Quote
from stocksim.config.credentials import CredentialStore
from stocksim.storage import MemoryStorage


@pytest.fixture(scope="session", autouse=True)
def _qt_app():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def make_account(**overrides) -> Account:
    data = {
        "id": "acct-1",
        "cash": "2500.00",
        "portfolio_value": "10500.00",
        "equity": "10500.00",
        "buying_power": "5000.00",
        "last_equity": "10000.00",
        "status": "ACTIVE",
        "currency": "USD",
    }
    data.update(overrides)
    return Account.from_dict(data)


def make_position(symbol: str, market_value: str, unrealized_pl: str) -> Position:
    return Position.from_dict({
        "symbol": symbol,
        "qty": "10",
        "avg_entry_price": "100",
        "market_value": market_value,
        "cost_basis": "1000",
        "unrealized_pl": unrealized_pl,
        "unrealized_plpc": "0",
    })


def make_order(order_id: str, status: str = "new", symbol: str = "AAPL") -> Order:
    return Order.from_dict({
        "id": order_id,
        "symbol": symbol,
        "qty": "1",
        "side": "buy",
        "type": "market",
        "time_in_force": "day",
        "status": status,
    })


class FakeBroker:
    """In-memory stand-in for AlpacaClient used by state container tests."""

    def __init__(self) -> None:
        self.account: Optional[Account] = make_account()
        self.positions: List[Position] = []
        self.orders: List[Order] = []
        self.assets: List[Asset] = []
        self.quotes: Dict[str, Decimal] = {}
        self.previous_closes: Dict[str, Decimal] = {}
        self.fail: Dict[str, Exception] = {}
        self.failing_symbols: set[str] = set()
        self.calls: List[tuple] = []
        self.created: List[dict] = []
        self.is_paper_trading = True

    def _call(self, name: str, *args):
        self.calls.append((name, *args))
        if name in self.fail:
            raise self.fail[name]

    def get_account(self) -> Account:
        self._call("get_account")
        return self.account

    def get_positions(self) -> List[Position]:
        self._call("get_positions")
        return list(self.positions)

    def close_position(self, symbol: str) -> Order:
        self._call("close_position", symbol)
        self.positions = [p for p in self.positions if p.symbol != symbol]
        return make_order("close-" + symbol, symbol=symbol)

    def close_all_positions(self) -> List[dict]:
        self._call("close_all_positions")
        self.positions = []
        return []

    def get_orders(self, status: str = "open", limit: int = 50) -> List[Order]:
        self._call("get_orders", status)
        if status == "open":
            return [o for o in self.orders if o.is_cancelable]
        if status == "closed":
            return [o for o in self.orders if not o.is_cancelable]
        return list(self.orders)

    def get_order(self, order_id: str) -> Order:
        self._call("get_order", order_id)
        for order in self.orders:
            if order.id == order_id:
                return order
        raise ApiError(404, '{"message":"order not found"}')

    def create_order(self, params: dict) -> Order:
        self._call("create_order", params)
        self.created.append(params)
        order = make_order(f"ord-{len(self.created)}", symbol=params["symbol"])
        self.orders.append(order)
        return order

    def cancel_order(self, order_id: str) -> None:
        self._call("cancel_order", order_id)
        for order in self.orders:
            if order.id == order_id:
                order.status = "canceled"

    def cancel_all_orders(self) -> None:
        self._call("cancel_all_orders")
        for order in self.orders:
            if order.is_cancelable:
                order.status = "canceled"

    def search_assets(self, query: str) -> List[Asset]:
        self._call("search_assets", query)
        return [a for a in self.assets if a.matches(query)]

    def get_quote(self, symbol: str) -> Quote:
        self._call("get_quote", symbol)
        if symbol in self.failing_symbols:
            raise ApiError(404, f"no quote for {symbol}")
        return Quote(t=None, ap=self.quotes[symbol], as_=Decimal("1"), bp=Decimal("0"), bs=Decimal("1"))

    def get_bars(self, symbol, timeframe, start, end, limit=1000) -> List[Bar]:
        self._call("get_bars", symbol, timeframe, start, end, limit)
        close = self.previous_closes.get(symbol)
        if close is None:
            return []
        return [Bar(t="2024-01-01T05:00:00Z", o=close, h=close, l=close, c=close, v=Decimal("100"))]


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


Handler = Callable[[httpx.Request], httpx.Response]


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode())


@pytest.fixture
def make_client(storage):
    """Build a real AlpacaClient whose HTTP traffic goes to ``handler``."""
    clients: List[AlpacaClient] = []

    def _make(handler: Handler, with_store: bool = True) -> AlpacaClient:
        client = AlpacaClient(
            ClientConfig(),
            credential_store=CredentialStore(storage) if with_store else None,
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
