"""Data models for brokerage entities and locally derived figures.

Brokerage records are parsed from the Alpaca wire format with ``from_dict``.
Money and quantity fields are converted to Decimal; the brokerage sends most
of them as strings and market data as JSON numbers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Convert a wire value (str, int, float, None) to Decimal."""
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return default


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value)


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    STOP_LIMIT = "stop_limit"

    @property
    def uses_limit_price(self) -> bool:
        return self in (OrderType.LIMIT, OrderType.STOP_LIMIT)

    @property
    def uses_stop_price(self) -> bool:
        return self in (OrderType.STOP, OrderType.STOP_LIMIT)


class TimeInForce(str, Enum):
    DAY = "day"
    GTC = "gtc"
    OPG = "opg"
    CLS = "cls"
    IOC = "ioc"
    FOK = "fok"


class Timeframe(str, Enum):
    """Bar aggregation interval accepted by the market data API."""
    MIN_1 = "1Min"
    MIN_5 = "5Min"
    MIN_15 = "15Min"
    HOUR_1 = "1Hour"
    DAY_1 = "1Day"


class OrderStatusFilter(str, Enum):
    """Order list filters offered to the user."""
    ALL = "all"
    OPEN = "open"
    CLOSED = "closed"
    FILLED = "filled"
    CANCELED = "canceled"


@dataclass(frozen=True)
class Credentials:
    """API key pair plus trading mode.

    Attributes:
        api_key: Key ID sent as ``APCA-API-KEY-ID``
        secret_key: Secret sent as ``APCA-API-SECRET-KEY``
        paper_trading: True selects the paper trading endpoint
    """
    api_key: str
    secret_key: str
    paper_trading: bool = True

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key and self.secret_key)


@dataclass
class Account:
    id: str
    cash: Decimal
    portfolio_value: Decimal
    equity: Decimal
    buying_power: Decimal
    last_equity: Decimal
    status: str = ""
    currency: str = "USD"
    created_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=str(data.get("id", "")),
            cash=to_decimal(data.get("cash")),
            portfolio_value=to_decimal(data.get("portfolio_value")),
            equity=to_decimal(data.get("equity")),
            buying_power=to_decimal(data.get("buying_power")),
            last_equity=to_decimal(data.get("last_equity")),
            status=data.get("status") or "",
            currency=data.get("currency") or "USD",
            created_at=data.get("created_at"),
            raw=dict(data),
        )


@dataclass
class Position:
    """A held position as reported by the brokerage.

    Attributes:
        symbol: Ticker symbol (e.g., "AAPL")
        qty: Number of shares held
        avg_entry_price: Average purchase price per share
        market_value: Current value of the holding
        unrealized_pl: Unrealized profit/loss in account currency
        unrealized_plpc: Unrealized profit/loss as a fraction of cost
    """
    symbol: str
    qty: Decimal
    avg_entry_price: Decimal
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_plpc: Decimal
    current_price: Decimal = Decimal("0")
    lastday_price: Decimal = Decimal("0")
    change_today: Decimal = Decimal("0")
    side: str = "long"
    exchange: str = ""
    asset_class: str = "us_equity"
    asset_id: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(
            symbol=data["symbol"],
            qty=to_decimal(data.get("qty")),
            avg_entry_price=to_decimal(data.get("avg_entry_price")),
            market_value=to_decimal(data.get("market_value")),
            cost_basis=to_decimal(data.get("cost_basis")),
            unrealized_pl=to_decimal(data.get("unrealized_pl")),
            unrealized_plpc=to_decimal(data.get("unrealized_plpc")),
            current_price=to_decimal(data.get("current_price")),
            lastday_price=to_decimal(data.get("lastday_price")),
            change_today=to_decimal(data.get("change_today")),
            side=data.get("side") or "long",
            exchange=data.get("exchange") or "",
            asset_class=data.get("asset_class") or "us_equity",
            asset_id=data.get("asset_id") or "",
            raw=dict(data),
        )


CANCELABLE_ORDER_STATUSES = frozenset({"new", "accepted", "pending_new", "partially_filled"})
CLOSED_OUT_ORDER_STATUSES = frozenset({"canceled", "expired", "rejected"})


@dataclass
class Order:
    """Brokerage order record; lifecycle is owned by the brokerage."""
    id: str
    symbol: str
    qty: Decimal
    side: str
    type: str
    time_in_force: str
    status: str
    client_order_id: str = ""
    filled_qty: Decimal = Decimal("0")
    limit_price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    filled_avg_price: Optional[Decimal] = None
    created_at: Optional[str] = None
    submitted_at: Optional[str] = None
    filled_at: Optional[str] = None
    canceled_at: Optional[str] = None
    expired_at: Optional[str] = None
    failed_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=str(data.get("id", "")),
            symbol=data.get("symbol", ""),
            qty=to_decimal(data.get("qty")),
            side=data.get("side", ""),
            type=data.get("type") or data.get("order_type", ""),
            time_in_force=data.get("time_in_force", ""),
            status=data.get("status", ""),
            client_order_id=data.get("client_order_id") or "",
            filled_qty=to_decimal(data.get("filled_qty")),
            limit_price=_optional_decimal(data.get("limit_price")),
            stop_price=_optional_decimal(data.get("stop_price")),
            filled_avg_price=_optional_decimal(data.get("filled_avg_price")),
            created_at=data.get("created_at"),
            submitted_at=data.get("submitted_at"),
            filled_at=data.get("filled_at"),
            canceled_at=data.get("canceled_at"),
            expired_at=data.get("expired_at"),
            failed_at=data.get("failed_at"),
            raw=dict(data),
        )

    @property
    def is_cancelable(self) -> bool:
        return self.status in CANCELABLE_ORDER_STATUSES

    def describe(self) -> str:
        """Human-readable order line, e.g. ``BUY 10 AAPL @ $100``."""
        text = f"{self.side.upper()} {self.qty} {self.symbol}"
        if self.type == OrderType.LIMIT.value and self.limit_price is not None:
            text += f" @ ${self.limit_price}"
        elif self.type == OrderType.STOP.value and self.stop_price is not None:
            text += f" @ ${self.stop_price}"
        elif (
            self.type == OrderType.STOP_LIMIT.value
            and self.stop_price is not None
            and self.limit_price is not None
        ):
            text += f" @ ${self.stop_price}-${self.limit_price}"
        return text


@dataclass
class Asset:
    """Tradable instrument metadata."""
    id: str
    symbol: str
    name: str = ""
    exchange: str = ""
    asset_class: str = "us_equity"
    status: str = "active"
    tradable: bool = False
    marginable: bool = False
    shortable: bool = False
    easy_to_borrow: bool = False
    fractionable: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        return cls(
            id=str(data.get("id", "")),
            symbol=data["symbol"],
            name=data.get("name") or "",
            exchange=data.get("exchange") or "",
            asset_class=data.get("class") or data.get("asset_class") or "us_equity",
            status=data.get("status") or "active",
            tradable=bool(data.get("tradable", False)),
            marginable=bool(data.get("marginable", False)),
            shortable=bool(data.get("shortable", False)),
            easy_to_borrow=bool(data.get("easy_to_borrow", False)),
            fractionable=bool(data.get("fractionable", False)),
        )

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on symbol or name."""
        needle = query.lower()
        return needle in self.symbol.lower() or (bool(self.name) and needle in self.name.lower())


@dataclass
class Bar:
    """OHLCV candle. ``t`` is the bar start as sent by the API."""
    t: Any
    o: Decimal
    h: Decimal
    l: Decimal
    c: Decimal
    v: Decimal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bar":
        return cls(
            t=data.get("t"),
            o=to_decimal(data.get("o")),
            h=to_decimal(data.get("h")),
            l=to_decimal(data.get("l")),
            c=to_decimal(data.get("c")),
            v=to_decimal(data.get("v")),
        )


@dataclass
class Quote:
    """Top-of-book quote: ask/bid price and size."""
    t: Any
    ap: Decimal
    as_: Decimal
    bp: Decimal
    bs: Decimal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quote":
        # Latest-quote responses wrap the quote as {"symbol": ..., "quote": {...}}
        if isinstance(data.get("quote"), dict):
            data = data["quote"]
        return cls(
            t=data.get("t"),
            ap=to_decimal(data.get("ap")),
            as_=to_decimal(data.get("as")),
            bp=to_decimal(data.get("bp")),
            bs=to_decimal(data.get("bs")),
        )


@dataclass(frozen=True)
class MarketData:
    """Latest price and change versus the previous close, computed locally."""
    symbol: str
    price: Decimal
    change: Decimal
    change_percent: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    total_value: Decimal
    cash_balance: Decimal
    day_change: Decimal
    day_change_percent: Decimal
    total_gain: Decimal
    total_gain_percent: Decimal


@dataclass(frozen=True)
class Allocation:
    """Share of total portfolio value held in one symbol (or cash)."""
    symbol: str
    value: Decimal
    percentage: Decimal
