# Broker module
"""Alpaca brokerage access: wire models, errors and the REST client.

The client lives in ``stocksim.broker.client``.
"""

from .errors import ApiError, CredentialsError
from .models import (
    Account,
    Allocation,
    Asset,
    Bar,
    Credentials,
    MarketData,
    Order,
    OrderSide,
    OrderStatusFilter,
    OrderType,
    PortfolioSummary,
    Position,
    Quote,
    TimeInForce,
    Timeframe,
)

__all__ = [
    "ApiError",
    "CredentialsError",
    "Account",
    "Allocation",
    "Asset",
    "Bar",
    "Credentials",
    "MarketData",
    "Order",
    "OrderSide",
    "OrderStatusFilter",
    "OrderType",
    "PortfolioSummary",
    "Position",
    "Quote",
    "TimeInForce",
    "Timeframe",
]
