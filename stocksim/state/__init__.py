# State module
"""Observable state containers bound by views: auth, market, orders, portfolio."""

from .auth import AuthState, AuthStatus
from .base import StateContainer
from .market import MarketState, SymbolStatus, compute_market_data
from .orders import OrderState, build_order_request
from .portfolio import PortfolioState, allocations, summarize

__all__ = [
    "AuthState",
    "AuthStatus",
    "StateContainer",
    "MarketState",
    "SymbolStatus",
    "compute_market_data",
    "OrderState",
    "build_order_request",
    "PortfolioState",
    "allocations",
    "summarize",
]
