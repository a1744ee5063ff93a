"""Order state: order list, placement and cancellation.

Every successful mutation refetches the order list instead of patching it
locally, so the list always mirrors what the brokerage reports.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from PySide6.QtCore import QObject

from stocksim.broker.client import AlpacaClient
from stocksim.broker.models import (
    CLOSED_OUT_ORDER_STATUSES,
    Order,
    OrderSide,
    OrderStatusFilter,
    OrderType,
    TimeInForce,
    to_decimal,
)

from .base import StateContainer

logger = logging.getLogger(__name__)

OPEN_ORDER_STATUSES = frozenset({"new", "accepted"})

# Filter -> (remote ``status`` query value, local statuses to keep or None for all)
STATUS_FILTERS: Dict[OrderStatusFilter, Tuple[str, Optional[frozenset]]] = {
    OrderStatusFilter.ALL: ("all", None),
    OrderStatusFilter.OPEN: ("open", None),
    OrderStatusFilter.CLOSED: ("closed", None),
    OrderStatusFilter.FILLED: ("closed", frozenset({"filled"})),
    OrderStatusFilter.CANCELED: ("closed", CLOSED_OUT_ORDER_STATUSES),
}

Number = Union[int, float, str, Decimal]


def build_order_request(
    symbol: str,
    qty: Number,
    side: Union[OrderSide, str],
    order_type: Union[OrderType, str],
    time_in_force: Union[TimeInForce, str] = TimeInForce.DAY,
    limit_price: Optional[Number] = None,
    stop_price: Optional[Number] = None,
    client_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Request body for a new order.

    ``limit_price`` is only included for limit and stop-limit orders and
    ``stop_price`` only for stop and stop-limit orders; a price left as None
    is omitted.
    """
    order_type = OrderType(order_type)
    body: Dict[str, Any] = {
        "symbol": symbol,
        "qty": to_decimal(qty),
        "side": OrderSide(side).value,
        "type": order_type.value,
        "time_in_force": TimeInForce(time_in_force).value,
    }
    if order_type.uses_limit_price and limit_price is not None:
        body["limit_price"] = to_decimal(limit_price)
    if order_type.uses_stop_price and stop_price is not None:
        body["stop_price"] = to_decimal(stop_price)
    if client_order_id:
        body["client_order_id"] = client_order_id
    return body


class OrderState(StateContainer):
    """Cached order list plus the order currently shown in detail."""

    _state_fields = ("orders", "status_filter", "selected_order")

    def __init__(self, client: AlpacaClient, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._client = client
        self.orders: List[Order] = []
        self.status_filter = OrderStatusFilter.ALL
        self.selected_order: Optional[Order] = None

    def fetch_orders(self, status: Union[OrderStatusFilter, str] = OrderStatusFilter.ALL) -> None:
        """Replace ``orders`` with the brokerage's orders matching ``status``."""
        self._update(is_loading=True, error=None)
        try:
            status = OrderStatusFilter(status)
            remote_status, keep = STATUS_FILTERS[status]
            orders = self._client.get_orders(remote_status)
        except Exception as e:
            logger.error(f"Failed to fetch orders: {e}")
            self._fail(e, "Failed to fetch orders")
            return
        if keep is not None:
            orders = [o for o in orders if o.status in keep]
        self._update(orders=orders, status_filter=status, is_loading=False)

    def fetch_order(self, order_id: str) -> Optional[Order]:
        """Load one order into ``selected_order``."""
        self._update(is_loading=True, error=None)
        try:
            order = self._client.get_order(order_id)
        except Exception as e:
            logger.error(f"Failed to load order {order_id}: {e}")
            self._fail(e, "Failed to load order details")
            return None
        self._update(selected_order=order, is_loading=False)
        return order

    def place_order(
        self,
        symbol: str,
        qty: Number,
        side: Union[OrderSide, str],
        order_type: Union[OrderType, str],
        time_in_force: Union[TimeInForce, str] = TimeInForce.DAY,
        limit_price: Optional[Number] = None,
        stop_price: Optional[Number] = None,
        client_order_id: Optional[str] = None,
    ) -> Optional[Order]:
        """Submit an order and refresh the order list.

        Returns:
            The created order, or None on failure (``error`` holds the reason)
        """
        self._update(is_loading=True, error=None)
        try:
            body = build_order_request(
                symbol,
                qty,
                side,
                order_type,
                time_in_force,
                limit_price=limit_price,
                stop_price=stop_price,
                client_order_id=client_order_id,
            )
            order = self._client.create_order(body)
        except Exception as e:
            logger.error(f"Failed to place order for {symbol}: {e}")
            self._fail(e, "Failed to place order")
            return None

        logger.info(f"Order {order.id} placed: {order.describe()}")
        self.fetch_orders(self.status_filter)
        return order

    def cancel_order(self, order_id: str) -> bool:
        """Request cancellation of ``order_id`` and refresh the order list."""
        self._update(is_loading=True, error=None)
        try:
            self._client.cancel_order(order_id)
        except Exception as e:
            logger.error(f"Failed to cancel order {order_id}: {e}")
            self._fail(e, "Failed to cancel order")
            return False

        logger.info(f"Order {order_id} cancel requested")
        self.fetch_orders(self.status_filter)
        return True

    def cancel_all_orders(self) -> bool:
        self._update(is_loading=True, error=None)
        try:
            self._client.cancel_all_orders()
        except Exception as e:
            logger.error(f"Failed to cancel all orders: {e}")
            self._fail(e, "Failed to cancel orders")
            return False
        self.fetch_orders(self.status_filter)
        return True

    def status_counts(self) -> Dict[str, int]:
        """Counts of filled, open and closed-out orders in the current list."""
        counts = {"filled": 0, "open": 0, "closed_out": 0}
        for order in self.orders:
            if order.status == "filled":
                counts["filled"] += 1
            elif order.status in OPEN_ORDER_STATUSES:
                counts["open"] += 1
            elif order.status in CLOSED_OUT_ORDER_STATUSES:
                counts["closed_out"] += 1
        return counts
