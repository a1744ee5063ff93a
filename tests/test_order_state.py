"""Tests for order state: request shaping, refresh-on-mutation and filters."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from stocksim.broker.errors import ApiError
from stocksim.broker.models import OrderStatusFilter, OrderType
from stocksim.state.orders import OrderState, build_order_request

from conftest import json_response, make_order

price_strategy = st.one_of(
    st.none(),
    st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2),
)


@given(order_type=st.sampled_from(list(OrderType)), limit_price=price_strategy, stop_price=price_strategy)
@settings(max_examples=200)
def test_prices_only_included_for_matching_order_types(order_type, limit_price, stop_price):
    body = build_order_request("AAPL", 1, "buy", order_type, "gtc", limit_price, stop_price)
    assert ("limit_price" in body) == (
        order_type in (OrderType.LIMIT, OrderType.STOP_LIMIT) and limit_price is not None
    )
    assert ("stop_price" in body) == (
        order_type in (OrderType.STOP, OrderType.STOP_LIMIT) and stop_price is not None
    )
    assert None not in body.values()
    assert body["time_in_force"] == "gtc"
    assert body["type"] == order_type.value


def test_stop_limit_without_stop_price_omits_key(make_client):
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return json_response({"id": "o1", "symbol": "AAPL", "qty": "1", "side": "buy",
                              "type": "stop_limit", "time_in_force": "day", "status": "new"})

    body = build_order_request("AAPL", 1, "buy", "stop_limit", "day", limit_price=100)
    make_client(handler).create_order(body)

    assert "stop_price" not in body
    assert sent == [{"symbol": "AAPL", "qty": "1", "side": "buy", "type": "stop_limit",
                     "time_in_force": "day", "limit_price": "100"}]


def test_limit_order_example():
    body = build_order_request("AAPL", 10, "buy", "limit", "day", limit_price=100, stop_price=None)
    assert body == {
        "symbol": "AAPL",
        "qty": Decimal("10"),
        "side": "buy",
        "type": "limit",
        "time_in_force": "day",
        "limit_price": Decimal("100"),
    }


def test_client_order_id_is_passed_through():
    body = build_order_request("AAPL", 1, "sell", "market", client_order_id="my-id")
    assert body["client_order_id"] == "my-id"


def test_invalid_order_type_is_rejected():
    with pytest.raises(ValueError):
        build_order_request("AAPL", 1, "buy", "trailing")


def test_place_order_refetches_list(broker):
    orders = OrderState(broker)
    order = orders.place_order("AAPL", 5, "buy", "market", "day")

    assert order is not None
    assert [o.id for o in orders.orders] == [order.id]
    assert [c[0] for c in broker.calls] == ["create_order", "get_orders"]
    assert broker.created[0]["qty"] == Decimal("5")
    assert orders.is_loading is False


def test_place_order_failure_returns_none(broker):
    broker.fail["create_order"] = ApiError(422, "insufficient buying power")
    orders = OrderState(broker)

    assert orders.place_order("AAPL", 5, "buy", "market") is None
    assert orders.error == "API Error (422): insufficient buying power"
    assert [c[0] for c in broker.calls] == ["create_order"]


def test_cancel_removes_order_from_open_list(broker):
    broker.orders = [make_order("o1"), make_order("o2"), make_order("o3", status="filled")]
    orders = OrderState(broker)
    orders.fetch_orders("open")
    assert [o.id for o in orders.orders] == ["o1", "o2"]

    assert orders.cancel_order("o1") is True

    assert [o.id for o in orders.orders] == ["o2"]
    orders.fetch_orders("open")
    assert "o1" not in [o.id for o in orders.orders]


def test_cancel_failure_keeps_list(broker):
    broker.orders = [make_order("o1")]
    broker.fail["cancel_order"] = ApiError(404, "not found")
    orders = OrderState(broker)
    orders.fetch_orders("open")

    assert orders.cancel_order("o1") is False
    assert [o.id for o in orders.orders] == ["o1"]
    assert orders.error == "API Error (404): not found"


@pytest.mark.parametrize(
    "label, remote, expected",
    [
        ("all", "all", ["o1", "o2", "o3", "o4"]),
        ("open", "open", ["o1"]),
        ("closed", "closed", ["o2", "o3", "o4"]),
        ("filled", "closed", ["o2"]),
        ("canceled", "closed", ["o3", "o4"]),
    ],
)
def test_status_filter_mapping(broker, label, remote, expected):
    broker.orders = [
        make_order("o1", "new"),
        make_order("o2", "filled"),
        make_order("o3", "canceled"),
        make_order("o4", "expired"),
    ]
    orders = OrderState(broker)
    orders.fetch_orders(label)

    assert broker.calls[-1] == ("get_orders", remote)
    assert [o.id for o in orders.orders] == expected
    assert orders.status_filter is OrderStatusFilter(label)


def test_unknown_filter_sets_error(broker):
    orders = OrderState(broker)
    orders.fetch_orders("pending")
    assert orders.error
    assert broker.calls == []


def test_fetch_order_selects_it(broker):
    broker.orders = [make_order("o1")]
    orders = OrderState(broker)
    assert orders.fetch_order("o1").id == "o1"
    assert orders.selected_order.id == "o1"

    assert orders.fetch_order("missing") is None
    assert "order not found" in orders.error


def test_cancel_all_orders(broker):
    broker.orders = [make_order("o1"), make_order("o2"), make_order("o3", status="filled")]
    orders = OrderState(broker)
    assert orders.cancel_all_orders() is True
    assert orders.status_counts() == {"filled": 1, "open": 0, "closed_out": 2}


def test_status_counts(broker):
    broker.orders = [
        make_order("o1", "new"),
        make_order("o2", "accepted"),
        make_order("o3", "filled"),
        make_order("o4", "rejected"),
        make_order("o5", "partially_filled"),
    ]
    orders = OrderState(broker)
    orders.fetch_orders()
    assert orders.status_counts() == {"filled": 1, "open": 2, "closed_out": 1}


def test_order_describe():
    order = make_order("o1")
    order.type, order.limit_price, order.stop_price = "stop_limit", Decimal("101"), Decimal("99")
    assert order.describe() == "BUY 1 AAPL @ $99-$101"
    assert order.is_cancelable
