"""Order entry validation.

This module provides:
- ValidationState: Enum for input validation states
- OrderValidator: Checks trade-form input before an order is placed
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Tuple, Union

from stocksim.broker.models import OrderSide, OrderType

Amount = Union[str, int, float, Decimal, None]


class ValidationState(Enum):
    """Input validation states."""
    VALID = "valid"
    WARNING = "warning"       # Acceptable to submit, but likely rejected by the brokerage
    INVALID = "invalid"       # Must not be submitted
    NEUTRAL = "neutral"       # Nothing entered yet


def parse_amount(value: Amount) -> Optional[Decimal]:
    """Parse a positive finite amount; None for anything else."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= Decimal("0"):
        return None
    return amount


class OrderValidator:
    """Validates trade-form input.

    Format and required-field problems are INVALID; exceeding buying power or
    the held position is only a WARNING since the brokerage has the final say.
    """

    def validate(
        self,
        symbol: str,
        quantity: Amount,
        order_type: Union[OrderType, str] = OrderType.MARKET,
        limit_price: Amount = None,
        stop_price: Amount = None,
    ) -> Tuple[ValidationState, str]:
        """Check the fields required to submit an order.

        Args:
            symbol: Selected ticker symbol
            quantity: Share quantity as entered
            order_type: Order type
            limit_price: Limit price as entered (limit/stop-limit orders)
            stop_price: Stop price as entered (stop/stop-limit orders)

        Returns:
            Tuple of (ValidationState, message)
        """
        if not symbol or not symbol.strip():
            return (ValidationState.INVALID, "Please select a stock symbol")

        if parse_amount(quantity) is None:
            return (ValidationState.INVALID, "Please enter a valid quantity")

        order_type = OrderType(order_type)
        has_limit = parse_amount(limit_price) is not None
        has_stop = parse_amount(stop_price) is not None

        if order_type is OrderType.LIMIT and not has_limit:
            return (ValidationState.INVALID, "Please enter a valid limit price")
        if order_type is OrderType.STOP and not has_stop:
            return (ValidationState.INVALID, "Please enter a valid stop price")
        if order_type is OrderType.STOP_LIMIT and not (has_limit and has_stop):
            return (ValidationState.INVALID, "Please enter valid limit and stop prices")

        return (ValidationState.VALID, "")

    def check_affordability(
        self,
        quantity: Amount,
        side: Union[OrderSide, str],
        buying_power: Decimal,
        position_size: Decimal,
        current_price: Optional[Decimal],
    ) -> Tuple[ValidationState, str]:
        """Compare an order against buying power (buys) or the held position (sells)."""
        amount = parse_amount(quantity)
        if amount is None:
            return (ValidationState.NEUTRAL, "")

        if OrderSide(side) is OrderSide.BUY:
            if current_price is None:
                return (ValidationState.WARNING, "Price data unavailable")
            if amount * current_price > buying_power:
                return (ValidationState.WARNING, f"Exceeds available buying power ({buying_power})")
        elif amount > position_size:
            return (ValidationState.WARNING, f"Exceeds position size ({position_size})")

        return (ValidationState.VALID, "")
