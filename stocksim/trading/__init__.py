# Trading module
"""Trade entry helpers."""

from .validation import OrderValidator, ValidationState, parse_amount

__all__ = ["OrderValidator", "ValidationState", "parse_amount"]
