"""Stock trading simulator core for the Alpaca brokerage API."""

__version__ = "0.1.0"
