"""Errors raised by the brokerage client."""

from __future__ import annotations


class ApiError(Exception):
    """Non-2xx response from the brokerage.

    Attributes:
        status_code: HTTP status of the response
        body: Response body text
        method: HTTP method of the failed request
        endpoint: Endpoint path of the failed request
    """

    def __init__(self, status_code: int, body: str, method: str = "", endpoint: str = "") -> None:
        super().__init__(f"API Error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body
        self.method = method
        self.endpoint = endpoint


class CredentialsError(Exception):
    """No usable API key pair is available for a request."""
