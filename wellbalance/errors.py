"""Domain errors raised by services and mapped to HTTP responses in api.main."""
from __future__ import annotations


class AuthenticationRequired(Exception):
    """The operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "User is not authenticated."):
        super().__init__(message)
        self.message = message


class InvalidDate(ValueError):
    """A date parameter is not an ISO YYYY-MM-DD calendar date."""


class MissingFields(ValueError):
    """Required request fields are absent or empty."""

    def __init__(self, fields: list[str]):
        super().__init__(f"Missing required field(s): {', '.join(fields)}")
        self.fields = fields
