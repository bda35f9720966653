"""Custom exceptions used across buyerlookup."""

from __future__ import annotations


class BuyerLookupError(Exception):
    """Base error for the application."""


class ConfigError(BuyerLookupError):
    """Configuration related error."""


class FetchError(BuyerLookupError):
    """Raised when the export feed cannot be retrieved."""

    def __init__(self, message: str, *, status_code: int | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class ParseError(BuyerLookupError):
    """Raised when a payload is not decodable as delimited text."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class EmptyQueryError(BuyerLookupError):
    """Raised at the input boundary when a search term is blank."""


class RefreshInProgressError(BuyerLookupError):
    """Raised when a refresh is requested while another one is running."""
