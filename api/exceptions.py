"""Custom exception classes for structured API error handling."""

from __future__ import annotations


class AppError(Exception):
    """Base application error with an associated HTTP status code."""

    status_code: int = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404


class ConfigurationError(AppError):
    status_code = 500


class StoreUnavailableError(AppError):
    """Every NocoDB endpoint variant failed for a request."""

    status_code = 502


class ShopifyFetchError(AppError):
    status_code = 502
