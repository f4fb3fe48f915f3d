from __future__ import annotations


class BillingMcpError(Exception):
    """Base exception for all billing MCP errors."""


class InvalidKeyError(BillingMcpError):
    """Raised when a cache key is empty or not a string."""


class ApiError(BillingMcpError):
    """Raised when the upstream Zoho Books API returns an unexpected HTTP error status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(message or f"Upstream API error ({status_code})")


class ConfigurationError(BillingMcpError):
    """Raised when required environment configuration is missing or malformed."""


class ValidationError(BillingMcpError):
    """Raised when input parameters fail validation before any network call."""
