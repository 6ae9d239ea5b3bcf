"""
Exceptions for the client observer.

This module defines the exceptions raised by the stats pipeline so that
callers can tell configuration mistakes, malformed stats reports and
delivery failures apart.
"""

from typing import Optional, Dict, Any


class ObserverError(Exception):
    """Base exception for all client observer errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ObserverError):
    """Raised when a required configuration is missing or invalid."""
    pass


class ValidationError(ObserverError):
    """Raised when validation of a configuration value fails."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Validation failed for '{field}': {reason}",
            {
                "field": field,
                "value": value,
                "reason": reason
            }
        )


class InvalidInputError(ObserverError):
    """Raised when a raw stats report cannot be iterated."""

    def __init__(self, adapter: str, received: Any):
        super().__init__(
            f"Adapter '{adapter}' received an object that is not a stats report",
            {
                "adapter": adapter,
                "received_type": type(received).__name__
            }
        )


class SenderClosedError(ObserverError):
    """Raised when samples are sent through a closed sender."""

    def __init__(self, url: Optional[str] = None):
        super().__init__(
            "Cannot send samples, the sender is closed",
            {"url": url}
        )


class TransportError(ObserverError):
    """Raised when a batch of samples could not be delivered."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(
            f"Sending samples to '{url}' failed: {message}",
            {
                "url": url,
                "status_code": status_code,
                "original_error": str(original_error) if original_error else None
            }
        )
        self.status_code = status_code
        self.original_error = original_error
