"""
Shared error handling for the repository content proxy.

Upstream failures keep their own shapes (see the GitHub adapter); the classes
here cover errors the proxy raises on its own behalf.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class ProxyException(Exception):
    """Base exception for proxy services."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class CacheConsistencyError(ProxyException):
    """The upstream answered "not modified" for a key the cache does not hold."""

    def __init__(self, key: str, message: str = "Not modified response without a cached entry"):
        super().__init__("CACHE_CONSISTENCY_ERROR", message, {"key": key})


class ConfigurationError(ProxyException):
    """A setting required by the requested operation is missing."""

    def __init__(self, setting: str, message: str = "Missing configuration"):
        super().__init__("CONFIGURATION_ERROR", f"{message}: {setting}", {"setting": setting})


class ValidationError(ProxyException):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotificationError(ProxyException):
    """Operational notification could not be delivered."""

    status_code = 502

    def __init__(self, message: str = "Notification delivery failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOTIFICATION_ERROR", message, details)
