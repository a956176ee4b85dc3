"""
Shared error handling for the HTTP Cat caching proxy.
"""

from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error payload, used for structured error logging."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class CatProxyException(Exception):
    """Base exception for the caching proxy."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class InvalidKeyError(CatProxyException):
    """Requested path is not a 3-digit code."""

    status_code = 400

    def __init__(self, value: str, details: Optional[Dict[str, Any]] = None):
        self.value = value
        super().__init__(
            "INVALID_KEY",
            f'Invalid HTTP code format: "{value}". '
            "Please use 3-digit HTTP status code (e.g., 200, 404, 500)",
            {"value": value, **(details or {})}
        )


class StoreWriteError(CatProxyException):
    """Persisting a cache entry failed."""

    status_code = 500

    def __init__(self, key: str, message: str = "Error caching image", details: Optional[Dict[str, Any]] = None):
        self.key = key
        super().__init__("STORE_WRITE_ERROR", message, {"key": key, **(details or {})})


class CacheEntryNotFoundError(CatProxyException):
    """Delete target does not exist in the cache."""

    status_code = 404

    def __init__(self, key: str, message: str = "Image not found in cache"):
        self.key = key
        super().__init__("CACHE_ENTRY_NOT_FOUND", message, {"key": key})


class UpstreamUnavailableError(CatProxyException):
    """Upstream fetch failed or the upstream has no image for the key."""

    status_code = 404

    def __init__(self, service: str, message: str = "Upstream unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_UNAVAILABLE", f"{service}: {message}", details)
