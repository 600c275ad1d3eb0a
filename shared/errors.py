"""
Shared error handling for the ChatKit Token Service.

Every error that terminates a request maps to one HTTP status and one
``ErrorResponse`` body of the form ``{error, message, request_id?}``.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str
    request_id: Optional[str] = None


class TokenServiceException(Exception):
    """Base exception for token service errors."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.code,
            message=self.message,
            request_id=request_id
        )


class ValidationError(TokenServiceException):
    """Malformed or missing client input."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("bad_request", message, details)


class RateLimitError(TokenServiceException):
    """No tokens left for the calling identity."""

    status_code = 429

    def __init__(self, message: str = "Too many requests. Please try again later.",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("rate_limit_exceeded", message, details)


class RoutingError(TokenServiceException):
    """Request did not match any route."""


class NotFoundError(RoutingError):
    """Unknown path."""

    status_code = 404

    def __init__(self, message: str = "Endpoint not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("not_found", message, details)


class MethodNotAllowedError(RoutingError):
    """Known path, wrong method."""

    status_code = 405

    def __init__(self, message: str = "Method not allowed", details: Optional[Dict[str, Any]] = None):
        super().__init__("method_not_allowed", message, details)


class InternalError(TokenServiceException):
    """Generic server-side failure. The message is safe to show callers."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__("internal_error", message, details)


class UpstreamError(InternalError):
    """The upstream provider answered with a non-success status or an unusable body."""

    def __init__(self, status_code: int, body: str, details: Optional[Dict[str, Any]] = None):
        self.upstream_status = status_code
        self.body = body
        super().__init__(f"Upstream API error: {status_code} - {body}", details)


class TransportError(InternalError):
    """The upstream provider could not be reached."""

    def __init__(self, message: str = "Upstream transport error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
