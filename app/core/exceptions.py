"""
Core Exception System

Framework-independent exceptions raised by services and routes. Each one
carries a machine-readable error code and a suggested HTTP status so the
handlers in ``app.main`` can turn it into the JSON error envelope without
knowing where it came from.

Webhook callers rely on the split between permanent rejections (4xx) and
transient failures (5xx): the provider redelivers only on 5xx.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class BaseAppException(Exception):
    """
    Base application exception.

    Attributes:
        error_code: Machine-readable error identifier (e.g., "VIDEO_NOT_FOUND")
        message: Human-readable message safe for API responses
        debug_message: Internal details for logging (not exposed to clients)
        metadata: Optional dictionary with additional context
        http_status_code: Suggested HTTP status code for response mapping
        timestamp: When the exception was created
    """

    http_status_code: int = 500

    def __init__(
        self,
        error_code: str,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.debug_message = debug_message
        self.metadata = metadata or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(message)

    def to_dict(self, include_debug: bool = False) -> dict[str, Any]:
        """
        Serialize exception to dictionary.

        Args:
            include_debug: Whether to include debug_message (for logging)
        """
        result = {
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }

        if self.metadata:
            result["metadata"] = self.metadata

        if include_debug and self.debug_message:
            result["debug_message"] = self.debug_message

        return result

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code!r}, "
            f"message={self.message!r}, "
            f"metadata={self.metadata!r})"
        )


# =============================================================================
# Client Errors (4xx)
# =============================================================================

class ValidationException(BaseAppException):
    """Malformed or out-of-range input (400)."""

    http_status_code = 400

    def __init__(
        self,
        error_code: str = "VALIDATION_ERROR",
        message: str = "Validation failed",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
        field: Optional[str] = None,
    ) -> None:
        if field and metadata is None:
            metadata = {"field": field}
        elif field:
            metadata["field"] = field
        super().__init__(error_code, message, metadata, debug_message)


class BusinessException(BaseAppException):
    """A business rule was violated (400)."""

    http_status_code = 400


class InvalidStateException(BusinessException):
    """
    The target is not in a state that allows the operation.

    Raised for a manual sync on a video that never went through the
    provider, or for an ``order`` already used by a sibling video.
    The caller has to correct its input; retrying as-is will not help.
    """

    def __init__(
        self,
        error_code: str = "INVALID_STATE",
        message: str = "Operation not allowed in the current state",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
    ) -> None:
        super().__init__(error_code, message, metadata, debug_message)


class UnauthorizedException(BaseAppException):
    """
    Authentication error (401).

    Also used for webhook deliveries whose signature is missing, stale or
    wrong.
    """

    http_status_code = 401

    def __init__(
        self,
        error_code: str = "UNAUTHORIZED",
        message: str = "Authentication required",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
    ) -> None:
        super().__init__(error_code, message, metadata, debug_message)


class ForbiddenException(BaseAppException):
    """Authenticated, but not the course instructor or an admin (403)."""

    http_status_code = 403

    def __init__(
        self,
        error_code: str = "FORBIDDEN",
        message: str = "Permission denied",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
    ) -> None:
        super().__init__(error_code, message, metadata, debug_message)


class NotFoundException(BaseAppException):
    """
    Resource not found error (404).

    Covers missing courses, videos and assignments, and provider assets
    that do not map to any local video.
    """

    http_status_code = 404

    def __init__(
        self,
        error_code: str = "NOT_FOUND",
        message: str = "Resource not found",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        if resource_type or resource_id:
            metadata = metadata or {}
            if resource_type:
                metadata["resource_type"] = resource_type
            if resource_id:
                metadata["resource_id"] = resource_id
        super().__init__(error_code, message, metadata, debug_message)


class ConflictException(BaseAppException):
    """Resource already exists (409)."""

    http_status_code = 409

    def __init__(
        self,
        error_code: str = "CONFLICT",
        message: str = "Resource conflict",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
    ) -> None:
        super().__init__(error_code, message, metadata, debug_message)


# =============================================================================
# Server Errors (5xx)
# =============================================================================

class InternalServerException(BaseAppException):
    """
    Internal server error (500).

    Use for database failures and anything unexpected. A failed save after
    a successful provider fetch lands here; the manual sync endpoint is the
    way to repair the record afterwards.
    """

    http_status_code = 500

    def __init__(
        self,
        error_code: str = "INTERNAL_ERROR",
        message: str = "An internal error occurred",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
    ) -> None:
        super().__init__(error_code, message, metadata, debug_message)


class UpstreamServiceException(InternalServerException):
    """
    The video provider was unreachable, rate-limited, unconfigured or
    returned something we could not parse.

    Not retried here; ``metadata`` names the operation and the provider id
    involved.
    """

    def __init__(
        self,
        error_code: str = "UPSTREAM_ERROR",
        message: str = "Video provider request failed",
        metadata: Optional[dict[str, Any]] = None,
        debug_message: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        if operation:
            metadata = metadata or {}
            metadata["operation"] = operation
        super().__init__(error_code, message, metadata, debug_message)


__all__ = [
    "BaseAppException",
    "ValidationException",
    "BusinessException",
    "InvalidStateException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "InternalServerException",
    "UpstreamServiceException",
]
