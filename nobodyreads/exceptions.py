"""
Custom exception classes for nobodyreads.

Missing content is not an exception: stores return ``None`` and the HTTP
layer turns that into a 404. The classes below cover the cases that do
abort an operation (unknown ids on the admin surface, rejected input,
editor authentication, and a markdown engine that breaks its contract).
Storage errors are never wrapped; they propagate unchanged.
"""

import enum
from typing import Any

from fastapi import status


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes carried in error responses."""

    AUTH_FAILED = "AUTH_FAILED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_PAGE_NOT_FOUND = "RESOURCE_PAGE_NOT_FOUND"
    RESOURCE_REVISION_NOT_FOUND = "RESOURCE_REVISION_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    RENDER_FAILED = "RENDER_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class BlogError(Exception):
    """Base exception class for all nobodyreads exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Authentication
# ============================================================================


class AuthenticationError(BlogError):
    """Raised when an editor request lacks a valid token"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=ErrorCode.AUTH_FAILED,
        )


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(BlogError):
    """Base class for resource not found errors"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any | None = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
    ):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class PageNotFoundError(ResourceNotFoundError):
    """Raised when the admin surface addresses a page that does not exist"""

    def __init__(self, page_id: str | None = None):
        super().__init__(resource_type="Page", resource_id=page_id, error_code=ErrorCode.RESOURCE_PAGE_NOT_FOUND)


class RevisionNotFoundError(ResourceNotFoundError):
    """Raised when a site bundle revision does not exist for the tenant"""

    def __init__(self, revision_id: int | None = None):
        super().__init__(
            resource_type="Site bundle revision",
            resource_id=revision_id,
            error_code=ErrorCode.RESOURCE_REVISION_NOT_FOUND,
        )


# ============================================================================
# Validation & Rendering
# ============================================================================


class ValidationError(BlogError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.VALIDATION_FAILED,
            details=error_details,
        )


class MarkdownRenderError(BlogError):
    """Raised when the markdown engine does not return a string synchronously"""

    def __init__(self, message: str = "Unexpected async markdown rendering"):
        super().__init__(message=message, error_code=ErrorCode.RENDER_FAILED)
