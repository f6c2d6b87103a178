"""Error Hierarchy: typed, categorized exceptions for all bookmark sync failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - ValidationError and UnauthenticatedError are raised before any backend call
    - BackendError.message is the provider's message, unmodified
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope

Design Decisions:
    - Single hierarchy with BookmarkSyncError base: FastAPI global handler catches all
    - DatabaseError extends BackendError: the SQL provider is one backend among others,
      its failures are backend failures to the view model
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EXTERNAL_API = "external_api"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    owner_id: str | None = None
    bookmark_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class BookmarkSyncError(Exception):
    """Base exception for all bookmark sync errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "owner_id": self.context.owner_id,
                    "bookmark_id": self.context.bookmark_id,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "severity": self.severity.value,
                "recoverable": self.severity in (
                    ErrorSeverity.INFO, ErrorSeverity.WARNING, ErrorSeverity.ERROR,
                ),
            },
        }


# ─── Local Errors (never reach the backend) ─────────────────────

class ValidationError(BookmarkSyncError):
    """Malformed URL or empty required field."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class UnauthenticatedError(BookmarkSyncError):
    """No identity at the time of a mutation intent."""
    def __init__(
        self,
        message: str = "You must be logged in to manage bookmarks",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ResourceNotFoundError(BookmarkSyncError):
    """Requested resource is not in the caller's view."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Backend Errors ─────────────────────────────────────────────

class BackendError(BookmarkSyncError):
    """Any failure returned by the capability provider."""
    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        code: str = "BACKEND_ERROR",
        category: ErrorCategory = ErrorCategory.EXTERNAL_API,
        http_status: int = 502,
    ):
        super().__init__(
            message, code, category, ErrorSeverity.ERROR, context, http_status,
        )


class DatabaseError(BackendError):
    """Database operation failed inside the SQL provider."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}", context,
            code="DATABASE_ERROR", category=ErrorCategory.DATABASE, http_status=503,
        )
        self.severity = ErrorSeverity.CRITICAL
        self.operation = operation
