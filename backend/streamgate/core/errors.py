"""Error Hierarchy — typed, categorized exceptions for all streamgate failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Request errors (400-level) are recoverable; bootstrap errors are fatal
    - to_response() produces the single REST error envelope used by every layer
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with GatewayError base: error boundary catches all
    - ErrorContext as dataclass: observability fields without coupling to logging
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
    SECURITY = "security"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    BOOTSTRAP = "bootstrap"
    BACKGROUND_JOB = "background_job"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    path: str | None = None
    job_name: str | None = None
    attempt: int | None = None
    debug_info: dict[str, Any] | None = None


class GatewayError(Exception):
    """Base exception for all streamgate errors."""

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
                "path": self.context.path,
            }
        }


# ─── Request Errors (400-level) ─────────────────────────────────

class MalformedBodyError(GatewayError):
    """Request body could not be parsed for its declared content type."""
    def __init__(self, message: str, content_type: str, context: ErrorContext | None = None):
        super().__init__(
            message, "MALFORMED_BODY", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.content_type = content_type


class PayloadTooLargeError(GatewayError):
    """Request body exceeded the configured limit."""
    def __init__(self, limit_bytes: int, context: ErrorContext | None = None):
        super().__init__(
            f"Request body exceeds {limit_bytes} bytes",
            "PAYLOAD_TOO_LARGE", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 413,
        )
        self.limit_bytes = limit_bytes


class CorsRejectedError(GatewayError):
    """Cross-origin preflight failed the configured policy."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cross-origin request rejected: {reason}",
            "CORS_REJECTED", ErrorCategory.SECURITY,
            ErrorSeverity.WARNING, context, 400,
        )


class ResourceNotFoundError(GatewayError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(GatewayError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class MigrationError(GatewayError):
    """Schema migration job failed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Migration failed: {message}",
            "MIGRATION_FAILED", ErrorCategory.BACKGROUND_JOB,
            ErrorSeverity.ERROR, context, 500,
        )


class StreamSourceError(GatewayError):
    """Upstream message stream could not be read."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Stream source error: {message}",
            "STREAM_SOURCE_ERROR", ErrorCategory.BACKGROUND_JOB,
            ErrorSeverity.WARNING, context, 502,
        )


# ─── Bootstrap Errors (fatal) ───────────────────────────────────

class StorageConnectionError(GatewayError):
    """Persistent store did not become reachable during startup."""
    def __init__(self, message: str, attempts: int, context: ErrorContext | None = None):
        super().__init__(
            f"Storage connection failed after {attempts} attempt(s): {message}",
            "STORAGE_CONNECTION_FAILED", ErrorCategory.BOOTSTRAP,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.attempts = attempts


class ListenerBindError(GatewayError):
    """Listener could not bind the configured address."""
    def __init__(self, host: str, port: int, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot bind {host}:{port}: {reason}",
            "LISTENER_BIND_FAILED", ErrorCategory.BOOTSTRAP,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.host = host
        self.port = port


class InvalidPhaseTransitionError(GatewayError):
    """Bootstrap sequencer was asked to move out of order."""
    def __init__(self, current: str, requested: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot move bootstrap from '{current}' to '{requested}'",
            "INVALID_PHASE_TRANSITION", ErrorCategory.BOOTSTRAP,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.current = current
        self.requested = requested
