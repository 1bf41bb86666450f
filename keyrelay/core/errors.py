"""Error Hierarchy — typed, categorized exceptions for every keyrelay failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Capacity errors (TerminalQuotaError, AllTiersExhaustedError) map to 503
    - Upstream request errors keep the provider's own message (FatalRequestError)
    - to_response() produces the REST envelope; credentials never appear in it

Design Decisions:
    - Single hierarchy with KeyRelayError base: FastAPI global handler catches all
    - ErrorContext as dataclass: observability without coupling to logging
    - Transient upstream errors are NOT modelled here — they are absorbed by the
      retry executor and only surface wrapped as a terminal quota error
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
    CONFIGURATION = "configuration"
    QUOTA = "quota"
    EXTERNAL_API = "external_api"
    DATABASE = "database"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tier: str | None = None
    attempt: int | None = None
    credential_hint: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class KeyRelayError(Exception):
    """Base exception for all keyrelay errors."""

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
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "tier": self.context.tier,
                    "attempt": self.context.attempt,
                },
            }
        }


# ─── Configuration Errors ───────────────────────────────────────

class EmptyPoolError(KeyRelayError):
    """No credentials configured and no override present."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No API configuration found. Set an API key in Settings.",
            "EMPTY_CREDENTIAL_POOL", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )


# ─── Capacity Errors (503) ──────────────────────────────────────

SATURATED_MESSAGE = "service temporarily saturated, try again later"


class TerminalQuotaError(KeyRelayError):
    """A tier's attempt budget ran out while seeing only transient errors."""
    def __init__(
        self, attempts: int, tier: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.tier = tier
        ctx.attempt = attempts
        ctx.user_message = ctx.user_message or SATURATED_MESSAGE
        super().__init__(
            "all credentials/quota exhausted",
            "QUOTA_EXHAUSTED", ErrorCategory.QUOTA,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.attempts = attempts
        self.tier = tier


class AllTiersExhaustedError(KeyRelayError):
    """Every tier in a cascade ended with a terminal quota error."""
    def __init__(self, tiers: list[str], context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.debug_info = {"tiers": list(tiers)}
        super().__init__(
            SATURATED_MESSAGE,
            "ALL_TIERS_EXHAUSTED", ErrorCategory.QUOTA,
            ErrorSeverity.ERROR, ctx, 503,
        )
        self.tiers = list(tiers)


# ─── Request Errors ─────────────────────────────────────────────

class FatalRequestError(KeyRelayError):
    """Upstream rejected the request for a non-capacity reason."""
    def __init__(
        self,
        message: str,
        api_error_type: str = "client_error",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "FATAL_REQUEST_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.api_error_type = api_error_type


class RequestDeadlineError(KeyRelayError):
    """Caller-supplied wall-clock deadline elapsed before a result arrived."""
    def __init__(self, deadline_seconds: float, context: ErrorContext | None = None):
        super().__init__(
            f"Request did not complete within {deadline_seconds:g}s",
            "REQUEST_DEADLINE_EXCEEDED", ErrorCategory.TIMEOUT,
            ErrorSeverity.ERROR, context, 504,
        )
        self.deadline_seconds = deadline_seconds


# ─── Infrastructure Errors ──────────────────────────────────────

class DatabaseError(KeyRelayError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
