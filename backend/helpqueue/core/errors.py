"""Error Hierarchy — typed, categorized exceptions for all queue failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Business-rule errors are recoverable: the state machine converts them
      into failed OperationResults and never lets them escape
    - ConsistencyFault is never caught inside the core
    - to_response() produces the REST envelope used by the API error handlers
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    course_id: int | None = None
    question_id: int | None = None
    user_id: int | None = None
    debug_info: dict[str, Any] | None = None


class HelpQueueError(Exception):
    """Base exception for all help queue errors."""

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
                    "course_id": self.context.course_id,
                    "question_id": self.context.question_id,
                    "user_id": self.context.user_id,
                },
            }
        }


# ─── Validation Errors (400) ────────────────────────────────────

class QuestionValidationError(HelpQueueError):
    """Malformed or disallowed input fields — raised before any transaction."""
    def __init__(
        self, message: str, details: list[dict] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.details = details or []

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = self.details
        return response


# ─── Business Rule Errors (409) ─────────────────────────────────

class BusinessRuleError(HelpQueueError):
    """Expected rejection of a state-machine operation."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )


class QueueClosedError(BusinessRuleError):
    """Question submitted while the course queue is closed."""
    def __init__(self, course_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext(course_id=course_id)
        super().__init__("The queue is closed", "QUEUE_CLOSED", ctx)


class DoubleAddError(BusinessRuleError):
    """Student already has an open question in the course."""
    def __init__(
        self, student_user_id: int, course_id: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext(course_id=course_id, user_id=student_user_id)
        super().__init__("Student already has question", "DOUBLE_ADD", ctx)


class DoubleAnswerError(BusinessRuleError):
    """CA is already answering a question in the course."""
    def __init__(
        self, ca_user_id: int, course_id: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext(course_id=course_id, user_id=ca_user_id)
        super().__init__(
            f"CA {ca_user_id} is already answering a question",
            "DOUBLE_ANSWER", ctx,
        )


class ResourceNotFoundError(HelpQueueError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Internal / Infrastructure Errors (500-level) ───────────────

class ConsistencyFault(HelpQueueError):
    """Row diff produced an added, removed or nested field. Schema or pipeline bug."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Consistency error - {message}",
            "CONSISTENCY_FAULT", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )


class DatabaseError(HelpQueueError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
