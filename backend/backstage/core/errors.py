"""Error Hierarchy — every failure the API reports, declared as a class.

Invariants:
    - Each subclass pins code, category, severity and HTTP status as class attributes
    - to_response() is the only shape clients see: {"error": {code, message, ...}}
    - Messages are safe to show; driver and host details stay in the logs

Design Decisions:
    - Subclasses only override the constructor when the message is built from
      arguments (not found, file in use, media host)
    - `details` is free-form and reserved for payloads the client acts on,
      e.g. the `related` owners of a file that cannot be removed
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


class BackstageError(Exception):
    """Base for errors rendered through the API error envelope."""

    code: ClassVar[str] = "INTERNAL_ERROR"
    category: ClassVar[ErrorCategory] = ErrorCategory.INTERNAL
    severity: ClassVar[ErrorSeverity] = ErrorSeverity.CRITICAL
    http_status: ClassVar[int] = 500
    default_message: ClassVar[str] = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        resource: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.resource = resource
        self.resource_id = resource_id
        self.details = details
        self.timestamp = datetime.now(timezone.utc)

    def to_response(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.timestamp.isoformat(),
                "details": self.details if self.details is not None else {},
            }
        }


# ─── Client errors ──────────────────────────────────────────────

class RequestValidationFailed(BackstageError):
    """Body, query or path parameters failed schema validation."""
    code = "VALIDATION_ERROR"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING
    http_status = 400
    default_message = "Invalid request data"


class RequestRejectedError(BackstageError):
    """Well-formed request that breaks a domain rule."""
    code = "VALIDATION_ERROR"
    category = ErrorCategory.BUSINESS_RULE
    severity = ErrorSeverity.WARNING
    http_status = 400


class InvalidIdentifierError(BackstageError):
    code = "INVALID_ID"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING
    http_status = 400

    def __init__(self, value: str):
        super().__init__(f"Invalid identifier: '{value}'", resource_id=value)


class FileInUseError(BackstageError):
    """Upload still referenced by catalog documents."""
    code = "FILE_IN_USE"
    category = ErrorCategory.BUSINESS_RULE
    severity = ErrorSeverity.WARNING
    http_status = 400

    def __init__(self, file_id: str, related: list[dict]):
        super().__init__(
            "File is still referenced and cannot be removed",
            resource="UploadFile", resource_id=file_id, details={"related": related},
        )
        self.related = related


class UnsupportedFileError(BackstageError):
    code = "UNSUPPORTED_FILE"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING
    http_status = 400


class InvalidResetTokenError(BackstageError):
    code = "INVALID_RESET_TOKEN"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING
    http_status = 400
    default_message = "Invalid or expired token"


class AuthenticationError(BackstageError):
    code = "NOT_AUTHENTICATED"
    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.WARNING
    http_status = 401
    default_message = "Not authenticated"


class PermissionDeniedError(BackstageError):
    """Authenticated admin lacks the role or the approval."""
    code = "PERMISSION_DENIED"
    category = ErrorCategory.AUTHORIZATION
    severity = ErrorSeverity.WARNING
    http_status = 403
    default_message = "Permission denied"


class ResourceNotFoundError(BackstageError):
    code = "RESOURCE_NOT_FOUND"
    category = ErrorCategory.RESOURCE_NOT_FOUND
    severity = ErrorSeverity.ERROR
    http_status = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            resource=resource_type, resource_id=resource_id,
        )


class ConflictError(BackstageError):
    """Unique value already taken (admin email, slug)."""
    code = "CONFLICT"
    category = ErrorCategory.CONFLICT
    severity = ErrorSeverity.WARNING
    http_status = 409


# ─── Dependency failures ────────────────────────────────────────

class DatabaseError(BackstageError):
    code = "DATABASE_ERROR"
    category = ErrorCategory.DATABASE
    http_status = 503
    default_message = "Database unavailable"


class MediaHostError(BackstageError):
    """Cloudinary call failed."""
    code = "MEDIA_HOST_ERROR"
    category = ErrorCategory.EXTERNAL_API
    http_status = 502

    def __init__(self, operation: str, message: str):
        super().__init__(f"Media host {operation} failed: {message}")
        self.operation = operation


class EmailDeliveryError(BackstageError):
    code = "EMAIL_DELIVERY_ERROR"
    category = ErrorCategory.EXTERNAL_API
    http_status = 502

    def __init__(self, message: str):
        super().__init__(f"Email delivery failed: {message}")
