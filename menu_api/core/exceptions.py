"""
Application Exceptions

Every failure the API reports to a client is an AppError carrying the HTTP
status it maps to. Handlers registered in main.py turn these into the
standard envelope:

    {"success": false, "message": "...", "errors": ["..."]}
"""

from typing import Optional

from pydantic import ValidationError


class AppError(Exception):
    """Base error with an HTTP status and a client-facing message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[str]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to the response envelope."""
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class InvalidInputError(AppError):
    """Missing or malformed fields, out-of-range values."""
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "InvalidInputError":
        """Flatten a pydantic error into human-readable strings."""
        return cls("Validation failed", errors=format_validation_errors(error.errors()))


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Access denied. Insufficient permissions."


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class PayloadTooLargeError(AppError):
    status_code = 413
    default_message = "Request body too large"


class TooManyRequestsError(AppError):
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int, message: Optional[str] = None):
        super().__init__(message, headers={"Retry-After": str(retry_after)})
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryAfter"] = self.retry_after
        return body


class InternalError(AppError):
    status_code = 500


class OperationTimeoutError(InternalError):
    default_message = "Database operation timeout"


def format_validation_errors(items: list[dict]) -> list[str]:
    """
    Render pydantic error dicts as "field: message" strings.

    Body/query prefixes added by FastAPI are dropped from the location.
    """
    messages = []
    for item in items:
        loc = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path")]
        msg = item.get("msg", "Invalid value")
        # Custom validators raise ValueError; pydantic prefixes the message
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return messages
