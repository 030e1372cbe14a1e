"""
Domain error kinds. Services raise these; main.py renders them as the
{success: false, message, errors?} envelope with the matching status code.
"""

from typing import Any, Optional


class AppError(Exception):
    status_code = 500
    default_message = "An internal error occurred. Please try again later."

    def __init__(self, message: Optional[str] = None, errors: Optional[list[dict]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str, value: Any = None) -> "ValidationError":
        entry = {"field": field, "message": message}
        if value is not None:
            entry["value"] = value
        return cls(errors=[entry])


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Access token is required"


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "The request conflicts with the current state of the resource"


class ServiceUnavailable(AppError):
    status_code = 503
    default_message = "AI content generation service is not available. Please configure an API key."


class InternalError(AppError):
    status_code = 500


def from_pydantic(exc, prefix: str = "") -> ValidationError:
    """Convert a pydantic ValidationError into field-level entries."""
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        if prefix:
            field = f"{prefix}.{field}" if field else prefix
        message = err.get("msg", "Invalid value")
        # pydantic prefixes custom ValueError messages
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field, "message": message})
    return ValidationError(errors=errors)
