"""Domain errors.

Every error raised by the services is an ``OVRError``. The API layer maps
them to JSON uniformly through a single exception handler, so services never
raise ``HTTPException`` themselves.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError


class OVRError(Exception):
    """Base class for domain errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an error response body."""
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(OVRError):
    """Payload shape or domain rule violation."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(OVRError):
    """Entity does not exist or is not visible to the caller."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", details: Any = None) -> None:
        super().__init__(f"{resource} not found", details)
        self.resource = resource


class AuthorizationError(OVRError):
    """Entity is visible but the operation is not allowed."""

    status_code = 403
    code = "AUTHORIZATION_ERROR"


def validation_error_from_pydantic(
    exc: PydanticValidationError,
    message: str = "Invalid request data",
    prefix: str | None = None,
) -> ValidationError:
    """Convert a pydantic error into a ValidationError with field paths.

    Args:
        exc: Pydantic validation error
        message: Top-level error message
        prefix: Optional path prefix (e.g. ``data``)

    Returns:
        ValidationError whose details list ``{"path", "message"}`` entries
    """
    details = []
    for error in exc.errors():
        parts = [str(part) for part in error.get("loc", ())]
        if prefix:
            parts.insert(0, prefix)
        details.append({"path": ".".join(parts), "message": error.get("msg", "")})
    return ValidationError(message, details)
