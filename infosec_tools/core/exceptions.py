"""
Application-wide exception hierarchy.

Services raise these; ``infosec_tools.utils.errors.register_error_handlers``
maps each type to one HTTP status so blueprints never build error
responses for business-rule failures themselves.

Usage:
    from infosec_tools.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Tracker", resource_id=42)
    raise ValidationError("name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Tracker", "Server").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is missing, malformed, or violates a business rule.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class AuthenticationError(Exception):
    """Raised when credentials are missing or wrong. Maps to HTTP 401."""

    def __init__(self, message: str = "Authentication required") -> None:
        self.message = message
        super().__init__(message)


class AuthorizationError(Exception):
    """Raised when the caller's role does not allow the operation. Maps to HTTP 403."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        self.message = message
        super().__init__(message)
