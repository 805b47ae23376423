"""
Platform-wide exception hierarchy.

Services raise these; ``fase.utils.errors.register_error_handlers`` maps
them once to HTTP status codes and the ``{success: false, error}``
envelope:

    AuthenticationRequired  → 401
    AuthorizationDenied     → 403
    NotFoundError           → 404
    ValidationError         → 400
    ConflictError           → 409

Usage:
    from fase.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="BigRock", resource_id=42)
    raise ValidationError("Title is required", details={"title": "..."})
"""


class AuthenticationRequired(Exception):
    """Raised when the request carries no valid identity."""

    def __init__(self, message: str = "No autenticado") -> None:
        super().__init__(message)


class AuthorizationDenied(Exception):
    """Raised when the requester is identified but not allowed to act.

    Args:
        message: Human-readable reason, returned to the client.
        user_id: The requester. Included in logs, not in the HTTP response.
    """

    def __init__(self, message: str = "No autorizado", user_id: int | None = None) -> None:
        self.user_id = user_id
        super().__init__(message)


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Args:
        resource: Human-readable model/entity name (e.g. "BigRock", "TAR").
        resource_id: The PK that was looked up.
        company_id: Optional, the company scope that was enforced.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        company_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.company_id = company_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if company_id is not None:
            msg += f" (company={company_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique row.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
