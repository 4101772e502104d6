"""
Platform-wide exception hierarchy.

Every service raises one of these four types for expected failures; the
blueprint layer maps them to HTTP status codes once (see
``techledger.blueprints.register_error_handlers``) so callers always get the
same structured error body.

    NotFoundError    → 404  referenced entity or junction pair does not exist
    ValidationError  → 400  malformed input, rejected before any write
    ConflictError    → 409  unique constraint violated on write
    DatabaseError    → 500  unexpected datastore fault, always wrapped

Usage:
    from techledger.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Role", resource_id=42)
    raise ValidationError("Invalid role data", details={"name": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested entity or junction row does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Role", "RoleTask").
        resource_id: The id (or composite key description) that was looked up.
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
    """Raised when input fails validation in the service layer.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write would violate a uniqueness constraint.

    Args:
        resource: Model name.
        field: The unique field (or field pair) that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value=None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class DatabaseError(Exception):
    """Wraps an unexpected datastore fault so driver exceptions never leak.

    Args:
        message: Operation that failed, for logs and the API response.
        original: The underlying SQLAlchemy / driver exception.
    """

    def __init__(self, message: str, original: Exception | None = None) -> None:
        self.original = original
        super().__init__(message)
