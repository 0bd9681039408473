"""Service error taxonomy.

Every core operation either returns its value or raises one of these. The
HTTP layer maps ``status_code`` and ``message`` straight into the response
envelope.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic

from taskboard_service.storage import (
    DocumentNotFoundError,
    DuplicateKeyError,
    StoreError,
    VersionConflictError,
)

SchemaT = TypeVar("SchemaT", bound=pydantic.BaseModel)


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code = 500
    code = "SERVICE_ERROR"

    def __init__(self, message: str, details: Any = None) -> None:
        """
        Initialize the service error.

        Args:
            message: Human-readable error message.
            details: Optional structured context (field errors, lower-level text).
        """
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(ServiceError):
    """Missing or malformed required fields."""

    status_code = 400
    code = "VALIDATION_ERROR"


class Unauthenticated(ServiceError):
    """No credential was presented."""

    status_code = 403
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Token not provided", details: Any = None) -> None:
        super().__init__(message, details)


class InvalidCredentials(Unauthenticated):
    """Login failed.

    Raised identically for an unknown username and a wrong password.
    """

    status_code = 401
    code = "INVALID_CREDENTIALS"

    def __init__(self) -> None:
        super().__init__("Invalid username or password")


class InvalidToken(ServiceError):
    """The bearer token failed signature, expiry or shape checks."""

    status_code = 401
    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid token", details: Any = None) -> None:
        super().__init__(message, details)


class Forbidden(ServiceError):
    """Authenticated, but not entitled to the action."""

    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, action: str, resource: str) -> None:
        """
        Args:
            action: The action that was attempted.
            resource: The resource being accessed.
        """
        self.action = action
        self.resource = resource
        super().__init__(f"Not authorized to {action} {resource}")


class NotFound(ServiceError):
    """A resource addressed by id does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class Conflict(ServiceError):
    """Duplicate unique value, or a concurrent write won the race."""

    status_code = 409
    code = "CONFLICT"


class Internal(ServiceError):
    """Store failure or unexpected error."""

    status_code = 500
    code = "INTERNAL_ERROR"


def parse_request(schema: type[SchemaT], data: SchemaT | Mapping[str, Any]) -> SchemaT:
    """Validate request data against a schema.

    Accepts an already-validated schema instance unchanged.

    Raises:
        ValidationError: With per-field messages when validation fails
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        raise from_pydantic(e) from e


def from_pydantic(error: pydantic.ValidationError) -> ValidationError:
    """Convert a pydantic error into a service ValidationError."""
    fields = [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "body",
            "message": err["msg"],
        }
        for err in error.errors()
    ]
    names = ", ".join(f["field"] for f in fields)
    return ValidationError(f"Missing or invalid fields: {names}", details=fields)


def translate_store_error(error: StoreError, entity_type: str) -> ServiceError:
    """Map storage failures onto the service taxonomy."""
    if isinstance(error, DocumentNotFoundError):
        return NotFound(entity_type, error.document_id)
    if isinstance(error, DuplicateKeyError):
        return Conflict(f"{entity_type} {' or '.join(error.fields)} already in use", details=error.fields)
    if isinstance(error, VersionConflictError):
        return Conflict(f"{entity_type} was modified concurrently, retry the request")
    return Internal(f"Storage failure while handling {entity_type}", details=str(error))
