"""Core business logic: principals, authorization and the task/group services."""

from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.errors import (
    Conflict,
    Forbidden,
    Internal,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    ServiceError,
    Unauthenticated,
    ValidationError,
)
from taskboard_service.core.guard import AccessPolicy, Action, AuthorizationGuard
from taskboard_service.core.principal import IdentityForm, Principal, PrincipalResolver

__all__ = [
    "ServiceContainer",
    # Errors
    "ServiceError",
    "ValidationError",
    "Unauthenticated",
    "InvalidCredentials",
    "InvalidToken",
    "Forbidden",
    "NotFound",
    "Conflict",
    "Internal",
    # Authorization
    "AccessPolicy",
    "Action",
    "AuthorizationGuard",
    "IdentityForm",
    "Principal",
    "PrincipalResolver",
]
