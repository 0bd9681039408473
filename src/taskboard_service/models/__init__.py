"""Data models for the taskboard service."""

from taskboard_service.models.base import BaseDocument, utcnow
from taskboard_service.models.groups import OTHER_COLUMN, Group, GroupTask, GroupTaskStatus
from taskboard_service.models.requests import (
    GroupCreate,
    GroupTaskCreate,
    LoginRequest,
    PersonalTaskCreate,
    PersonalTaskUpdate,
    RegisterRequest,
    StatusUpdate,
    TaskDeleteRequest,
    UserUpdateRequest,
)
from taskboard_service.models.tasks import PersonalTask, PersonalTaskStatus
from taskboard_service.models.users import User, UserRole

__all__ = [
    # Base
    "BaseDocument",
    "utcnow",
    # Entities
    "User",
    "UserRole",
    "PersonalTask",
    "PersonalTaskStatus",
    "Group",
    "GroupTask",
    "GroupTaskStatus",
    "OTHER_COLUMN",
    # Requests
    "RegisterRequest",
    "LoginRequest",
    "UserUpdateRequest",
    "PersonalTaskCreate",
    "PersonalTaskUpdate",
    "TaskDeleteRequest",
    "GroupCreate",
    "GroupTaskCreate",
    "StatusUpdate",
]
