"""Request schemas for every write operation.

Each schema validates the complete shape of a request body before it reaches
core logic. Unknown fields are rejected and string fields are strict, so a
number sent as a task name fails validation instead of being coerced.
Field names accept the camelCase wire form, the snake_case Python form and
the legacy names still sent by older clients.
"""

from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    StringConstraints,
    field_validator,
    model_validator,
)

from taskboard_service.models.tasks import PersonalTaskStatus
from taskboard_service.models.users import UserRole
from taskboard_service.utils.validators import validate_email, validate_username

NonEmptyStr = Annotated[StrictStr, StringConstraints(strip_whitespace=True, min_length=1)]


class RequestSchema(BaseModel):
    """Base for request bodies."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def provided(self) -> dict[str, Any]:
        """Fields explicitly present in the request, JSON-compatible."""
        return self.model_dump(mode="json", exclude_unset=True)


class PartialUpdate(RequestSchema):
    """Base for partial updates: at least one field must be present."""

    @model_validator(mode="after")
    def require_some_field(self) -> "PartialUpdate":
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} must not be null")
        return self


def _check_username(v: str) -> str:
    if not validate_username(v):
        raise ValueError("must be 2-64 letters, digits, dots, hyphens or underscores")
    return v


def _check_email(v: str) -> str:
    if not validate_email(v):
        raise ValueError("is not a valid email address")
    return v.lower()


class RegisterRequest(RequestSchema):
    """POST /register."""

    username: NonEmptyStr
    password: NonEmptyStr
    email: NonEmptyStr = Field(validation_alias=AliasChoices("email", "gmail"))
    role: UserRole = Field(default=UserRole.USER, validation_alias=AliasChoices("role", "rol"))

    check_username_format = field_validator("username")(_check_username)
    check_email_format = field_validator("email")(_check_email)


class LoginRequest(RequestSchema):
    """POST /validate."""

    username: NonEmptyStr
    password: NonEmptyStr


class UserUpdateRequest(PartialUpdate):
    """PUT /users/{id}: every field independently optional."""

    username: NonEmptyStr | None = None
    email: NonEmptyStr | None = Field(default=None, validation_alias=AliasChoices("email", "gmail"))
    role: UserRole | None = Field(default=None, validation_alias=AliasChoices("role", "rol"))
    password: NonEmptyStr | None = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str | None) -> str | None:
        return _check_username(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        return _check_email(v) if v is not None else v


class PersonalTaskCreate(RequestSchema):
    """POST /tasks: all fields required."""

    category: NonEmptyStr
    description: NonEmptyStr
    name: NonEmptyStr = Field(validation_alias=AliasChoices("name", "nameTask", "name_task"))
    status: NonEmptyStr = Field(description=PersonalTaskStatus.describe())
    time_until_finish: datetime = Field(
        validation_alias=AliasChoices("timeUntilFinish", "time_until_finish"),
    )
    remind_me: datetime = Field(validation_alias=AliasChoices("remindMe", "remind_me"))


class PersonalTaskUpdate(PartialUpdate):
    """PUT /tasks/{id}."""

    category: NonEmptyStr | None = None
    description: NonEmptyStr | None = None
    name: NonEmptyStr | None = Field(default=None, validation_alias=AliasChoices("name", "nameTask", "name_task"))
    status: NonEmptyStr | None = Field(default=None, description=PersonalTaskStatus.describe())
    time_until_finish: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("timeUntilFinish", "time_until_finish"),
    )
    remind_me: datetime | None = Field(default=None, validation_alias=AliasChoices("remindMe", "remind_me"))


class TaskDeleteRequest(RequestSchema):
    """DELETE /tasks with the id in the body."""

    id: NonEmptyStr


class GroupCreate(RequestSchema):
    """POST /groups."""

    name: NonEmptyStr = Field(validation_alias=AliasChoices("name", "groupName"))
    description: NonEmptyStr
    member_ids: list[NonEmptyStr] = Field(
        min_length=1,
        validation_alias=AliasChoices("memberIds", "member_ids", "members"),
    )

    @field_validator("member_ids")
    @classmethod
    def dedupe_members(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class GroupTaskCreate(RequestSchema):
    """POST /groups/{groupId}/groupTasks."""

    name: NonEmptyStr
    description: NonEmptyStr
    assigned_to_user_id: NonEmptyStr = Field(
        validation_alias=AliasChoices("assignedToUserId", "assigned_to_user_id", "assignedTo"),
    )
    status: NonEmptyStr


class StatusUpdate(RequestSchema):
    """PUT /groups/{groupId}/groupTasks/{taskId}/status."""

    status: NonEmptyStr
