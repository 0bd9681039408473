"""Groups and the tasks that move across their boards."""

from enum import Enum
from typing import ClassVar

from pydantic import Field, field_validator

from taskboard_service.models.base import BaseDocument

# Column for statuses outside the board
OTHER_COLUMN = "other"


class GroupTaskStatus(str, Enum):
    """Board columns, in workflow order."""

    TODO = "ToDo"
    IN_PROGRESS = "InProgress"
    DONE = "Done"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]

    @classmethod
    def column_for(cls, status: str) -> str:
        """Board column of a status; free-form statuses share the other column."""
        return status if status in cls.values() else OTHER_COLUMN


class Group(BaseDocument):
    """A set of users collaborating on group tasks.

    Membership is fixed at creation. ``member_ids`` has set semantics:
    duplicates are collapsed and order carries no meaning.
    """

    collection: ClassVar[str] = "groups"

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    member_ids: list[str] = Field(..., min_length=1, description="Ids of member users")
    created_by_user_id: str = Field(..., min_length=1, description="Id of the creating user")

    @field_validator("member_ids")
    @classmethod
    def dedupe_members(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    def has_member(self, user_id: str) -> bool:
        return user_id in self.member_ids or user_id == self.created_by_user_id


class GroupTask(BaseDocument):
    """A task scoped to a group and assigned to one user."""

    collection: ClassVar[str] = "group_tasks"

    group_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    assigned_to_user_id: str = Field(..., min_length=1)
    created_by_user_id: str = Field(..., min_length=1)
