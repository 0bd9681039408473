"""Personal tasks owned by a single user."""

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import Field

from taskboard_service.models.base import BaseDocument


class PersonalTaskStatus(str, Enum):
    """Statuses offered for personal tasks.

    Stored statuses are free-form strings; these are the values the client
    offers, not a constraint.
    """

    IN_PROGRESS = "InProgress"
    DONE = "Done"
    PAUSED = "Paused"
    REVISION = "Revision"

    @classmethod
    def describe(cls) -> str:
        return "Free-form status, commonly one of: " + ", ".join(status.value for status in cls)


class PersonalTask(BaseDocument):
    """A task owned exclusively by the user who created it."""

    collection: ClassVar[str] = "personal_tasks"

    owner_username: str = Field(..., min_length=1, description="Username of the owning user")
    category: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1, description=PersonalTaskStatus.describe())
    time_until_finish: datetime = Field(..., description="Deadline")
    remind_me: datetime = Field(..., description="Reminder time")
