"""User accounts."""

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import Field

from taskboard_service.models.base import BaseDocument, utcnow


class UserRole(str, Enum):
    """Service-wide user roles."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class User(BaseDocument):
    """A registered user.

    Usernames and emails are unique across the service; the store enforces
    both at write time.
    """

    collection: ClassVar[str] = "users"
    private_fields: ClassVar[set[str]] = {"password_hash"}
    unique_fields: ClassVar[tuple[str, ...]] = ("username", "email")

    username: str = Field(..., min_length=1, description="Unique login handle")
    email: str = Field(..., min_length=3, description="Unique email address")
    password_hash: str = Field(..., min_length=1, description="bcrypt hash of the password")
    role: UserRole = Field(default=UserRole.USER, description="Service-wide role")
    last_login_at: datetime | None = Field(default=None, description="Last successful login")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def record_login(self) -> None:
        """Record a login event."""
        self.last_login_at = utcnow()
