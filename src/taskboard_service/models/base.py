"""Base document model and common helpers."""

from datetime import datetime, timezone
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskboard_service.storage.base import new_document_id


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BaseDocument(BaseModel):
    """Base model for every persisted entity.

    Provides:
    - Store-generated identity and an optimistic-locking version
    - Creation and modification timestamps
    - Conversion to store documents (snake_case) and to API projections
      (camelCase, secret fields stripped)
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    # Store collection holding this entity
    collection: ClassVar[str]
    # Fields never exposed outside the service
    private_fields: ClassVar[set[str]] = set()
    # Fields the store keeps unique within the collection
    unique_fields: ClassVar[tuple[str, ...]] = ()

    id: str = Field(default_factory=new_document_id, description="Document identifier")
    version: int = Field(default=1, ge=1, description="Optimistic locking version")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp (ISO8601)")
    updated_at: datetime | None = Field(default=None, description="Last modification timestamp")

    def to_document(self) -> dict[str, Any]:
        """Convert to a JSON-compatible store document."""
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Self:
        """Build the model from a store document."""
        return cls.model_validate(document)

    def to_response(self) -> dict[str, Any]:
        """Public projection with camelCase keys and private fields removed."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude=self.private_fields | {"version"},
        )
