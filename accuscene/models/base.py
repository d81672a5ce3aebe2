"""Base class shared by every persisted record.

Records are immutable pydantic models. Operations never mutate a record in
place; they return an updated copy built with ``model_copy(update=...)``.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from accuscene.models.enums import EntityKind

RecordT = TypeVar("RecordT", bound="Record")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class ValueModel(BaseModel):
    """Frozen value object embedded inside a record (log entries, positions)."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, value: Any) -> Any:
        """Read naive datetimes as UTC so every stored timestamp is comparable."""
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Record(ValueModel):
    """Base record with identity, timestamps and an optimistic-lock version."""

    kind: ClassVar[EntityKind]

    id: UUID = Field(default_factory=uuid4, description="Opaque unique identifier")
    version: int = Field(default=0, description="Incremented on every persisted write")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="before")
    @classmethod
    def _default_null_collections(cls, data: Any) -> Any:
        """Treat an explicit ``None`` for a list/dict field as "use the empty default"."""
        if not isinstance(data, dict):
            return data
        nulls = [
            name
            for name, field in cls.model_fields.items()
            if field.default_factory in (list, dict) and name in data and data[name] is None
        ]
        if not nulls:
            return data
        return {key: value for key, value in data.items() if key not in nulls}

    def touched(self: RecordT, now: datetime | None = None, **changes: Any) -> RecordT:
        """Return a copy with ``changes`` applied and ``updated_at`` refreshed."""
        changes["updated_at"] = now or utc_now()
        return self.model_copy(update=changes)
