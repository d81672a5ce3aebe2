"""Case record and its audit trail entries."""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from accuscene.models.base import Record, ValueModel, utc_now
from accuscene.models.enums import (
    CaseAuditAction,
    CasePriority,
    CaseStatus,
    EntityKind,
)


class FieldChange(ValueModel):
    """Single field-level difference recorded in the audit trail."""

    field: str
    old_value: Any = None
    new_value: Any = None


class CaseAuditEntry(ValueModel):
    """Append-only record of who did what to a case, and when."""

    action: CaseAuditAction
    timestamp: datetime = Field(default_factory=utc_now)
    actor_id: Optional[UUID] = None
    changes: List[FieldChange] = Field(default_factory=list)
    notes: Optional[str] = None


class Case(Record):
    """Top-level investigation record."""

    kind: ClassVar[EntityKind] = EntityKind.CASE

    case_number: Optional[str] = Field(
        None, description="Human readable number, generated as ACC-<year>-<5 digits> when absent"
    )
    title: str
    description: Optional[str] = None
    status: CaseStatus = CaseStatus.DRAFT
    priority: CasePriority = CasePriority.MEDIUM
    user_id: UUID = Field(..., description="Owning user")
    assigned_to: Optional[UUID] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    due_date: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    audit_log: List[CaseAuditEntry] = Field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return self.status in (CaseStatus.ARCHIVED, CaseStatus.CLOSED)

    @property
    def is_overdue(self) -> bool:
        from accuscene.domain.case_lifecycle import is_overdue

        return is_overdue(self)

    @property
    def days_open(self) -> int:
        from accuscene.domain.case_lifecycle import days_open

        return days_open(self)
