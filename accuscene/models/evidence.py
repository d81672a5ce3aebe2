"""Evidence record with its chain of custody."""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from accuscene.models.base import Record, ValueModel, utc_now
from accuscene.models.enums import (
    CustodyStatus,
    EntityKind,
    EvidenceSource,
    EvidenceType,
)

MEDIA_TYPES = frozenset([EvidenceType.PHOTO, EvidenceType.VIDEO, EvidenceType.AUDIO])


class CustodyEntry(ValueModel):
    """One hand-over in the chain of custody."""

    date: datetime = Field(default_factory=utc_now)
    from_: str = Field(..., alias="from")
    to: str
    reason: str
    signature: Optional[str] = None


class Evidence(Record):
    """Physical or digital evidence attached to an accident."""

    kind: ClassVar[EntityKind] = EntityKind.EVIDENCE

    accident_id: UUID
    evidence_number: Optional[str] = Field(
        None, description="Tracking number, generated as EV-<year>-<6 digits>-<3 digits> when absent"
    )
    type: EvidenceType
    source: EvidenceSource = EvidenceSource.SCENE
    description: str
    collected_by: str
    collected_at: datetime = Field(default_factory=utc_now)
    collection_location: Optional[str] = None
    collection_method: Optional[str] = None
    custody_status: CustodyStatus = CustodyStatus.COLLECTED
    current_custodian: Optional[str] = None
    storage_location: Optional[str] = None
    chain_of_custody: List[CustodyEntry] = Field(default_factory=list)
    is_original: bool = True
    copy_number: int = 1
    original_evidence_id: Optional[UUID] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    file_hash: Optional[str] = None
    analysis_notes: Optional[str] = None
    findings: Optional[str] = None
    analyzed_date: Optional[datetime] = None
    analyzed_by: Optional[str] = None
    is_admissible: bool = True
    admissibility_notes: Optional[str] = None
    priority: Optional[int] = Field(None, description="1-5, with 5 being highest")
    requires_expert_analysis: bool = False
    expert_assigned: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    related_vehicles: List[int] = Field(default_factory=list)
    related_witnesses: List[UUID] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_media(self) -> bool:
        return self.type in MEDIA_TYPES

    @property
    def is_digital(self) -> bool:
        return bool(self.file_path)

    @property
    def has_been_analyzed(self) -> bool:
        return self.analyzed_date is not None

    @property
    def file_size_mb(self) -> Optional[float]:
        return self.file_size / (1024 * 1024) if self.file_size else None
