"""Witness record."""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from accuscene.models.base import Record
from accuscene.models.enums import EntityKind, WitnessReliability, WitnessType


class Witness(Record):
    """Person who gave a statement about an accident."""

    kind: ClassVar[EntityKind] = EntityKind.WITNESS

    accident_id: UUID
    name: str
    statement: str
    type: WitnessType = WitnessType.EYEWITNESS
    contact: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    age: Optional[int] = None
    occupation: Optional[str] = None
    statement_date: Optional[datetime] = None
    statement_taken_by: Optional[str] = None
    observed_details: Optional[str] = None
    witness_location: Optional[str] = None
    distance_from_accident: Optional[float] = Field(None, description="Feet from the point of impact")
    had_clear_view: bool = True
    view_obstructions: Optional[str] = None
    reliability: WitnessReliability = WitnessReliability.MODERATE
    reliability_notes: Optional[str] = None
    willing_to_testify: bool = False
    contacted_by_insurance: bool = False
    contacted_by_attorney: bool = False
    audio_recordings: List[str] = Field(default_factory=list)
    video_recordings: List[str] = Field(default_factory=list)
    photos: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def has_recordings(self) -> bool:
        return bool(self.audio_recordings or self.video_recordings)
