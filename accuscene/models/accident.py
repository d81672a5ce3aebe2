"""Accident record: the physical incident owned by a case."""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from accuscene.models.base import Record
from accuscene.models.enums import (
    AccidentSeverity,
    EntityKind,
    LightCondition,
    RoadCondition,
    WeatherCondition,
)


def derive_severity(injuries: int, fatalities: int) -> AccidentSeverity:
    """Classify an accident from its casualty counts."""
    if fatalities > 0:
        return AccidentSeverity.FATAL
    if injuries > 3:
        return AccidentSeverity.SEVERE
    if injuries > 0:
        return AccidentSeverity.MODERATE
    return AccidentSeverity.MINOR


class Accident(Record):
    """Incident description. Exactly one per case."""

    kind: ClassVar[EntityKind] = EntityKind.ACCIDENT

    case_id: UUID
    date_time: datetime
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    intersection: Optional[str] = None
    weather: WeatherCondition = WeatherCondition.CLEAR
    road_conditions: RoadCondition = RoadCondition.DRY
    light_conditions: LightCondition = LightCondition.DAYLIGHT
    temperature: Optional[float] = None
    speed_limit: Optional[int] = None
    road_type: Optional[str] = None
    number_of_lanes: Optional[int] = None
    traffic_signals_present: bool = False
    traffic_signs_present: bool = False
    description: Optional[str] = None
    police_report_number: Optional[str] = None
    responding_officer: Optional[str] = None
    injuries: int = 0
    fatalities: int = 0
    estimated_damage: Optional[Decimal] = None
    environmental_factors: List[str] = Field(default_factory=list)
    preliminary_conclusion: Optional[str] = None
    final_conclusion: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def severity(self) -> AccidentSeverity:
        return derive_severity(self.injuries, self.fatalities)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
