"""Vehicle record and scene positions."""

import math
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from accuscene.models.base import Record, ValueModel
from accuscene.models.enums import DamageSeverity, EntityKind, VehicleType


class Position(ValueModel):
    """Location on the scene diagram plus heading in degrees."""

    x: float
    y: float
    heading: float = 0.0


class Vehicle(Record):
    """Vehicle involved in an accident."""

    kind: ClassVar[EntityKind] = EntityKind.VEHICLE

    accident_id: UUID
    vehicle_number: Optional[int] = Field(
        None, description="Sequential within the accident; assigned on create when absent"
    )
    type: VehicleType = VehicleType.SEDAN
    make: str
    model: str
    year: int
    color: Optional[str] = None
    license_plate: Optional[str] = None
    license_plate_state: Optional[str] = None
    vin: Optional[str] = None
    driver_name: str
    driver_phone: Optional[str] = None
    driver_license: Optional[str] = None
    owner_name: Optional[str] = None
    insurance_company: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    initial_position: Optional[Position] = None
    final_position: Optional[Position] = None
    speed: Optional[float] = None
    estimated_speed: Optional[float] = None
    direction: Optional[float] = None
    damage_severity: DamageSeverity = DamageSeverity.NONE
    damage_areas: List[str] = Field(default_factory=list)
    estimated_damage: Optional[Decimal] = None
    airbag_deployed: bool = False
    seatbelt_used: bool = False
    driver_impaired: bool = False
    driver_distracted: bool = False
    driver_statement: Optional[str] = None
    occupants: int = 1
    injured_occupants: int = 0
    towed_from_scene: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def displacement(self) -> Optional[float]:
        """Straight-line distance between initial and final position."""
        if self.initial_position is None or self.final_position is None:
            return None
        return math.hypot(
            self.final_position.x - self.initial_position.x,
            self.final_position.y - self.initial_position.y,
        )

    @property
    def heading_change(self) -> Optional[float]:
        """Smallest signed rotation from initial to final heading, in (-180, 180]."""
        if self.initial_position is None or self.final_position is None:
            return None
        delta = (self.final_position.heading - self.initial_position.heading) % 360.0
        return delta - 360.0 if delta > 180.0 else delta

    @property
    def is_total_loss(self) -> bool:
        return self.damage_severity == DamageSeverity.TOTAL_LOSS

    @property
    def uninjured_occupants(self) -> int:
        return self.occupants - self.injured_occupants
