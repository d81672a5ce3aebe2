"""Aggregate reports produced by the repository layer."""

from decimal import Decimal
from typing import Dict

from pydantic import BaseModel, Field


class CaseStatistics(BaseModel):
    """Summary over a set of cases joined with their accidents."""

    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_weather: Dict[str, int] = Field(default_factory=dict)
    by_road_condition: Dict[str, int] = Field(default_factory=dict)
    total_injuries: int = 0
    total_fatalities: int = 0
    total_estimated_damage: Decimal = Decimal("0")
    overdue_count: int = 0
    unassigned_count: int = 0
    average_days_open: float = 0.0


class AccidentStatistics(BaseModel):
    """Summary over a set of accidents."""

    total: int = 0
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_weather: Dict[str, int] = Field(default_factory=dict)
    by_road_condition: Dict[str, int] = Field(default_factory=dict)
    by_light_condition: Dict[str, int] = Field(default_factory=dict)
    total_injuries: int = 0
    total_fatalities: int = 0
    total_estimated_damage: Decimal = Decimal("0")
    with_police_report: int = 0


class VehicleStatistics(BaseModel):
    """Summary over a set of vehicles."""

    total: int = 0
    by_damage_severity: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    total_occupants: int = 0
    total_injured_occupants: int = 0
    total_estimated_damage: Decimal = Decimal("0")
    total_loss_count: int = 0


class ClaimStatistics(BaseModel):
    """Summary over a set of insurance claims."""

    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    pending_count: int = 0
    resolved_count: int = 0
    total_claimed: Decimal = Decimal("0")
    total_approved: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_outstanding: Decimal = Decimal("0")
