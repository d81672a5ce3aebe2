"""Repository for accidents, including location search and statistics."""

import math
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from accuscene.models import Accident, AccidentDetail, AccidentStatistics
from accuscene.models.enums import AccidentSeverity, EntityKind, WeatherCondition
from accuscene.repositories.base_repository import BaseRepository
from accuscene.storage.base import Storage

# Length of one degree of latitude
MILES_PER_DEGREE = 69.0


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Flat-earth distance in miles, scaling longitude by the cosine of ``lat1``.

    Accurate enough for the few-mile radii used to find nearby accidents.
    """
    dlat = (lat2 - lat1) * MILES_PER_DEGREE
    dlon = (lon2 - lon1) * MILES_PER_DEGREE * math.cos(math.radians(lat1))
    return math.hypot(dlat, dlon)


def vehicle_order(vehicle) -> int:
    return vehicle.vehicle_number or 0


async def build_accident_detail(storage: Storage, accident: Accident) -> AccidentDetail:
    """Assemble an accident together with everything attached to it."""
    def belongs(record) -> bool:
        return record.accident_id == accident.id

    vehicles = await storage.query(EntityKind.VEHICLE, belongs)
    witnesses = await storage.query(EntityKind.WITNESS, belongs)
    evidence = await storage.query(EntityKind.EVIDENCE, belongs)
    return AccidentDetail(
        accident=accident,
        vehicles=sorted(vehicles, key=vehicle_order),
        witnesses=sorted(witnesses, key=lambda witness: witness.created_at),
        evidence=sorted(evidence, key=lambda item: item.collected_at),
    )


def summarize_accidents(accidents: Iterable[Accident]) -> AccidentStatistics:
    """Fold accidents into counts and totals. Input order does not matter."""
    total = 0
    by_severity: Counter = Counter()
    by_weather: Counter = Counter()
    by_road: Counter = Counter()
    by_light: Counter = Counter()
    injuries = 0
    fatalities = 0
    damage = Decimal("0")
    with_report = 0

    for accident in accidents:
        total += 1
        by_severity[accident.severity.value] += 1
        by_weather[accident.weather.value] += 1
        by_road[accident.road_conditions.value] += 1
        by_light[accident.light_conditions.value] += 1
        injuries += accident.injuries
        fatalities += accident.fatalities
        damage += accident.estimated_damage or Decimal("0")
        if accident.police_report_number:
            with_report += 1

    return AccidentStatistics(
        total=total,
        by_severity=dict(by_severity),
        by_weather=dict(by_weather),
        by_road_condition=dict(by_road),
        by_light_condition=dict(by_light),
        total_injuries=injuries,
        total_fatalities=fatalities,
        total_estimated_damage=damage,
        with_police_report=with_report,
    )


class AccidentRepository(BaseRepository[Accident]):
    """Repository for Accident records.

    Provides lookups by case and police report, date/weather/severity
    filters, a radius search around a coordinate and aggregate statistics.
    """

    def __init__(self, storage: Storage, **kwargs):
        super().__init__(storage, Accident, **kwargs)

    async def get_by_case_id(self, case_id: UUID) -> Optional[Accident]:
        return await self.find_one(lambda accident: accident.case_id == case_id)

    async def get_by_police_report_number(self, report_number: str) -> Optional[Accident]:
        return await self.find_one(lambda accident: accident.police_report_number == report_number)

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Accident]:
        """Accidents that happened between ``start`` and ``end`` inclusive, latest first."""
        return await self.list(
            lambda accident: start <= accident.date_time <= end,
            key=lambda accident: accident.date_time,
        )

    async def list_by_weather(self, weather: WeatherCondition) -> List[Accident]:
        weather = WeatherCondition(weather)
        return await self.list(lambda accident: accident.weather == weather)

    async def list_by_severity(self, severity: AccidentSeverity) -> List[Accident]:
        severity = AccidentSeverity(severity)
        return await self.list(lambda accident: accident.severity == severity)

    async def list_within_radius(self, latitude: float, longitude: float, miles: float) -> List[Accident]:
        """Accidents with coordinates within ``miles`` of a point, nearest first.

        Args:
            latitude: Center latitude in degrees
            longitude: Center longitude in degrees
            miles: Search radius

        Returns:
            Matching accidents ordered by distance
        """
        def distance(accident: Accident) -> float:
            return distance_miles(latitude, longitude, accident.latitude, accident.longitude)

        return await self.list(
            lambda accident: accident.has_coordinates and distance(accident) <= miles,
            key=distance,
            reverse=False,
        )

    async def get_full_detail(self, accident_id: UUID) -> AccidentDetail:
        """Get an accident with its vehicles, witnesses and evidence.

        Raises:
            NotFoundError: If the accident does not exist
        """
        accident = await self.require(accident_id)
        return await build_accident_detail(self.storage, accident)

    async def get_statistics(self) -> AccidentStatistics:
        return summarize_accidents(await self.list())
