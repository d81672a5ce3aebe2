"""Repository for vehicles involved in accidents."""

from collections import Counter
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from accuscene.models import Vehicle, VehicleStatistics
from accuscene.repositories.accident_repository import vehicle_order
from accuscene.repositories.base_repository import BaseRepository
from accuscene.storage.base import Storage


def summarize_vehicles(vehicles: Iterable[Vehicle]) -> VehicleStatistics:
    total = 0
    by_damage: Counter = Counter()
    by_type: Counter = Counter()
    occupants = 0
    injured = 0
    damage = Decimal("0")
    total_losses = 0

    for vehicle in vehicles:
        total += 1
        by_damage[vehicle.damage_severity.value] += 1
        by_type[vehicle.type.value] += 1
        occupants += vehicle.occupants
        injured += vehicle.injured_occupants
        damage += vehicle.estimated_damage or Decimal("0")
        if vehicle.is_total_loss:
            total_losses += 1

    return VehicleStatistics(
        total=total,
        by_damage_severity=dict(by_damage),
        by_type=dict(by_type),
        total_occupants=occupants,
        total_injured_occupants=injured,
        total_estimated_damage=damage,
        total_loss_count=total_losses,
    )


class VehicleRepository(BaseRepository[Vehicle]):
    """Repository for Vehicle records."""

    def __init__(self, storage: Storage, **kwargs):
        super().__init__(storage, Vehicle, **kwargs)

    async def list_by_accident(self, accident_id: UUID) -> List[Vehicle]:
        """Vehicles of one accident in vehicle-number order."""
        return await self.list(
            lambda vehicle: vehicle.accident_id == accident_id,
            key=vehicle_order,
            reverse=False,
        )

    async def get_by_license_plate(self, license_plate: str) -> Optional[Vehicle]:
        return await self.find_one(lambda vehicle: vehicle.license_plate == license_plate)

    async def get_by_vin(self, vin: str) -> Optional[Vehicle]:
        return await self.find_one(lambda vehicle: vehicle.vin == vin)

    async def list_by_make_model(self, make: str, model: Optional[str] = None) -> List[Vehicle]:
        """Vehicles by make and optionally model, compared case-insensitively."""
        make = make.lower()
        model = model.lower() if model else None

        def matches(vehicle: Vehicle) -> bool:
            if vehicle.make.lower() != make:
                return False
            return model is None or vehicle.model.lower() == model

        return await self.list(matches)

    async def next_vehicle_number(self, accident_id: UUID) -> int:
        """One past the highest vehicle number used in the accident."""
        vehicles = await self.list_by_accident(accident_id)
        return max((vehicle_order(vehicle) for vehicle in vehicles), default=0) + 1

    async def get_statistics(self, accident_id: Optional[UUID] = None) -> VehicleStatistics:
        """Vehicle statistics, optionally limited to one accident."""
        if accident_id is None:
            vehicles = await self.list()
        else:
            vehicles = await self.list_by_accident(accident_id)
        return summarize_vehicles(vehicles)
