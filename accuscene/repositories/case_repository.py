"""Repository for investigation cases."""

from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from accuscene.domain.case_lifecycle import days_open, is_overdue
from accuscene.models import Accident, Case, CaseDetail, CaseStatistics, utc_now
from accuscene.models.enums import CasePriority, CaseStatus, EntityKind
from accuscene.repositories.accident_repository import build_accident_detail
from accuscene.repositories.base_repository import BaseRepository
from accuscene.storage.base import Storage


def summarize_cases(
    cases: Iterable[Case],
    accidents_by_case: Mapping[UUID, Accident],
    now: Optional[datetime] = None,
) -> CaseStatistics:
    """Fold cases, joined with their accidents, into counts and totals.

    Args:
        cases: Cases to summarize
        accidents_by_case: Accident of each case, keyed by case id
        now: Reference time for overdue and days-open figures

    Returns:
        CaseStatistics that does not depend on the order of ``cases``
    """
    now = now or utc_now()
    total = 0
    by_status: Counter = Counter()
    by_priority: Counter = Counter()
    by_severity: Counter = Counter()
    by_weather: Counter = Counter()
    by_road: Counter = Counter()
    injuries = 0
    fatalities = 0
    damage = Decimal("0")
    overdue = 0
    unassigned = 0
    open_days = 0

    for case in cases:
        total += 1
        by_status[case.status.value] += 1
        by_priority[case.priority.value] += 1
        if is_overdue(case, now):
            overdue += 1
        if case.assigned_to is None:
            unassigned += 1
        open_days += days_open(case, now)

        accident = accidents_by_case.get(case.id)
        if accident is None:
            continue
        by_severity[accident.severity.value] += 1
        by_weather[accident.weather.value] += 1
        by_road[accident.road_conditions.value] += 1
        injuries += accident.injuries
        fatalities += accident.fatalities
        damage += accident.estimated_damage or Decimal("0")

    return CaseStatistics(
        total=total,
        by_status=dict(by_status),
        by_priority=dict(by_priority),
        by_severity=dict(by_severity),
        by_weather=dict(by_weather),
        by_road_condition=dict(by_road),
        total_injuries=injuries,
        total_fatalities=fatalities,
        total_estimated_damage=damage,
        overdue_count=overdue,
        unassigned_count=unassigned,
        average_days_open=open_days / total if total else 0.0,
    )


class CaseRepository(BaseRepository[Case]):
    """Repository for Case records.

    Provides lookups by number, owner and assignee, status/priority/tag
    filters, overdue detection, the full case tree and statistics.
    """

    def __init__(self, storage: Storage, **kwargs):
        super().__init__(storage, Case, **kwargs)

    async def get_by_case_number(self, case_number: str) -> Optional[Case]:
        return await self.find_one(lambda case: case.case_number == case_number)

    async def list_by_status(self, statuses: Sequence[CaseStatus]) -> List[Case]:
        """Cases whose status is any of ``statuses``."""
        if isinstance(statuses, (str, CaseStatus)):
            statuses = [statuses]
        wanted = {CaseStatus(status) for status in statuses}
        return await self.list(lambda case: case.status in wanted)

    async def list_by_priority(self, priority: CasePriority) -> List[Case]:
        priority = CasePriority(priority)
        return await self.list(lambda case: case.priority == priority)

    async def list_by_user(self, user_id: UUID) -> List[Case]:
        return await self.list(lambda case: case.user_id == user_id)

    async def list_by_assignee(self, user_id: UUID) -> List[Case]:
        return await self.list(lambda case: case.assigned_to == user_id)

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[Case]:
        """Cases created between ``start`` and ``end`` inclusive."""
        return await self.list(lambda case: start <= case.created_at <= end)

    async def list_by_tag(self, tag: str) -> List[Case]:
        return await self.list(lambda case: tag in case.tags)

    async def list_overdue(self, now: Optional[datetime] = None) -> List[Case]:
        """Open cases past their due date, most overdue first."""
        now = now or utc_now()
        return await self.list(
            lambda case: is_overdue(case, now),
            key=lambda case: case.due_date,
            reverse=False,
        )

    async def get_full_detail(self, case_id: UUID) -> CaseDetail:
        """Get a case with its accident subtree and claims.

        Raises:
            NotFoundError: If the case does not exist
        """
        case = await self.require(case_id)
        accidents = await self.storage.query(EntityKind.ACCIDENT, lambda accident: accident.case_id == case_id)
        claims = await self.storage.query(EntityKind.INSURANCE_CLAIM, lambda claim: claim.case_id == case_id)

        accident_detail = None
        if accidents:
            accident_detail = await build_accident_detail(self.storage, accidents[0])

        return CaseDetail(
            case=case,
            accident=accident_detail,
            claims=sorted(claims, key=lambda claim: claim.filed_date),
        )

    async def get_statistics(self, now: Optional[datetime] = None) -> CaseStatistics:
        cases = await self.list()
        accidents = await self.storage.query(EntityKind.ACCIDENT)
        accidents_by_case = {accident.case_id: accident for accident in accidents}
        return summarize_cases(cases, accidents_by_case, now)
