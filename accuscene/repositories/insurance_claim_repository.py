"""Repository for insurance claims."""

from collections import Counter
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from accuscene.models import ClaimStatistics, InsuranceClaim
from accuscene.models.enums import ClaimStatus
from accuscene.repositories.base_repository import BaseRepository
from accuscene.storage.base import Storage


def summarize_claims(claims: Iterable[InsuranceClaim]) -> ClaimStatistics:
    total = 0
    by_status: Counter = Counter()
    by_type: Counter = Counter()
    pending = 0
    resolved = 0
    claimed = Decimal("0")
    approved = Decimal("0")
    paid = Decimal("0")
    outstanding = Decimal("0")

    for claim in claims:
        total += 1
        by_status[claim.status.value] += 1
        by_type[claim.type.value] += 1
        pending += claim.is_pending
        resolved += claim.is_resolved
        claimed += claim.amount
        approved += claim.approved_amount or Decimal("0")
        paid += claim.paid_amount or Decimal("0")
        outstanding += claim.outstanding_amount

    return ClaimStatistics(
        total=total,
        by_status=dict(by_status),
        by_type=dict(by_type),
        pending_count=pending,
        resolved_count=resolved,
        total_claimed=claimed,
        total_approved=approved,
        total_paid=paid,
        total_outstanding=outstanding,
    )


class InsuranceClaimRepository(BaseRepository[InsuranceClaim]):
    """Repository for InsuranceClaim records."""

    def __init__(self, storage: Storage, **kwargs):
        super().__init__(storage, InsuranceClaim, **kwargs)

    async def get_by_claim_number(self, claim_number: str) -> Optional[InsuranceClaim]:
        return await self.find_one(lambda claim: claim.claim_number == claim_number)

    async def list_by_case(self, case_id: UUID) -> List[InsuranceClaim]:
        return await self.list(lambda claim: claim.case_id == case_id)

    async def list_by_status(self, status: ClaimStatus) -> List[InsuranceClaim]:
        status = ClaimStatus(status)
        return await self.list(lambda claim: claim.status == status)

    async def list_pending(self) -> List[InsuranceClaim]:
        """Claims waiting on the insurer, oldest filing first."""
        return await self.list(
            lambda claim: claim.is_pending,
            key=lambda claim: claim.filed_date,
            reverse=False,
        )

    async def get_statistics(self, case_id: Optional[UUID] = None) -> ClaimStatistics:
        """Claim statistics, optionally limited to one case."""
        if case_id is None:
            claims = await self.list()
        else:
            claims = await self.list_by_case(case_id)
        return summarize_claims(claims)
