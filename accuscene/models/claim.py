"""Insurance claim record and its document, communication and payment logs."""

import math
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from accuscene.models.base import Record, ValueModel, utc_now
from accuscene.models.enums import (
    ClaimStatus,
    ClaimType,
    CommunicationType,
    EntityKind,
)

PENDING_STATUSES = frozenset([
    ClaimStatus.SUBMITTED,
    ClaimStatus.UNDER_REVIEW,
    ClaimStatus.ADDITIONAL_INFO_REQUIRED,
])

RESOLVED_STATUSES = frozenset([
    ClaimStatus.APPROVED,
    ClaimStatus.PARTIALLY_APPROVED,
    ClaimStatus.DENIED,
    ClaimStatus.SETTLED,
    ClaimStatus.CLOSED,
])

SECONDS_PER_DAY = 60 * 60 * 24


class ClaimDocument(ValueModel):
    name: str
    path: str
    type: str
    upload_date: datetime = Field(default_factory=utc_now)


class ClaimCommunication(ValueModel):
    date: datetime = Field(default_factory=utc_now)
    type: CommunicationType
    with_: str = Field(..., alias="with")
    summary: str
    follow_up_required: bool = False


class ClaimPayment(ValueModel):
    date: datetime = Field(default_factory=utc_now)
    amount: Decimal
    method: str
    check_number: Optional[str] = None
    notes: Optional[str] = None


class InsuranceClaim(Record):
    """Claim filed with an insurer for a case."""

    kind: ClassVar[EntityKind] = EntityKind.INSURANCE_CLAIM

    case_id: UUID
    claim_number: str = Field(..., description="Insurer's claim number")
    type: ClaimType
    insurer: str
    insurer_policy_number: Optional[str] = None
    policy_holder_name: Optional[str] = None
    claimant_name: Optional[str] = None
    claimant_phone: Optional[str] = None
    claimant_email: Optional[str] = None
    status: ClaimStatus = ClaimStatus.DRAFT
    amount: Decimal = Field(..., description="Claimed amount in USD")
    approved_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    deductible: Optional[Decimal] = None
    date_of_loss: Optional[datetime] = None
    filed_date: datetime = Field(default_factory=utc_now)
    submitted_date: Optional[datetime] = None
    review_start_date: Optional[datetime] = None
    decision_date: Optional[datetime] = None
    settlement_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    adjuster_name: Optional[str] = None
    adjuster_phone: Optional[str] = None
    adjuster_email: Optional[str] = None
    reference_number: Optional[str] = None
    description: Optional[str] = None
    denial_reason: Optional[str] = None
    notes: Optional[str] = None
    documents: List[ClaimDocument] = Field(default_factory=list)
    communications: List[ClaimCommunication] = Field(default_factory=list)
    payments: List[ClaimPayment] = Field(default_factory=list)
    requires_litigation: bool = False
    subrogate: bool = False
    attorney_name: Optional[str] = None
    attorney_phone: Optional[str] = None
    attorney_email: Optional[str] = None
    number_of_vehicles: int = 0
    number_of_injuries: int = 0
    total_loss: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_resolved(self) -> bool:
        return self.status in RESOLVED_STATUSES

    @property
    def outstanding_amount(self) -> Decimal:
        approved = self.approved_amount if self.approved_amount is not None else self.amount
        paid = self.paid_amount or Decimal("0")
        return max(Decimal("0"), approved - paid)

    @property
    def recovery_percentage(self) -> float:
        if not self.amount:
            return 0.0
        paid = self.paid_amount or Decimal("0")
        return float(paid / self.amount * 100)

    def days_in_review(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole days (rounded up) between review start and decision or ``now``."""
        if self.review_start_date is None:
            return None
        end = self.decision_date or now or utc_now()
        return _ceil_days(end - self.review_start_date)

    def days_since_filing(self, now: Optional[datetime] = None) -> int:
        end = self.closed_date or now or utc_now()
        return _ceil_days(end - self.filed_date)


def _ceil_days(delta) -> int:
    return math.ceil(abs(delta.total_seconds()) / SECONDS_PER_DAY)
