"""Insurance claim status state machine and claim ledger operations."""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from accuscene.core.exceptions import ValidationError
from accuscene.models import (
    ClaimCommunication,
    ClaimDocument,
    ClaimPayment,
    InsuranceClaim,
    utc_now,
)
from accuscene.models.enums import ClaimStatus, CommunicationType

# Status -> timestamp field stamped the first time the claim enters it
STATUS_TIMESTAMPS: Dict[ClaimStatus, str] = {
    ClaimStatus.SUBMITTED: "submitted_date",
    ClaimStatus.UNDER_REVIEW: "review_start_date",
    ClaimStatus.APPROVED: "decision_date",
    ClaimStatus.PARTIALLY_APPROVED: "decision_date",
    ClaimStatus.DENIED: "decision_date",
    ClaimStatus.SETTLED: "settlement_date",
    ClaimStatus.CLOSED: "closed_date",
}


def transition_claim_status(
    claim: InsuranceClaim,
    new_status: ClaimStatus,
    now: Optional[datetime] = None,
) -> InsuranceClaim:
    """Move a claim to ``new_status`` and stamp its milestone timestamp.

    The timestamp for a status is only written when it is still unset, so
    repeating a transition leaves the original time in place.

    Args:
        claim: Current claim value
        new_status: Requested status
        now: Transition time, defaults to the current UTC time

    Returns:
        Updated claim
    """
    now = now or utc_now()
    new_status = ClaimStatus(new_status)
    update = {"status": new_status, "updated_at": now}

    stamp_field = STATUS_TIMESTAMPS.get(new_status)
    if stamp_field and getattr(claim, stamp_field) is None:
        update[stamp_field] = now

    return claim.model_copy(update=update)


def record_payment(
    claim: InsuranceClaim,
    amount: Decimal,
    method: str,
    check_number: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> InsuranceClaim:
    """Append a payment and add it to ``paid_amount``.

    A payment that would take the paid total above the approved amount is
    rejected rather than clamped.

    Raises:
        ValidationError: If the amount is not positive, the method is blank,
            or the approved amount would be exceeded
    """
    try:
        amount = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValidationError("amount", f"'{amount}' is not a valid amount") from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("amount", "Payment amount must be greater than zero")
    if not method or not method.strip():
        raise ValidationError("method", "Payment method is required")

    paid = (claim.paid_amount or Decimal("0")) + amount
    if claim.approved_amount is not None and paid > claim.approved_amount:
        raise ValidationError(
            "amount",
            f"Payment of {amount} would raise paid amount to {paid}, "
            f"above the approved amount of {claim.approved_amount}",
        )

    now = now or utc_now()
    payment = ClaimPayment(
        date=now,
        amount=amount,
        method=method,
        check_number=check_number,
        notes=notes,
    )
    return claim.touched(now, payments=[*claim.payments, payment], paid_amount=paid)


def add_claim_document(
    claim: InsuranceClaim,
    name: str,
    path: str,
    doc_type: str,
    now: Optional[datetime] = None,
) -> InsuranceClaim:
    now = now or utc_now()
    document = ClaimDocument(name=name, path=path, type=doc_type, upload_date=now)
    return claim.touched(now, documents=[*claim.documents, document])


def add_claim_communication(
    claim: InsuranceClaim,
    comm_type: CommunicationType,
    with_: str,
    summary: str,
    follow_up_required: bool = False,
    now: Optional[datetime] = None,
) -> InsuranceClaim:
    now = now or utc_now()
    communication = ClaimCommunication(
        date=now,
        type=CommunicationType(comm_type),
        with_=with_,
        summary=summary,
        follow_up_required=follow_up_required,
    )
    return claim.touched(now, communications=[*claim.communications, communication])
