"""Evidence chain of custody.

The chain is append-only: entries are added, never edited or removed.
Marking evidence as analyzed is a separate event and does not add a custody
entry.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from accuscene.core.exceptions import ValidationError
from accuscene.models import CustodyEntry, Evidence, utc_now
from accuscene.models.enums import CustodyStatus


def add_custody_entry(
    evidence: Evidence,
    from_: str,
    to: str,
    reason: str,
    signature: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Evidence:
    """Append a hand-over and make ``to`` the current custodian."""
    if not to or not to.strip():
        raise ValidationError("to", "Receiving custodian is required")
    if not reason or not reason.strip():
        raise ValidationError("reason", "Custody transfer reason is required")

    now = now or utc_now()
    entry = CustodyEntry(date=now, from_=from_, to=to, reason=reason, signature=signature)
    return evidence.touched(
        now,
        chain_of_custody=[*evidence.chain_of_custody, entry],
        current_custodian=to,
    )


def transfer_custody(
    evidence: Evidence,
    to: str,
    reason: str,
    signature: Optional[str] = None,
    now: Optional[datetime] = None,
    *,
    from_: Optional[str] = None,
) -> Evidence:
    """Hand evidence to ``to`` and mark it transferred.

    The giving party defaults to the current custodian, or the collector
    when nobody has held the evidence since collection.
    """
    from_ = from_ or evidence.current_custodian or evidence.collected_by
    transferred = add_custody_entry(evidence, from_, to, reason, signature, now)
    return transferred.model_copy(update={"custody_status": CustodyStatus.TRANSFERRED})


def mark_analyzed(
    evidence: Evidence,
    analyzed_by: str,
    findings: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Evidence:
    """Record analysis results without touching the custody chain."""
    if not analyzed_by or not analyzed_by.strip():
        raise ValidationError("analyzed_by", "Analyst is required")

    now = now or utc_now()
    update = {
        "analyzed_date": now,
        "analyzed_by": analyzed_by,
        "findings": findings,
        "custody_status": CustodyStatus.ANALYZED,
    }
    if notes:
        update["analysis_notes"] = notes
    return evidence.touched(now, **update)


def add_evidence_tag(evidence: Evidence, tag: str, now: Optional[datetime] = None) -> Evidence:
    if tag in evidence.tags:
        return evidence
    return evidence.touched(now, tags=[*evidence.tags, tag])


def link_to_vehicle(evidence: Evidence, vehicle_number: int, now: Optional[datetime] = None) -> Evidence:
    if vehicle_number in evidence.related_vehicles:
        return evidence
    return evidence.touched(now, related_vehicles=[*evidence.related_vehicles, vehicle_number])


def link_to_witness(evidence: Evidence, witness_id: UUID, now: Optional[datetime] = None) -> Evidence:
    if witness_id in evidence.related_witnesses:
        return evidence
    return evidence.touched(now, related_witnesses=[*evidence.related_witnesses, witness_id])
