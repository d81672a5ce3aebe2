"""Case status state machine and case bookkeeping operations.

Any status may move to any other. Entering ``archived`` or ``closed`` stamps
``closed_at`` the first time; leaving those statuses never clears it. Every
operation appends an entry to the case's audit log.
"""

import math
from datetime import datetime
from typing import Any, Iterable, List, Optional
from uuid import UUID

from accuscene.models import Case, CaseAuditEntry, FieldChange, utc_now
from accuscene.models.enums import CaseAuditAction, CaseStatus

TERMINAL_STATUSES = frozenset([CaseStatus.ARCHIVED, CaseStatus.CLOSED])

# Fields whose changes are not worth an audit line
UNAUDITED_FIELDS = frozenset(["updated_at", "version", "audit_log"])

SECONDS_PER_DAY = 60 * 60 * 24


def _append_audit(
    case: Case,
    action: CaseAuditAction,
    now: datetime,
    actor_id: Optional[UUID] = None,
    changes: Iterable[FieldChange] = (),
    notes: Optional[str] = None,
) -> List[CaseAuditEntry]:
    entry = CaseAuditEntry(
        action=action,
        timestamp=now,
        actor_id=actor_id,
        changes=list(changes),
        notes=notes,
    )
    return [*case.audit_log, entry]


def record_case_created(case: Case, actor_id: Optional[UUID] = None, now: Optional[datetime] = None) -> Case:
    """Stamp the creation entry at the head of the audit log."""
    now = now or utc_now()
    return case.model_copy(
        update={"audit_log": _append_audit(case, CaseAuditAction.CREATED, now, actor_id or case.user_id)}
    )


def record_case_update(
    before: Case,
    after: Case,
    actor_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Case:
    """Append an ``updated`` entry listing field-level differences.

    Returns ``after`` unchanged when nothing auditable differs.
    """
    changes = [
        FieldChange(field=name, old_value=getattr(before, name), new_value=getattr(after, name))
        for name in type(after).model_fields
        if name not in UNAUDITED_FIELDS and getattr(before, name) != getattr(after, name)
    ]
    if not changes:
        return after
    now = now or utc_now()
    return after.model_copy(
        update={"audit_log": _append_audit(after, CaseAuditAction.UPDATED, now, actor_id, changes)}
    )


def transition_case_status(
    case: Case,
    new_status: CaseStatus,
    *,
    notes: Optional[str] = None,
    actor_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Case:
    """Move a case to ``new_status``.

    Args:
        case: Current case value
        new_status: Requested status; every status is reachable
        notes: Optional reason recorded in the audit log
        actor_id: User performing the change
        now: Transition time, defaults to the current UTC time

    Returns:
        Updated case
    """
    now = now or utc_now()
    new_status = CaseStatus(new_status)
    update: dict[str, Any] = {"status": new_status, "updated_at": now}

    if new_status in TERMINAL_STATUSES and case.closed_at is None:
        update["closed_at"] = now

    update["audit_log"] = _append_audit(
        case,
        CaseAuditAction.STATUS_CHANGED,
        now,
        actor_id,
        [FieldChange(field="status", old_value=case.status, new_value=new_status)],
        notes,
    )
    return case.model_copy(update=update)


def assign_case(
    case: Case,
    user_id: UUID,
    *,
    actor_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> Case:
    now = now or utc_now()
    audit = _append_audit(
        case,
        CaseAuditAction.ASSIGNED,
        now,
        actor_id,
        [FieldChange(field="assigned_to", old_value=case.assigned_to, new_value=user_id)],
    )
    return case.touched(now, assigned_to=user_id, audit_log=audit)


def unassign_case(case: Case, *, actor_id: Optional[UUID] = None, now: Optional[datetime] = None) -> Case:
    now = now or utc_now()
    audit = _append_audit(
        case,
        CaseAuditAction.UNASSIGNED,
        now,
        actor_id,
        [FieldChange(field="assigned_to", old_value=case.assigned_to, new_value=None)],
    )
    return case.touched(now, assigned_to=None, audit_log=audit)


def add_case_tag(case: Case, tag: str, now: Optional[datetime] = None) -> Case:
    if tag in case.tags:
        return case
    return case.touched(now, tags=[*case.tags, tag])


def remove_case_tag(case: Case, tag: str, now: Optional[datetime] = None) -> Case:
    if tag not in case.tags:
        return case
    return case.touched(now, tags=[t for t in case.tags if t != tag])


def is_overdue(case: Case, now: Optional[datetime] = None) -> bool:
    """True when a due date exists, has passed and the case is not closed."""
    if case.due_date is None or case.status == CaseStatus.CLOSED:
        return False
    return case.due_date < (now or utc_now())


def days_open(case: Case, now: Optional[datetime] = None) -> int:
    """Whole days, rounded up, from creation to closing (or ``now``)."""
    end = case.closed_at or now or utc_now()
    return math.ceil(abs((end - case.created_at).total_seconds()) / SECONDS_PER_DAY)

