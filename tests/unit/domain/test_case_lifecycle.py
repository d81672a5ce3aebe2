"""Unit tests for the case status state machine."""

from datetime import timedelta
from uuid import uuid4

import pytest

from accuscene.domain.case_lifecycle import (
    add_case_tag,
    assign_case,
    days_open,
    is_overdue,
    record_case_created,
    record_case_update,
    remove_case_tag,
    transition_case_status,
    unassign_case,
)
from accuscene.models import Case
from accuscene.models.enums import CaseAuditAction, CaseStatus


@pytest.fixture
def draft(now) -> Case:
    return Case(title="Intersection crash", user_id=uuid4(), created_at=now, updated_at=now)


class TestTransitionCaseStatus:
    """Tests for case status transitions."""

    def test_every_status_is_reachable(self, draft, now):
        """Test transitions are unconstrained between statuses."""
        for target in CaseStatus:
            for origin in CaseStatus:
                start = draft.model_copy(update={"status": origin})
                assert transition_case_status(start, target, now=now).status == target

    def test_closing_stamps_closed_at(self, draft, now):
        closed = transition_case_status(draft, CaseStatus.CLOSED, now=now)
        assert closed.closed_at == now
        assert closed.updated_at == now

    def test_closed_at_is_stamped_once(self, draft, now):
        """Test closing again keeps the first closing time."""
        first = transition_case_status(draft, CaseStatus.CLOSED, now=now)
        later = now + timedelta(days=3)
        archived = transition_case_status(first, CaseStatus.ARCHIVED, now=later)
        reclosed = transition_case_status(archived, CaseStatus.CLOSED, now=later + timedelta(days=1))
        assert archived.closed_at == now
        assert reclosed.closed_at == now

    def test_reopening_keeps_closed_at(self, draft, now):
        """Test moving away from a terminal status does not clear closed_at."""
        closed = transition_case_status(draft, CaseStatus.ARCHIVED, now=now)
        reopened = transition_case_status(closed, CaseStatus.ACTIVE, now=now + timedelta(hours=1))
        assert reopened.status == CaseStatus.ACTIVE
        assert reopened.closed_at == now

    def test_non_terminal_status_leaves_closed_at_unset(self, draft, now):
        assert transition_case_status(draft, CaseStatus.UNDER_REVIEW, now=now).closed_at is None

    def test_appends_audit_entry(self, draft, now):
        """Test transitions are recorded with old and new status."""
        actor = uuid4()
        moved = transition_case_status(draft, "active", notes="Kick-off", actor_id=actor, now=now)
        entry = moved.audit_log[-1]
        assert entry.action == CaseAuditAction.STATUS_CHANGED
        assert entry.actor_id == actor
        assert entry.notes == "Kick-off"
        assert entry.changes[0].old_value == CaseStatus.DRAFT
        assert entry.changes[0].new_value == CaseStatus.ACTIVE
        assert draft.audit_log == []

    def test_rejects_unknown_status(self, draft, now):
        with pytest.raises(ValueError):
            transition_case_status(draft, "exploded", now=now)


class TestDerivedCaseValues:
    """Tests for overdue detection and days open."""

    def test_overdue_when_due_date_passed(self, draft, now):
        case = draft.model_copy(update={"due_date": now - timedelta(days=1), "status": CaseStatus.ACTIVE})
        assert is_overdue(case, now)

    def test_closed_case_is_never_overdue(self, draft, now):
        case = draft.model_copy(update={"due_date": now - timedelta(days=1)})
        assert not is_overdue(transition_case_status(case, CaseStatus.CLOSED, now=now), now)

    def test_not_overdue_without_due_date_or_before_it(self, draft, now):
        assert not is_overdue(draft, now)
        assert not is_overdue(draft.model_copy(update={"due_date": now + timedelta(days=1)}), now)

    def test_days_open_rounds_up(self, draft, now):
        assert days_open(draft, now) == 0
        assert days_open(draft, now + timedelta(hours=1)) == 1
        assert days_open(draft, now + timedelta(days=1, hours=12)) == 2

    def test_days_open_stops_at_closing(self, draft, now):
        closed = transition_case_status(draft, CaseStatus.CLOSED, now=now + timedelta(days=4))
        assert days_open(closed, now + timedelta(days=40)) == 4


class TestCaseAuditTrail:
    """Tests for assignment, tags and update auditing."""

    def test_created_entry_defaults_to_owner(self, draft, now):
        case = record_case_created(draft, now=now)
        assert case.audit_log[0].action == CaseAuditAction.CREATED
        assert case.audit_log[0].actor_id == draft.user_id

    def test_assign_and_unassign(self, draft, now):
        investigator = uuid4()
        assigned = assign_case(draft, investigator, now=now)
        assert assigned.assigned_to == investigator
        unassigned = unassign_case(assigned, now=now)
        assert unassigned.assigned_to is None
        actions = [entry.action for entry in unassigned.audit_log]
        assert actions == [CaseAuditAction.ASSIGNED, CaseAuditAction.UNASSIGNED]

    def test_update_records_field_changes(self, draft, now):
        """Test only changed, auditable fields are listed."""
        after = draft.model_copy(update={"title": "Renamed", "updated_at": now + timedelta(minutes=1)})
        audited = record_case_update(draft, after, now=now)
        changes = audited.audit_log[-1].changes
        assert [change.field for change in changes] == ["title"]
        assert changes[0].old_value == "Intersection crash"
        assert changes[0].new_value == "Renamed"

    def test_update_without_changes_adds_nothing(self, draft, now):
        assert record_case_update(draft, draft, now=now).audit_log == []

    def test_tags(self, draft, now):
        tagged = add_case_tag(add_case_tag(draft, "night", now), "night", now)
        assert tagged.tags == ["night"]
        assert remove_case_tag(tagged, "night", now).tags == []
        assert remove_case_tag(draft, "missing", now) is draft
