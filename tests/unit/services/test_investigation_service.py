"""Unit tests for the investigation lifecycle service."""

import re
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from accuscene.core.exceptions import NotFoundError, ValidationError
from accuscene.models import Accident, Case, CaseStatistics, ClaimStatistics
from accuscene.models.enums import (
    CaseAuditAction,
    CaseStatus,
    ClaimStatus,
    CustodyStatus,
    EntityKind,
)


class TestCreate:
    """Tests for creating records through the service."""

    async def test_user_email_is_normalized_and_unique(self, service, user):
        """Test emails are stored lower-cased and compared case-insensitively."""
        assert user.email == "dana.investigator@example.com"
        with pytest.raises(ValidationError) as exc_info:
            await service.create("user", {"email": "DANA.investigator@example.com", "password_hash": "y"})
        assert exc_info.value.field == "email"

    async def test_case_gets_number_and_audit_entry(self, service, case, user, now):
        assert re.fullmatch(r"ACC-2026-\d{5}", case.case_number)
        assert case.created_at == now
        assert case.version == 1
        assert case.audit_log[0].action == CaseAuditAction.CREATED
        assert case.audit_log[0].actor_id == user.id

    async def test_case_number_must_be_unique(self, service, case, user):
        with pytest.raises(ValidationError) as exc_info:
            await service.create("case", {"title": "Copy", "user_id": user.id, "case_number": case.case_number})
        assert exc_info.value.field == "case_number"

    async def test_case_requires_existing_owner(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.create("case", {"title": "Orphan", "user_id": uuid4()})
        assert exc_info.value.kind == "user"

    async def test_one_accident_per_case(self, service, case, accident, now):
        with pytest.raises(ValidationError) as exc_info:
            await service.create("accident", {"case_id": case.id, "date_time": now, "location": "Again"})
        assert exc_info.value.field == "case_id"

    async def test_accident_requires_existing_case(self, service, now):
        with pytest.raises(NotFoundError):
            await service.create("accident", {"case_id": uuid4(), "date_time": now, "location": "Nowhere"})

    async def test_vehicles_are_numbered_sequentially(self, service, accident):
        """Test omitted vehicle numbers continue from the highest used."""
        payload = {"accident_id": accident.id, "make": "Kia", "model": "Rio", "year": 2020, "driver_name": "Al"}
        numbers = [(await service.create("vehicle", payload)).vehicle_number for _ in range(3)]
        assert numbers == [1, 2, 3]
        explicit = await service.create("vehicle", {**payload, "vehicle_number": 7})
        assert explicit.vehicle_number == 7
        assert (await service.create("vehicle", payload)).vehicle_number == 8

        with pytest.raises(ValidationError) as exc_info:
            await service.create("vehicle", {**payload, "vehicle_number": 2})
        assert exc_info.value.field == "vehicle_number"

    async def test_invalid_vehicle_is_not_stored(self, service, accident):
        payload = {
            "accident_id": accident.id, "make": "Kia", "model": "Rio", "year": 2020,
            "driver_name": "Al", "occupants": 1, "injured_occupants": 2,
        }
        with pytest.raises(ValidationError) as exc_info:
            await service.create("vehicle", payload)
        assert exc_info.value.field == "injured_occupants"
        assert await service.vehicles.list_by_accident(accident.id) == []

    async def test_evidence_gets_number(self, service, evidence):
        assert re.fullmatch(r"EV-2026-\d{6}-\d{3}", evidence.evidence_number)
        assert await service.evidence.get_by_evidence_number(evidence.evidence_number) == evidence

    async def test_claim_number_must_be_unique(self, service, claim, case):
        with pytest.raises(ValidationError) as exc_info:
            await service.create("insurance_claim", {
                "case_id": case.id, "claim_number": claim.claim_number, "type": "collision",
                "insurer": "Other", "amount": "10",
            })
        assert exc_info.value.field == "claim_number"

    async def test_malformed_payload(self, service, case, now):
        """Test payload shape errors name the offending field."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create("accident", {
                "case_id": case.id, "date_time": now, "location": "X", "injuries": "many",
            })
        assert exc_info.value.field == "injuries"

    async def test_unknown_kind(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.create("spaceship", {})
        assert exc_info.value.field == "kind"

    async def test_system_fields_are_ignored(self, service, user):
        forced = uuid4()
        case = await service.create("case", {"id": forced, "version": 99, "title": "T", "user_id": user.id})
        assert case.id != forced
        assert case.version == 1


class TestCreateCaseWithAccident:
    """Tests for creating a case and its accident together."""

    async def test_creates_both(self, service, user, now):
        case, accident = await service.create_case_with_accident(
            {"title": "Pile-up", "user_id": user.id},
            {"date_time": now, "location": "I-95 mile 12", "injuries": 4},
        )
        assert isinstance(case, Case) and isinstance(accident, Accident)
        assert accident.case_id == case.id
        assert await service.accidents.get_by_case_id(case.id) == accident
        assert await service.cases.get_by_id(case.id) == case

    async def test_invalid_accident_stores_nothing(self, service, user, now):
        """Test the pair is stored atomically."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_case_with_accident(
                {"title": "Pile-up", "user_id": user.id},
                {"date_time": now, "location": "I-95", "latitude": 123.0},
            )
        assert exc_info.value.field == "latitude"
        assert await service.cases.list() == []
        assert await service.accidents.list() == []


class TestUpdate:
    """Tests for generic updates."""

    async def test_update_case_records_changes(self, service, case, clock):
        clock.advance(hours=1)
        updated = await service.update("case", case.id, {"title": "Renamed", "id": uuid4()})
        assert updated.id == case.id
        assert updated.title == "Renamed"
        assert updated.version == 2
        assert updated.updated_at == clock.now
        entry = updated.audit_log[-1]
        assert entry.action == CaseAuditAction.UPDATED
        assert [change.field for change in entry.changes] == ["title"]

    async def test_invalid_update_leaves_record_unchanged(self, service, case):
        with pytest.raises(ValidationError):
            await service.update("case", case.id, {"title": ""})
        assert await service.cases.get_by_id(case.id) == case

    async def test_parent_reference_is_fixed(self, service, accident):
        with pytest.raises(ValidationError) as exc_info:
            await service.update("accident", accident.id, {"case_id": uuid4()})
        assert exc_info.value.field == "case_id"

    async def test_logs_are_append_only(self, service, evidence):
        with pytest.raises(ValidationError) as exc_info:
            await service.update("evidence", evidence.id, {"chain_of_custody": []})
        assert exc_info.value.field == "chain_of_custody"

    async def test_update_checks_uniqueness(self, service, user):
        other = await service.create("user", {"email": "other@example.com", "password_hash": "x"})
        with pytest.raises(ValidationError) as exc_info:
            await service.update("user", other.id, {"email": user.email.upper()})
        assert exc_info.value.field == "email"

    async def test_update_missing_record(self, service):
        with pytest.raises(NotFoundError):
            await service.update("case", uuid4(), {"title": "X"})

    async def test_paid_amount_only_moves_through_payments(self, service, claim):
        with pytest.raises(ValidationError) as exc_info:
            await service.update("insurance_claim", claim.id, {"paid_amount": "500"})
        assert exc_info.value.field == "paid_amount"
        assert await service.claims.get_by_id(claim.id) == claim

    async def test_case_status_cannot_bypass_transition(self, service, case):
        """Test closing through update is refused so closed_at stays consistent."""
        with pytest.raises(ValidationError) as exc_info:
            await service.update("case", case.id, {"status": "closed"})
        assert exc_info.value.field == "status"

        stored = await service.cases.get_by_id(case.id)
        assert stored.status == CaseStatus.DRAFT
        assert stored.closed_at is None

    async def test_claim_status_cannot_bypass_transition(self, service, claim):
        with pytest.raises(ValidationError) as exc_info:
            await service.update("insurance_claim", claim.id, {"status": "approved"})
        assert exc_info.value.field == "status"

        approved = await service.transition_claim_status(claim.id, "approved")
        assert approved.decision_date is not None

    @pytest.mark.parametrize("kind,field,value", [
        ("case", "closed_at", "2026-03-01T00:00:00Z"),
        ("insurance_claim", "decision_date", "2026-03-01T00:00:00Z"),
        ("insurance_claim", "settlement_date", "2026-03-01T00:00:00Z"),
        ("evidence", "custody_status", "analyzed"),
        ("evidence", "current_custodian", "Somebody Else"),
        ("user", "locked_until", "2026-03-01T00:00:00Z"),
    ])
    async def test_managed_fields_are_rejected(self, service, user, case, evidence, claim, kind, field, value):
        record_id = {"case": case.id, "insurance_claim": claim.id, "evidence": evidence.id, "user": user.id}[kind]
        with pytest.raises(ValidationError) as exc_info:
            await service.update(kind, record_id, {field: value})
        assert exc_info.value.field == field

    async def test_naive_due_date_is_read_as_utc(self, service, user):
        """Test a due date without offset is stored as UTC and counts as overdue."""
        case = await service.create("case", {
            "title": "Old paperwork", "user_id": user.id, "due_date": "2020-01-01T00:00:00",
        })
        assert case.due_date.tzinfo is not None
        assert case.due_date.utcoffset() == timedelta(0)
        assert case.is_overdue

        stats = await service.get_statistics("case")
        assert stats.overdue_count == 1
        assert [item.id for item in await service.cases.list_overdue()] == [case.id]

        updated = await service.update("case", case.id, {"due_date": "2030-01-01T00:00:00"})
        assert updated.due_date.tzinfo is not None
        assert not updated.is_overdue


class TestDelete:
    """Tests for deletion rules."""

    async def test_case_delete_cascades(self, service, user, case, accident, evidence, claim):
        """Test deleting a case removes its whole tree and nothing else."""
        vehicle = await service.create("vehicle", {
            "accident_id": accident.id, "make": "Kia", "model": "Rio", "year": 2020, "driver_name": "Al",
        })
        witness = await service.create("witness", {"accident_id": accident.id, "name": "Pat", "statement": "Saw"})
        other_case, other_accident = await service.create_case_with_accident(
            {"title": "Unrelated", "user_id": user.id},
            {"date_time": accident.date_time, "location": "Elsewhere"},
        )

        assert await service.delete("case", case.id)

        for kind, record_id in [
            (EntityKind.CASE, case.id),
            (EntityKind.ACCIDENT, accident.id),
            (EntityKind.VEHICLE, vehicle.id),
            (EntityKind.WITNESS, witness.id),
            (EntityKind.EVIDENCE, evidence.id),
            (EntityKind.INSURANCE_CLAIM, claim.id),
        ]:
            assert await service.repository(kind).get_by_id(record_id) is None
        assert await service.cases.get_by_id(other_case.id) == other_case
        assert await service.accidents.get_by_id(other_accident.id) == other_accident
        assert await service.users.get_by_id(user.id) is not None

    async def test_children_cannot_be_deleted_alone(self, service, evidence):
        with pytest.raises(ValidationError) as exc_info:
            await service.delete("evidence", evidence.id)
        assert exc_info.value.field == "kind"

    async def test_user_delete_deactivates(self, service, user):
        assert await service.delete("user", user.id)
        stored = await service.users.get_by_id(user.id)
        assert stored is not None
        assert not stored.is_active

    async def test_delete_missing_case(self, service):
        with pytest.raises(NotFoundError):
            await service.delete("case", uuid4())


class TestCreateStatusStamps:
    """Tests that records created past their first status carry its timestamps."""

    async def test_case_created_closed_gets_closed_at(self, service, user, now):
        case = await service.create("case", {"title": "Backfilled", "user_id": user.id, "status": "closed"})
        assert case.closed_at == now

    async def test_claim_created_submitted_gets_submitted_date(self, service, case, now):
        claim = await service.create("insurance_claim", {
            "case_id": case.id,
            "claim_number": "CLM-2002",
            "type": "collision",
            "insurer": "Acme Mutual",
            "amount": "100",
            "status": "submitted",
        })
        assert claim.submitted_date == now
        assert claim.decision_date is None


class TestClockInjection:
    """Tests that validation uses the service clock."""

    async def test_vehicle_year_bound_follows_clock(self, service, accident, clock):
        """Test a model year valid only in the clock's future is accepted."""
        payload = {"accident_id": accident.id, "make": "Kia", "model": "EV9", "year": 2041, "driver_name": "Al"}
        with pytest.raises(ValidationError) as exc_info:
            await service.create("vehicle", payload)
        assert exc_info.value.field == "year"

        clock.advance(days=365 * 15)
        vehicle = await service.create("vehicle", payload)
        assert vehicle.year == 2041


class TestCaseOperations:
    """Tests for case transitions and assignment."""

    async def test_closed_at_is_stamped_once(self, service, case, clock):
        first_close = clock.advance(days=1)
        closed = await service.transition_case_status(case.id, "closed", notes="Done")
        assert closed.closed_at == first_close
        clock.advance(days=1)
        await service.transition_case_status(case.id, CaseStatus.ACTIVE)
        clock.advance(days=1)
        reclosed = await service.transition_case_status(case.id, CaseStatus.CLOSED)
        assert reclosed.closed_at == first_close
        assert [entry.action for entry in reclosed.audit_log].count(CaseAuditAction.STATUS_CHANGED) == 3

    async def test_invalid_status(self, service, case):
        with pytest.raises(ValidationError) as exc_info:
            await service.transition_case_status(case.id, "exploded")
        assert exc_info.value.field == "status"

    async def test_assign_and_unassign(self, service, case, user):
        assigned = await service.assign_case(case.id, user.id)
        assert assigned.assigned_to == user.id
        assert await service.cases.list_by_assignee(user.id) == [assigned]
        unassigned = await service.unassign_case(case.id)
        assert unassigned.assigned_to is None

    async def test_cannot_assign_inactive_user(self, service, case, user):
        await service.delete("user", user.id)
        with pytest.raises(ValidationError) as exc_info:
            await service.assign_case(case.id, user.id)
        assert exc_info.value.field == "assigned_to"

    async def test_tags(self, service, case):
        tagged = await service.add_case_tag(case.id, "night")
        assert tagged.tags == ["night"]
        assert (await service.remove_case_tag(case.id, "night")).tags == []


class TestClaimOperations:
    """Tests for claim transitions, payments and logs."""

    async def test_transition_stamps_once(self, service, claim, clock):
        submitted_at = clock.now
        await service.transition_claim_status(claim.id, "submitted")
        clock.advance(days=2)
        again = await service.transition_claim_status(claim.id, ClaimStatus.SUBMITTED)
        assert again.submitted_date == submitted_at

    async def test_overpayment_is_rejected(self, service, claim):
        paid = await service.record_payment(claim.id, "600", "check", check_number="77")
        with pytest.raises(ValidationError) as exc_info:
            await service.record_payment(claim.id, "400.01", "check")
        assert exc_info.value.field == "amount"
        stored = await service.claims.get_by_id(claim.id)
        assert stored.paid_amount == Decimal("600") == paid.paid_amount
        assert len(stored.payments) == 1

    async def test_documents_and_communications(self, service, claim):
        await service.add_claim_document(claim.id, "estimate.pdf", "/docs/estimate.pdf", "estimate")
        updated = await service.add_claim_communication(claim.id, "email", "Adjuster", "Sent estimate")
        assert len(updated.documents) == 1
        assert updated.communications[0].with_ == "Adjuster"

    async def test_missing_claim(self, service):
        with pytest.raises(NotFoundError):
            await service.record_payment(uuid4(), 10, "wire")


class TestEvidenceOperations:
    """Tests for custody operations through the service."""

    async def test_custody_flow(self, service, evidence):
        moved = await service.transfer_custody(evidence.id, "Lab Tech Smith", "lab analysis")
        assert moved.current_custodian == "Lab Tech Smith"
        assert moved.chain_of_custody[0].from_ == "Officer Lee"
        stored = await service.add_custody_entry(evidence.id, "Lab Tech Smith", "Evidence Room", "storage")
        assert len(stored.chain_of_custody) == 2
        analyzed = await service.mark_analyzed(evidence.id, "Dr. Patel", "Tire marks consistent with braking")
        assert analyzed.custody_status == CustodyStatus.ANALYZED
        assert len(analyzed.chain_of_custody) == 2

    async def test_links(self, service, accident, evidence):
        await service.create("vehicle", {
            "accident_id": accident.id, "make": "Kia", "model": "Rio", "year": 2020, "driver_name": "Al",
        })
        witness = await service.create("witness", {"accident_id": accident.id, "name": "Pat", "statement": "Saw"})
        linked = await service.link_evidence_to_vehicle(evidence.id, 1)
        linked = await service.link_evidence_to_witness(evidence.id, witness.id)
        assert linked.related_vehicles == [1]
        assert linked.related_witnesses == [witness.id]
        with pytest.raises(NotFoundError):
            await service.link_evidence_to_vehicle(evidence.id, 9)

    async def test_witness_from_other_accident_is_rejected(self, service, user, evidence, now):
        _, other_accident = await service.create_case_with_accident(
            {"title": "Other", "user_id": user.id}, {"date_time": now, "location": "Elsewhere"},
        )
        witness = await service.create("witness", {"accident_id": other_accident.id, "name": "Pat", "statement": "Saw"})
        with pytest.raises(ValidationError):
            await service.link_evidence_to_witness(evidence.id, witness.id)


class TestAccountOperations:
    """Tests for login tracking."""

    async def test_lockout_after_max_attempts(self, service, user, clock):
        """Test the configured number of failures locks the account."""
        for _ in range(2):
            tracked = await service.record_failed_login(user.id)
        assert tracked.failed_login_attempts == 2
        locked = await service.record_failed_login(user.id)
        assert locked.locked_until == clock.now + timedelta(minutes=15)
        assert locked.failed_login_attempts == 0

        unlocked = await service.record_successful_login(user.id)
        assert unlocked.locked_until is None
        assert unlocked.last_login_at == clock.now


class TestStatistics:
    """Tests for statistics dispatch."""

    async def test_families(self, service, case, accident, claim):
        case_stats = await service.get_statistics("case")
        assert isinstance(case_stats, CaseStatistics)
        assert case_stats.by_weather == {"rain": 1}
        claim_stats = await service.get_statistics("claim")
        assert isinstance(claim_stats, ClaimStatistics)
        assert claim_stats.total_claimed == Decimal("5000.00")
        assert (await service.get_statistics("accident")).total_injuries == 1
        assert (await service.get_statistics("vehicle")).total == 0

    async def test_unknown_family(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.get_statistics("weather")
        assert exc_info.value.field == "family"
