"""Unit tests for the SQLAlchemy storage on in-memory SQLite."""

from decimal import Decimal
from uuid import uuid4

import pytest

from accuscene.core.exceptions import ConflictError
from accuscene.domain.claim_lifecycle import record_payment
from accuscene.domain.custody import transfer_custody
from accuscene.models import Evidence, InsuranceClaim, User
from accuscene.models.enums import ClaimStatus, CustodyStatus, EntityKind


def make_claim() -> InsuranceClaim:
    return InsuranceClaim(
        case_id=uuid4(),
        claim_number="CLM-900",
        type="collision",
        insurer="Acme Mutual",
        amount=Decimal("2500.00"),
        approved_amount=Decimal("2000.00"),
        status=ClaimStatus.APPROVED,
    )


class TestSQLAlchemyStorage:
    """Tests for the relational storage adapter."""

    async def test_round_trip_preserves_values(self, sql_storage, now):
        """Test decimals, enums, aliases and nested logs survive storage."""
        claim = record_payment(make_claim(), Decimal("750.25"), "check", "42", now=now)
        stored = await sql_storage.put(EntityKind.INSURANCE_CLAIM, claim, expected_version=0)
        loaded = await sql_storage.get(EntityKind.INSURANCE_CLAIM, claim.id)

        assert stored.version == 1
        assert loaded == stored
        assert loaded.paid_amount == Decimal("750.25")
        assert loaded.status == ClaimStatus.APPROVED
        assert loaded.payments[0].date == now

    async def test_custody_chain_round_trip(self, sql_storage, now):
        evidence = Evidence(accident_id=uuid4(), type="dashcam", description="Clip", collected_by="Officer Lee")
        evidence = transfer_custody(evidence, "Lab Tech Smith", "lab analysis", now=now)
        await sql_storage.put(EntityKind.EVIDENCE, evidence, expected_version=0)
        loaded = await sql_storage.get(EntityKind.EVIDENCE, evidence.id)
        assert loaded.chain_of_custody[0].from_ == "Officer Lee"
        assert loaded.custody_status == CustodyStatus.TRANSFERRED

    async def test_missing_record(self, sql_storage):
        assert await sql_storage.get(EntityKind.USER, uuid4()) is None
        assert not await sql_storage.delete(EntityKind.USER, uuid4())

    async def test_version_checks(self, sql_storage):
        """Test inserts and stale updates are rejected with the stored version."""
        user = User(email="dana@example.com", password_hash="x")
        stored = await sql_storage.put(EntityKind.USER, user, expected_version=0)

        with pytest.raises(ConflictError):
            await sql_storage.put(EntityKind.USER, user, expected_version=0)

        updated = await sql_storage.put(
            EntityKind.USER, stored.model_copy(update={"first_name": "Dana"}), expected_version=1
        )
        assert updated.version == 2

        with pytest.raises(ConflictError) as exc_info:
            await sql_storage.put(EntityKind.USER, stored.model_copy(update={"first_name": "X"}), expected_version=1)
        assert exc_info.value.actual_version == 2
        assert (await sql_storage.get(EntityKind.USER, user.id)).first_name == "Dana"

    async def test_unchecked_put_upserts(self, sql_storage):
        user = User(email="dana@example.com", password_hash="x")
        first = await sql_storage.put(EntityKind.USER, user)
        second = await sql_storage.put(EntityKind.USER, first.model_copy(update={"first_name": "D"}))
        assert (first.version, second.version) == (1, 2)

    async def test_put_many_rolls_back_on_conflict(self, sql_storage):
        """Test a failed batch leaves no partial writes."""
        existing = await sql_storage.put(EntityKind.USER, User(email="a@example.com", password_hash="x"), 0)
        fresh = User(email="b@example.com", password_hash="x")
        with pytest.raises(ConflictError):
            await sql_storage.put_many([
                (EntityKind.USER, fresh, 0),
                (EntityKind.USER, existing, 0),
            ])
        assert await sql_storage.get(EntityKind.USER, fresh.id) is None

    async def test_query_and_delete_many(self, sql_storage):
        users = [User(email=f"u{i}@example.com", password_hash="x", role="analyst" if i % 2 else "viewer")
                 for i in range(4)]
        await sql_storage.put_many([(EntityKind.USER, user, 0) for user in users])

        analysts = await sql_storage.query(EntityKind.USER, lambda user: user.role.value == "analyst")
        assert len(analysts) == 2
        assert await sql_storage.query(EntityKind.CASE) == []

        removed = await sql_storage.delete_many([(EntityKind.USER, user.id) for user in users[:3]])
        assert removed == 3
        assert await sql_storage.count(EntityKind.USER) == 1
