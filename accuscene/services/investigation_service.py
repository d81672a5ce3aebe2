"""Lifecycle facade for investigation records.

``InvestigationService`` is the single entry point used by outer layers. It
builds records from plain payloads, checks references and uniqueness,
assigns generated numbers, runs the state-machine functions through the
repositories' locked read-modify-write cycle and cascades case deletion.
"""

from contextlib import AsyncExitStack
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union
from uuid import UUID

from accuscene.config import Settings, settings as default_settings
from accuscene.core.exceptions import NotFoundError, ValidationError
from accuscene.domain import accounts, case_lifecycle, claim_lifecycle, custody
from accuscene.domain.numbering import generate_case_number, generate_evidence_number
from accuscene.domain.validation import normalize_email, validate
from accuscene.models import (
    Accident,
    AccidentStatistics,
    Case,
    CaseStatistics,
    ClaimStatistics,
    Evidence,
    InsuranceClaim,
    Record,
    User,
    VehicleStatistics,
    apply_changes,
    build_record,
    record_type,
    utc_now,
)
from accuscene.models.enums import (
    CaseStatus,
    ClaimStatus,
    CommunicationType,
    EntityKind,
)
from accuscene.repositories import (
    AccidentRepository,
    BaseRepository,
    CaseRepository,
    EvidenceRepository,
    InsuranceClaimRepository,
    UserRepository,
    VehicleRepository,
    WitnessRepository,
)
from accuscene.storage.base import Storage
from accuscene.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Lock key serializing uniqueness checks and writes within one kind
INDEX_LOCK_ID = UUID(int=0)

# Assigned by the system, ignored in inbound payloads
IMMUTABLE_FIELDS = frozenset(["id", "version", "created_at", "updated_at"])

PARENT_FIELDS: Dict[EntityKind, str] = {
    EntityKind.ACCIDENT: "case_id",
    EntityKind.VEHICLE: "accident_id",
    EntityKind.WITNESS: "accident_id",
    EntityKind.EVIDENCE: "accident_id",
    EntityKind.INSURANCE_CLAIM: "case_id",
}

# Logs only grow through their dedicated operations
APPEND_ONLY_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.CASE: ("audit_log",),
    EntityKind.EVIDENCE: ("chain_of_custody",),
    EntityKind.INSURANCE_CLAIM: ("payments",),
}

# Owned by the state machines and ledger operations, never written directly
MANAGED_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.USER: ("failed_login_attempts", "locked_until", "last_login_at"),
    EntityKind.CASE: ("status", "closed_at"),
    EntityKind.EVIDENCE: (
        "custody_status",
        "current_custodian",
        "analyzed_date",
        "analyzed_by",
    ),
    EntityKind.INSURANCE_CLAIM: (
        "status",
        "paid_amount",
        "submitted_date",
        "review_start_date",
        "decision_date",
        "settlement_date",
        "closed_date",
    ),
}

# Index locks taken by a case deletion, in acquisition order
CASCADE_KINDS: Tuple[EntityKind, ...] = (
    EntityKind.CASE,
    EntityKind.ACCIDENT,
    EntityKind.VEHICLE,
    EntityKind.WITNESS,
    EntityKind.EVIDENCE,
    EntityKind.INSURANCE_CLAIM,
)

UNIQUE_FIELDS: Dict[EntityKind, Tuple[str, Callable[[Any], Any]]] = {
    EntityKind.USER: ("email", lambda user: normalize_email(user.email)),
    EntityKind.CASE: ("case_number", lambda case: case.case_number),
    EntityKind.ACCIDENT: ("case_id", lambda accident: accident.case_id),
    EntityKind.VEHICLE: (
        "vehicle_number",
        lambda vehicle: (vehicle.accident_id, vehicle.vehicle_number) if vehicle.vehicle_number else None,
    ),
    EntityKind.EVIDENCE: ("evidence_number", lambda evidence: evidence.evidence_number),
    EntityKind.INSURANCE_CLAIM: ("claim_number", lambda claim: claim.claim_number),
}

MAX_NUMBER_ATTEMPTS = 20

Statistics = Union[CaseStatistics, AccidentStatistics, VehicleStatistics, ClaimStatistics]


def _strip_immutable(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in dict(payload).items() if key not in IMMUTABLE_FIELDS}


class InvestigationService:
    """Inbound operations over cases, accidents and everything attached to them.

    Args:
        storage: Storage shared by all repositories
        settings: Application settings (defaults to the environment)
        clock: Source of the current time, injectable for tests
    """

    def __init__(
        self,
        storage: Storage,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.settings = settings or default_settings
        self.clock = clock

        repository_options = {
            "max_retries": self.settings.mutation_max_retries,
            "retry_delay": self.settings.mutation_retry_delay,
            "clock": clock,
        }
        self.users = UserRepository(storage, **repository_options)
        self.cases = CaseRepository(storage, **repository_options)
        self.accidents = AccidentRepository(storage, **repository_options)
        self.vehicles = VehicleRepository(storage, **repository_options)
        self.witnesses = WitnessRepository(storage, **repository_options)
        self.evidence = EvidenceRepository(storage, **repository_options)
        self.claims = InsuranceClaimRepository(storage, **repository_options)

        self._repositories: Dict[EntityKind, BaseRepository] = {
            EntityKind.USER: self.users,
            EntityKind.CASE: self.cases,
            EntityKind.ACCIDENT: self.accidents,
            EntityKind.VEHICLE: self.vehicles,
            EntityKind.WITNESS: self.witnesses,
            EntityKind.EVIDENCE: self.evidence,
            EntityKind.INSURANCE_CLAIM: self.claims,
        }

    def repository(self, kind: Union[EntityKind, str]) -> BaseRepository:
        """Repository for ``kind``.

        Raises:
            ValidationError: If ``kind`` is not a known entity kind
        """
        return self._repositories[record_type(kind).kind]

    # ------------------------------------------------------------------
    # Generic create / update / delete
    # ------------------------------------------------------------------

    async def create(
        self,
        kind: Union[EntityKind, str],
        payload: Mapping[str, Any],
        actor_id: Optional[UUID] = None,
    ) -> Record:
        """Create a record of ``kind`` from a plain payload.

        Generated values (case number, evidence number, vehicle number) are
        filled in when absent.

        Args:
            kind: Entity kind
            payload: Field values; id, version and timestamps are ignored
            actor_id: User performing the change, recorded on case audit entries

        Returns:
            The stored record

        Raises:
            ValidationError: If the payload is malformed, breaks an invariant
                or reuses a unique value
            NotFoundError: If a referenced parent record does not exist
        """
        record = build_record(kind, _strip_immutable(payload))
        repository = self.repository(record.kind)
        async with self.storage.lock(record.kind, INDEX_LOCK_ID):
            record = await self._prepare_new(record, actor_id)
            return await repository.create(record)

    async def update(
        self,
        kind: Union[EntityKind, str],
        record_id: UUID,
        changes: Mapping[str, Any],
        actor_id: Optional[UUID] = None,
    ) -> Record:
        """Apply field changes to an existing record.

        Raises:
            NotFoundError: If the record or a newly referenced record is missing
            ValidationError: If a change is malformed, touches a protected
                field or breaks an invariant. Status, milestone dates, paid
                amount, custody state and login state are protected; use the
                matching transition or ledger operation instead.
        """
        repository = self.repository(kind)
        kind = repository.kind
        changes = _strip_immutable(changes)
        for field in APPEND_ONLY_FIELDS.get(kind, ()):
            if field in changes:
                raise ValidationError(field, "Log entries can only be appended by their own operation")
        for field in MANAGED_FIELDS.get(kind, ()):
            if field in changes:
                raise ValidationError(field, f"{field} is changed through its dedicated operation")

        async with self.storage.lock(kind, INDEX_LOCK_ID):
            current = await repository.require(record_id)
            candidate = apply_changes(current, changes)
            parent = PARENT_FIELDS.get(kind)
            if parent and getattr(candidate, parent) != getattr(current, parent):
                raise ValidationError(parent, "Parent reference cannot be changed")
            await self._check_references(candidate)
            await self._check_unique(candidate)

            def apply(latest: Record) -> Record:
                now = self.clock()
                updated = apply_changes(latest, changes).touched(now)
                if kind == EntityKind.CASE:
                    updated = case_lifecycle.record_case_update(latest, updated, actor_id, now)
                return updated

            updated = await repository.mutate(record_id, apply)

        LOGGER.info(f"Updated {kind.value} {record_id}: {sorted(changes)}")
        return updated

    async def delete(self, kind: Union[EntityKind, str], record_id: UUID) -> bool:
        """Delete a record.

        Deleting a case removes its accident, the accident's vehicles,
        witnesses and evidence, and the case's claims in one atomic step.
        Deleting a user deactivates the account instead.

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: If ``kind`` is a child record, which is only
                removed together with its case
        """
        kind = self.repository(kind).kind
        if kind == EntityKind.USER:
            await self.users.mutate(record_id, lambda user: accounts.deactivate_user(user, self.clock()))
            LOGGER.info(f"Deactivated user {record_id}")
            return True
        if kind != EntityKind.CASE:
            raise ValidationError("kind", f"{kind.value} records are removed together with their case")
        return await self._delete_case(record_id)

    async def _delete_case(self, case_id: UUID) -> bool:
        async with AsyncExitStack() as stack:
            # Blocks child creation until the cascade is committed
            for child_kind in CASCADE_KINDS:
                await stack.enter_async_context(self.storage.lock(child_kind, INDEX_LOCK_ID))
            await stack.enter_async_context(self.storage.lock(EntityKind.CASE, case_id))

            await self.cases.require(case_id)

            accidents = await self.storage.query(
                EntityKind.ACCIDENT, lambda accident: accident.case_id == case_id
            )
            accident_ids = {accident.id for accident in accidents}
            keys = [(EntityKind.CASE, case_id)]
            keys.extend((EntityKind.ACCIDENT, accident_id) for accident_id in accident_ids)
            for child_kind in (EntityKind.VEHICLE, EntityKind.WITNESS, EntityKind.EVIDENCE):
                children = await self.storage.query(
                    child_kind, lambda record: record.accident_id in accident_ids
                )
                keys.extend((child_kind, child.id) for child in children)
            claims = await self.storage.query(
                EntityKind.INSURANCE_CLAIM, lambda claim: claim.case_id == case_id
            )
            keys.extend((EntityKind.INSURANCE_CLAIM, claim.id) for claim in claims)

            removed = await self.storage.delete_many(keys)

        LOGGER.info(f"Deleted case {case_id} and {removed - 1} dependent record(s)")
        return True

    async def create_case_with_accident(
        self,
        case_payload: Mapping[str, Any],
        accident_payload: Mapping[str, Any],
        actor_id: Optional[UUID] = None,
    ) -> Tuple[Case, Accident]:
        """Create a case and its accident as one unit.

        Either both records are stored or neither is. Any ``case_id`` in
        ``accident_payload`` is replaced by the new case's id.

        Returns:
            Tuple of (case, accident) as stored
        """
        case = build_record(EntityKind.CASE, _strip_immutable(case_payload))
        async with self.storage.lock(EntityKind.CASE, INDEX_LOCK_ID):
            async with self.storage.lock(EntityKind.ACCIDENT, INDEX_LOCK_ID):
                case = validate(await self._prepare_new(case, actor_id), self.clock())
                accident = build_record(
                    EntityKind.ACCIDENT,
                    {**_strip_immutable(accident_payload), "case_id": case.id},
                )
                accident = validate(await self._prepare_new(accident, check_references=False), self.clock())
                stored_case, stored_accident = await self.storage.put_many([
                    (EntityKind.CASE, case, 0),
                    (EntityKind.ACCIDENT, accident, 0),
                ])

        LOGGER.info(f"Created case {stored_case.case_number} with accident {stored_accident.id}")
        return stored_case, stored_accident

    # ------------------------------------------------------------------
    # Case lifecycle
    # ------------------------------------------------------------------

    async def transition_case_status(
        self,
        case_id: UUID,
        new_status: Union[CaseStatus, str],
        notes: Optional[str] = None,
        actor_id: Optional[UUID] = None,
    ) -> Case:
        """Move a case to ``new_status``, stamping ``closed_at`` on first close."""
        new_status = self._coerce(CaseStatus, new_status, "status")
        case = await self.cases.mutate(
            case_id,
            lambda current: case_lifecycle.transition_case_status(
                current, new_status, notes=notes, actor_id=actor_id, now=self.clock()
            ),
        )
        LOGGER.info(f"Case {case_id} moved to {new_status.value}")
        return case

    async def assign_case(self, case_id: UUID, user_id: UUID, actor_id: Optional[UUID] = None) -> Case:
        """Assign a case to an active user.

        Raises:
            NotFoundError: If the case or user does not exist
            ValidationError: If the user is deactivated
        """
        user = await self.users.require(user_id)
        if not user.is_active:
            raise ValidationError("assigned_to", "Cannot assign a case to an inactive user")
        return await self.cases.mutate(
            case_id,
            lambda current: case_lifecycle.assign_case(current, user_id, actor_id=actor_id, now=self.clock()),
        )

    async def unassign_case(self, case_id: UUID, actor_id: Optional[UUID] = None) -> Case:
        return await self.cases.mutate(
            case_id,
            lambda current: case_lifecycle.unassign_case(current, actor_id=actor_id, now=self.clock()),
        )

    async def add_case_tag(self, case_id: UUID, tag: str) -> Case:
        return await self.cases.mutate(
            case_id, lambda current: case_lifecycle.add_case_tag(current, tag, self.clock())
        )

    async def remove_case_tag(self, case_id: UUID, tag: str) -> Case:
        return await self.cases.mutate(
            case_id, lambda current: case_lifecycle.remove_case_tag(current, tag, self.clock())
        )

    # ------------------------------------------------------------------
    # Insurance claims
    # ------------------------------------------------------------------

    async def transition_claim_status(
        self,
        claim_id: UUID,
        new_status: Union[ClaimStatus, str],
    ) -> InsuranceClaim:
        new_status = self._coerce(ClaimStatus, new_status, "status")
        claim = await self.claims.mutate(
            claim_id,
            lambda current: claim_lifecycle.transition_claim_status(current, new_status, self.clock()),
        )
        LOGGER.info(f"Claim {claim_id} moved to {new_status.value}")
        return claim

    async def record_payment(
        self,
        claim_id: UUID,
        amount: Union[Decimal, int, float, str],
        method: str,
        check_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InsuranceClaim:
        """Record a payment against a claim.

        Concurrent payments on the same claim are applied one after the other,
        so none is lost.

        Raises:
            NotFoundError: If the claim does not exist
            ValidationError: If the amount is not positive or would exceed the
                approved amount
        """
        claim = await self.claims.mutate(
            claim_id,
            lambda current: claim_lifecycle.record_payment(
                current, amount, method, check_number, notes, self.clock()
            ),
        )
        LOGGER.info(f"Recorded payment of {amount} on claim {claim_id}")
        return claim

    async def add_claim_document(
        self,
        claim_id: UUID,
        name: str,
        path: str,
        doc_type: str,
    ) -> InsuranceClaim:
        return await self.claims.mutate(
            claim_id,
            lambda current: claim_lifecycle.add_claim_document(current, name, path, doc_type, self.clock()),
        )

    async def add_claim_communication(
        self,
        claim_id: UUID,
        comm_type: Union[CommunicationType, str],
        with_: str,
        summary: str,
        follow_up_required: bool = False,
    ) -> InsuranceClaim:
        comm_type = self._coerce(CommunicationType, comm_type, "type")
        return await self.claims.mutate(
            claim_id,
            lambda current: claim_lifecycle.add_claim_communication(
                current, comm_type, with_, summary, follow_up_required, self.clock()
            ),
        )

    # ------------------------------------------------------------------
    # Evidence custody
    # ------------------------------------------------------------------

    async def add_custody_entry(
        self,
        evidence_id: UUID,
        from_: str,
        to: str,
        reason: str,
        signature: Optional[str] = None,
    ) -> Evidence:
        return await self.evidence.mutate(
            evidence_id,
            lambda current: custody.add_custody_entry(current, from_, to, reason, signature, self.clock()),
        )

    async def transfer_custody(
        self,
        evidence_id: UUID,
        to: str,
        reason: str,
        signature: Optional[str] = None,
        from_: Optional[str] = None,
    ) -> Evidence:
        """Hand evidence over to ``to``.

        Args:
            evidence_id: Evidence to transfer
            to: Receiving custodian
            reason: Why the evidence changes hands
            signature: Optional signature of the receiver
            from_: Giving party; defaults to the current custodian or collector
        """
        evidence = await self.evidence.mutate(
            evidence_id,
            lambda current: custody.transfer_custody(
                current, to, reason, signature, self.clock(), from_=from_
            ),
        )
        LOGGER.info(f"Evidence {evidence_id} transferred to {to}")
        return evidence

    async def mark_analyzed(
        self,
        evidence_id: UUID,
        analyzed_by: str,
        findings: str,
        notes: Optional[str] = None,
    ) -> Evidence:
        return await self.evidence.mutate(
            evidence_id,
            lambda current: custody.mark_analyzed(current, analyzed_by, findings, notes, self.clock()),
        )

    async def add_evidence_tag(self, evidence_id: UUID, tag: str) -> Evidence:
        return await self.evidence.mutate(
            evidence_id, lambda current: custody.add_evidence_tag(current, tag, self.clock())
        )

    async def link_evidence_to_vehicle(self, evidence_id: UUID, vehicle_number: int) -> Evidence:
        """Relate evidence to a vehicle of the same accident by its number.

        Raises:
            NotFoundError: If the evidence or the numbered vehicle does not exist
        """
        evidence = await self.evidence.require(evidence_id)
        vehicles = await self.vehicles.list_by_accident(evidence.accident_id)
        if not any(vehicle.vehicle_number == vehicle_number for vehicle in vehicles):
            raise NotFoundError(EntityKind.VEHICLE.value, f"#{vehicle_number} in accident {evidence.accident_id}")
        return await self.evidence.mutate(
            evidence_id, lambda current: custody.link_to_vehicle(current, vehicle_number, self.clock())
        )

    async def link_evidence_to_witness(self, evidence_id: UUID, witness_id: UUID) -> Evidence:
        """Relate evidence to a witness of the same accident.

        Raises:
            NotFoundError: If the evidence or witness does not exist
            ValidationError: If the witness belongs to another accident
        """
        evidence = await self.evidence.require(evidence_id)
        witness = await self.witnesses.require(witness_id)
        if witness.accident_id != evidence.accident_id:
            raise ValidationError("related_witnesses", "Witness belongs to a different accident")
        return await self.evidence.mutate(
            evidence_id, lambda current: custody.link_to_witness(current, witness_id, self.clock())
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def record_failed_login(self, user_id: UUID) -> User:
        user = await self.users.mutate(
            user_id,
            lambda current: accounts.record_failed_login(
                current,
                self.settings.max_login_attempts,
                self.settings.lockout_minutes,
                self.clock(),
            ),
        )
        if user.locked_until is not None and user.failed_login_attempts == 0:
            LOGGER.warning(f"User {user_id} locked until {user.locked_until.isoformat()}")
        return user

    async def record_successful_login(self, user_id: UUID) -> User:
        return await self.users.mutate(
            user_id, lambda current: accounts.record_successful_login(current, self.clock())
        )

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    async def get_statistics(self, family: str) -> Statistics:
        """Statistics for one record family.

        Args:
            family: One of ``case``, ``accident``, ``vehicle`` or ``claim``

        Raises:
            ValidationError: If ``family`` is not one of those
        """
        family = getattr(family, "value", family)
        if family == "case":
            return await self.cases.get_statistics(now=self.clock())
        if family == "accident":
            return await self.accidents.get_statistics()
        if family == "vehicle":
            return await self.vehicles.get_statistics()
        if family in ("claim", "insurance_claim"):
            return await self.claims.get_statistics()
        raise ValidationError("family", f"No statistics for '{family}'")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce(enum_type, value, field: str):
        try:
            return enum_type(value)
        except ValueError:
            raise ValidationError(field, f"'{value}' is not a valid {enum_type.__name__}")

    async def _prepare_new(
        self,
        record: Record,
        actor_id: Optional[UUID] = None,
        check_references: bool = True,
    ) -> Record:
        """Stamp timestamps, fill generated numbers and check constraints."""
        now = self.clock()
        record = record.model_copy(update={"created_at": now, "updated_at": now})
        if check_references:
            await self._check_references(record)

        if isinstance(record, Case) and not record.case_number:
            number = await self._generate_unique(
                EntityKind.CASE,
                "case_number",
                lambda: generate_case_number(self.settings.case_number_prefix, now),
            )
            record = record.model_copy(update={"case_number": number})
        elif isinstance(record, Evidence) and not record.evidence_number:
            number = await self._generate_unique(
                EntityKind.EVIDENCE,
                "evidence_number",
                lambda: generate_evidence_number(self.settings.evidence_number_prefix, now),
            )
            record = record.model_copy(update={"evidence_number": number})
        elif record.kind == EntityKind.VEHICLE and record.vehicle_number is None:
            number = await self.vehicles.next_vehicle_number(record.accident_id)
            record = record.model_copy(update={"vehicle_number": number})

        await self._check_unique(record)

        if isinstance(record, Case):
            if record.status in case_lifecycle.TERMINAL_STATUSES and record.closed_at is None:
                record = record.model_copy(update={"closed_at": now})
            record = case_lifecycle.record_case_created(record, actor_id, now)
        elif isinstance(record, InsuranceClaim):
            # A claim created past draft gets the milestone date of its status
            record = claim_lifecycle.transition_claim_status(record, record.status, now)
        return record

    async def _generate_unique(self, kind: EntityKind, field: str, factory: Callable[[], str]) -> str:
        for _ in range(MAX_NUMBER_ATTEMPTS):
            candidate = factory()
            taken = await self.storage.query(kind, lambda record: getattr(record, field) == candidate)
            if not taken:
                return candidate
        raise ValidationError(field, "Could not generate an unused number")

    async def _check_unique(self, record: Record) -> None:
        rule = UNIQUE_FIELDS.get(record.kind)
        if rule is None:
            return
        field, key = rule
        value = key(record)
        if value is None:
            return
        clashes = await self.storage.query(
            record.kind, lambda other: other.id != record.id and key(other) == value
        )
        if clashes:
            raise ValidationError(field, f"'{getattr(record, field)}' is already in use")

    async def _check_references(self, record: Record) -> None:
        """Make sure every record ``record`` points at exists.

        Raises:
            NotFoundError: For the first missing reference
        """
        if isinstance(record, Case):
            await self.users.require(record.user_id)
            if record.assigned_to is not None:
                await self.users.require(record.assigned_to)
        elif record.kind in (EntityKind.ACCIDENT, EntityKind.INSURANCE_CLAIM):
            await self.cases.require(record.case_id)
        elif record.kind in (EntityKind.VEHICLE, EntityKind.WITNESS, EntityKind.EVIDENCE):
            await self.accidents.require(record.accident_id)
            if isinstance(record, Evidence) and record.original_evidence_id is not None:
                await self.evidence.require(record.original_evidence_id)
