"""Record types of the investigation domain.

``build_record`` turns an inbound payload into a typed record, reporting
shape problems as ``ValidationError`` so callers see a single error kind.
"""

from typing import Any, Dict, Mapping, Type

from pydantic import ValidationError as PydanticValidationError

from accuscene.core.exceptions import ValidationError
from accuscene.models.accident import Accident, derive_severity
from accuscene.models.base import Record, ValueModel, utc_now
from accuscene.models.case import Case, CaseAuditEntry, FieldChange
from accuscene.models.claim import (
    ClaimCommunication,
    ClaimDocument,
    ClaimPayment,
    InsuranceClaim,
)
from accuscene.models.detail import AccidentDetail, CaseDetail
from accuscene.models.enums import EntityKind
from accuscene.models.evidence import CustodyEntry, Evidence
from accuscene.models.statistics import (
    AccidentStatistics,
    CaseStatistics,
    ClaimStatistics,
    VehicleStatistics,
)
from accuscene.models.user import User
from accuscene.models.vehicle import Position, Vehicle
from accuscene.models.witness import Witness

RECORD_TYPES: Dict[EntityKind, Type[Record]] = {
    EntityKind.USER: User,
    EntityKind.CASE: Case,
    EntityKind.ACCIDENT: Accident,
    EntityKind.VEHICLE: Vehicle,
    EntityKind.WITNESS: Witness,
    EntityKind.EVIDENCE: Evidence,
    EntityKind.INSURANCE_CLAIM: InsuranceClaim,
}


def record_type(kind: EntityKind | str) -> Type[Record]:
    """Resolve the record class for a kind, rejecting unknown kinds."""
    try:
        return RECORD_TYPES[EntityKind(kind)]
    except ValueError:
        raise ValidationError("kind", f"Unknown entity kind '{kind}'")


def build_record(kind: EntityKind | str, payload: Mapping[str, Any]) -> Record:
    """Build a record of ``kind`` from a plain mapping.

    Args:
        kind: Entity kind (enum member or its string value)
        payload: Field values, typically decoded JSON

    Returns:
        The typed record

    Raises:
        ValidationError: If the payload does not fit the record's shape
    """
    model = record_type(kind)
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise as_validation_error(e) from e


def apply_changes(record: Record, changes: Mapping[str, Any]) -> Record:
    """Merge field changes into a record, re-running type coercion.

    Raises:
        ValidationError: If a changed value does not fit the field type
    """
    try:
        return type(record).model_validate({**record.model_dump(), **dict(changes)})
    except PydanticValidationError as e:
        raise as_validation_error(e) from e


def as_validation_error(error: PydanticValidationError) -> ValidationError:
    """Collapse a pydantic error into the first offending field."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    return ValidationError(field, first.get("msg", "Invalid value"))


__all__ = [
    "Accident",
    "AccidentDetail",
    "AccidentStatistics",
    "Case",
    "CaseAuditEntry",
    "CaseDetail",
    "CaseStatistics",
    "ClaimCommunication",
    "ClaimDocument",
    "ClaimPayment",
    "ClaimStatistics",
    "CustodyEntry",
    "EntityKind",
    "Evidence",
    "FieldChange",
    "InsuranceClaim",
    "Position",
    "RECORD_TYPES",
    "Record",
    "User",
    "ValueModel",
    "Vehicle",
    "VehicleStatistics",
    "Witness",
    "apply_changes",
    "as_validation_error",
    "build_record",
    "derive_severity",
    "record_type",
    "utc_now",
]
