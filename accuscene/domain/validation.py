"""Field invariants checked before every create and update.

Each ``validate_*`` function returns the record in normalized form (user
email lower-cased) or raises ``ValidationError`` naming the offending field.
Normalization is idempotent, so validating an already valid record returns an
equal record.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Optional, Type

from email_validator import EmailNotValidError, validate_email

from accuscene.core.exceptions import ValidationError
from accuscene.models import (
    Accident,
    Case,
    Evidence,
    InsuranceClaim,
    Record,
    User,
    Vehicle,
    Witness,
    utc_now,
)

MIN_VEHICLE_YEAR = 1900
MAX_SPEED = 300
MAX_SPEED_LIMIT = 200
MAX_WITNESS_AGE = 150


def _require_text(value: Optional[str], field: str, label: str) -> None:
    if value is None or not value.strip():
        raise ValidationError(field, f"{label} is required")


def _check_non_negative(value, field: str, label: str) -> None:
    if value is not None and value < 0:
        raise ValidationError(field, f"{label} cannot be negative")


def _check_range(value, field: str, label: str, low, high) -> None:
    if value is not None and not low <= value <= high:
        raise ValidationError(field, f"{label} must be between {low} and {high}")


def _check_email(value: Optional[str], field: str, label: str) -> None:
    if not value:
        return
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(field, f"Invalid {label} format: {e}") from e


def normalize_email(email: str) -> str:
    """Canonical form used for storage and case-insensitive lookups."""
    return email.strip().lower()


def validate_user(user: User, now: Optional[datetime] = None) -> User:
    _require_text(user.email, "email", "Email")
    email = normalize_email(user.email)
    _check_email(email, "email", "email")
    _require_text(user.password_hash, "password_hash", "Password hash")
    _check_non_negative(user.failed_login_attempts, "failed_login_attempts", "Failed login attempts")
    if email != user.email:
        return user.model_copy(update={"email": email})
    return user


def validate_case(case: Case, now: Optional[datetime] = None) -> Case:
    _require_text(case.title, "title", "Case title")
    if case.case_number is not None:
        _require_text(case.case_number, "case_number", "Case number")
    _check_email(case.client_email, "client_email", "client email")
    for tag in case.tags:
        _require_text(tag, "tags", "Tag text")
    return case


def validate_accident(accident: Accident, now: Optional[datetime] = None) -> Accident:
    _require_text(accident.location, "location", "Accident location")
    _check_non_negative(accident.injuries, "injuries", "Number of injuries")
    _check_non_negative(accident.fatalities, "fatalities", "Number of fatalities")
    _check_non_negative(accident.estimated_damage, "estimated_damage", "Estimated damage")
    _check_range(accident.latitude, "latitude", "Latitude", -90, 90)
    _check_range(accident.longitude, "longitude", "Longitude", -180, 180)
    _check_range(accident.speed_limit, "speed_limit", "Speed limit", 0, MAX_SPEED_LIMIT)
    _check_non_negative(accident.number_of_lanes, "number_of_lanes", "Number of lanes")
    return accident


def validate_vehicle(vehicle: Vehicle, now: Optional[datetime] = None) -> Vehicle:
    current_year = (now or utc_now()).year

    _require_text(vehicle.make, "make", "Vehicle make")
    _require_text(vehicle.model, "model", "Vehicle model")
    _require_text(vehicle.driver_name, "driver_name", "Driver name")
    if vehicle.vehicle_number is not None and vehicle.vehicle_number < 1:
        raise ValidationError("vehicle_number", "Vehicle number must be at least 1")
    _check_range(vehicle.year, "year", "Vehicle year", MIN_VEHICLE_YEAR, current_year + 2)
    _check_range(vehicle.speed, "speed", "Speed", 0, MAX_SPEED)
    _check_range(vehicle.estimated_speed, "estimated_speed", "Estimated speed", 0, MAX_SPEED)
    _check_range(vehicle.direction, "direction", "Direction", 0, 360)
    _check_non_negative(vehicle.estimated_damage, "estimated_damage", "Estimated damage")
    _check_non_negative(vehicle.occupants, "occupants", "Number of occupants")
    _check_non_negative(vehicle.injured_occupants, "injured_occupants", "Injured occupants")

    if vehicle.injured_occupants > vehicle.occupants:
        raise ValidationError(
            "injured_occupants",
            "Injured occupants cannot exceed total occupants",
        )
    return vehicle


def validate_witness(witness: Witness, now: Optional[datetime] = None) -> Witness:
    _require_text(witness.name, "name", "Witness name")
    _require_text(witness.statement, "statement", "Witness statement")
    _check_range(witness.age, "age", "Age", 0, MAX_WITNESS_AGE)
    _check_non_negative(witness.distance_from_accident, "distance_from_accident", "Distance")
    _check_email(witness.email, "email", "email")
    return witness


def validate_evidence(evidence: Evidence, now: Optional[datetime] = None) -> Evidence:
    _require_text(evidence.description, "description", "Evidence description")
    _require_text(evidence.collected_by, "collected_by", "Evidence collector")
    if evidence.evidence_number is not None:
        _require_text(evidence.evidence_number, "evidence_number", "Evidence number")
    _check_range(evidence.priority, "priority", "Priority", 1, 5)
    if evidence.copy_number < 1:
        raise ValidationError("copy_number", "Copy number must be at least 1")
    _check_non_negative(evidence.file_size, "file_size", "File size")
    return evidence


def validate_claim(claim: InsuranceClaim, now: Optional[datetime] = None) -> InsuranceClaim:
    _require_text(claim.claim_number, "claim_number", "Claim number")
    _require_text(claim.insurer, "insurer", "Insurer")
    if claim.amount is None or claim.amount <= Decimal("0"):
        raise ValidationError("amount", "Claim amount must be greater than zero")

    _check_non_negative(claim.approved_amount, "approved_amount", "Approved amount")
    _check_non_negative(claim.paid_amount, "paid_amount", "Paid amount")
    _check_non_negative(claim.deductible, "deductible", "Deductible")

    if (
        claim.paid_amount is not None
        and claim.approved_amount is not None
        and claim.paid_amount > claim.approved_amount
    ):
        raise ValidationError("paid_amount", "Paid amount cannot exceed approved amount")

    _check_email(claim.claimant_email, "claimant_email", "claimant email")
    _check_email(claim.adjuster_email, "adjuster_email", "adjuster email")
    _check_email(claim.attorney_email, "attorney_email", "attorney email")

    _check_non_negative(claim.number_of_vehicles, "number_of_vehicles", "Number of vehicles")
    _check_non_negative(claim.number_of_injuries, "number_of_injuries", "Number of injuries")
    return claim


VALIDATORS: Dict[Type[Record], Callable[..., Record]] = {
    User: validate_user,
    Case: validate_case,
    Accident: validate_accident,
    Vehicle: validate_vehicle,
    Witness: validate_witness,
    Evidence: validate_evidence,
    InsuranceClaim: validate_claim,
}


def validate(record: Record, now: Optional[datetime] = None) -> Record:
    """Validate any record, dispatching on its type.

    Args:
        record: Record to check
        now: Reference time for time-relative rules (vehicle model year)

    Returns:
        The normalized record

    Raises:
        ValidationError: If an invariant is violated
    """
    validator = VALIDATORS.get(type(record))
    if validator is None:
        raise ValidationError("kind", f"No validation rules for {type(record).__name__}")
    return validator(record, now)
