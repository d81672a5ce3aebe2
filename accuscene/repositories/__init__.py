"""Repositories: one per record family, all sharing one ``Storage``."""

from accuscene.repositories.accident_repository import AccidentRepository
from accuscene.repositories.base_repository import BaseRepository
from accuscene.repositories.case_repository import CaseRepository
from accuscene.repositories.evidence_repository import EvidenceRepository
from accuscene.repositories.insurance_claim_repository import InsuranceClaimRepository
from accuscene.repositories.user_repository import UserRepository
from accuscene.repositories.vehicle_repository import VehicleRepository
from accuscene.repositories.witness_repository import WitnessRepository

__all__ = [
    "AccidentRepository",
    "BaseRepository",
    "CaseRepository",
    "EvidenceRepository",
    "InsuranceClaimRepository",
    "UserRepository",
    "VehicleRepository",
    "WitnessRepository",
]
