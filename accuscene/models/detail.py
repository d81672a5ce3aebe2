"""Composite read views assembled by the repositories."""

from typing import List, Optional

from pydantic import BaseModel, Field

from accuscene.models.accident import Accident
from accuscene.models.case import Case
from accuscene.models.claim import InsuranceClaim
from accuscene.models.evidence import Evidence
from accuscene.models.vehicle import Vehicle
from accuscene.models.witness import Witness


class AccidentDetail(BaseModel):
    """An accident with the vehicles, witnesses and evidence attached to it."""

    accident: Accident
    vehicles: List[Vehicle] = Field(default_factory=list)
    witnesses: List[Witness] = Field(default_factory=list)
    evidence: List[Evidence] = Field(default_factory=list)


class CaseDetail(BaseModel):
    """A case with its accident subtree and insurance claims."""

    case: Case
    accident: Optional[AccidentDetail] = None
    claims: List[InsuranceClaim] = Field(default_factory=list)
