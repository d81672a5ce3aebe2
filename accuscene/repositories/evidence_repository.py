"""Repository for evidence items."""

from typing import List, Optional
from uuid import UUID

from accuscene.models import Evidence
from accuscene.models.enums import CustodyStatus, EvidenceType
from accuscene.repositories.base_repository import BaseRepository
from accuscene.storage.base import Storage


class EvidenceRepository(BaseRepository[Evidence]):
    """Repository for Evidence records."""

    def __init__(self, storage: Storage, **kwargs):
        super().__init__(storage, Evidence, **kwargs)

    async def get_by_evidence_number(self, evidence_number: str) -> Optional[Evidence]:
        return await self.find_one(lambda evidence: evidence.evidence_number == evidence_number)

    async def list_by_accident(self, accident_id: UUID) -> List[Evidence]:
        return await self.list(lambda evidence: evidence.accident_id == accident_id)

    async def list_by_type(self, evidence_type: EvidenceType) -> List[Evidence]:
        evidence_type = EvidenceType(evidence_type)
        return await self.list(lambda evidence: evidence.type == evidence_type)

    async def list_by_custody_status(self, status: CustodyStatus) -> List[Evidence]:
        status = CustodyStatus(status)
        return await self.list(lambda evidence: evidence.custody_status == status)

    async def list_requiring_analysis(self) -> List[Evidence]:
        """Evidence flagged for expert analysis that has not been analyzed yet.

        Highest priority first.
        """
        return await self.list(
            lambda evidence: evidence.requires_expert_analysis and not evidence.has_been_analyzed,
            key=lambda evidence: (evidence.priority or 0, evidence.updated_at),
        )
