"""Repository for witnesses."""

from typing import List
from uuid import UUID

from accuscene.models import Witness
from accuscene.models.enums import WitnessReliability
from accuscene.repositories.base_repository import BaseRepository
from accuscene.storage.base import Storage


class WitnessRepository(BaseRepository[Witness]):
    """Repository for Witness records."""

    def __init__(self, storage: Storage, **kwargs):
        super().__init__(storage, Witness, **kwargs)

    async def list_by_accident(self, accident_id: UUID) -> List[Witness]:
        return await self.list(lambda witness: witness.accident_id == accident_id)

    async def list_by_reliability(self, reliability: WitnessReliability) -> List[Witness]:
        reliability = WitnessReliability(reliability)
        return await self.list(lambda witness: witness.reliability == reliability)

    async def list_willing_to_testify(self, accident_id: UUID = None) -> List[Witness]:
        """Witnesses willing to testify, optionally limited to one accident."""
        return await self.list(
            lambda witness: witness.willing_to_testify
            and (accident_id is None or witness.accident_id == accident_id)
        )
