"""Storage interface.

Implementations persist records keyed by ``(kind, id)`` and keep a version
number per record. A write that names an ``expected_version`` only succeeds
when the stored version still matches; version ``0`` means "not stored yet".
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Callable, List, Optional, Sequence, Tuple
from uuid import UUID

from accuscene.models import Record
from accuscene.models.enums import EntityKind

Predicate = Callable[[Record], bool]

# (kind, record, expected_version)
PutItem = Tuple[EntityKind, Record, Optional[int]]

# (kind, record id)
RecordKey = Tuple[EntityKind, UUID]


class Storage(ABC):
    """Durable create/read/update/delete for records."""

    @abstractmethod
    async def get(self, kind: EntityKind, record_id: UUID) -> Optional[Record]:
        """Fetch a record, or ``None`` when it does not exist."""

    @abstractmethod
    async def put(
        self,
        kind: EntityKind,
        record: Record,
        expected_version: Optional[int] = None,
    ) -> Record:
        """Write a record and return it with its new stored version.

        Args:
            kind: Record family
            record: Value to store
            expected_version: Version the caller read; ``None`` skips the check

        Raises:
            ConflictError: If the stored version differs from ``expected_version``
            StorageError: If the backend fails
        """

    @abstractmethod
    async def put_many(self, items: Sequence[PutItem]) -> List[Record]:
        """Write several records atomically: either all are stored or none."""

    @abstractmethod
    async def delete(self, kind: EntityKind, record_id: UUID) -> bool:
        """Delete a record. Returns ``False`` when it did not exist."""

    @abstractmethod
    async def delete_many(self, keys: Sequence[RecordKey]) -> int:
        """Delete several records atomically. Returns the number removed."""

    @abstractmethod
    async def query(self, kind: EntityKind, predicate: Optional[Predicate] = None) -> List[Record]:
        """Return a snapshot of every record of ``kind`` matching ``predicate``."""

    @abstractmethod
    def lock(self, kind: EntityKind, record_id: UUID) -> AbstractAsyncContextManager:
        """Serialize read-modify-write cycles on one record within this process."""

    async def count(self, kind: EntityKind, predicate: Optional[Predicate] = None) -> int:
        return len(await self.query(kind, predicate))
