"""In-process storage backed by dictionaries.

Every call yields to the event loop once before touching data, so callers see
the same interleavings they would against a real backend.
"""

import asyncio
from collections import defaultdict
from contextlib import AbstractAsyncContextManager
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from accuscene.core.exceptions import ConflictError
from accuscene.models import Record
from accuscene.models.enums import EntityKind
from accuscene.storage.base import Predicate, PutItem, RecordKey, Storage
from accuscene.storage.locks import KeyedLocks
from accuscene.utils.logging import get_logger

LOGGER = get_logger(__name__)


class InMemoryStorage(Storage):
    """Dictionary storage. Each instance is fully isolated from the others."""

    def __init__(self):
        self._records: Dict[EntityKind, Dict[UUID, Record]] = defaultdict(dict)
        self._locks = KeyedLocks()

    def _check_version(self, kind: EntityKind, record: Record, expected_version: Optional[int]) -> int:
        current = self._records[kind].get(record.id)
        actual = current.version if current is not None else 0
        if expected_version is not None and actual != expected_version:
            LOGGER.debug(f"Version mismatch on {kind.value} {record.id}: expected {expected_version}, found {actual}")
            raise ConflictError(kind.value, record.id, expected_version, actual)
        return actual + 1

    async def get(self, kind: EntityKind, record_id: UUID) -> Optional[Record]:
        await asyncio.sleep(0)
        return self._records[kind].get(record_id)

    async def put(
        self,
        kind: EntityKind,
        record: Record,
        expected_version: Optional[int] = None,
    ) -> Record:
        await asyncio.sleep(0)
        new_version = self._check_version(kind, record, expected_version)
        stored = record.model_copy(update={"version": new_version})
        self._records[kind][record.id] = stored
        return stored

    async def put_many(self, items: Sequence[PutItem]) -> List[Record]:
        await asyncio.sleep(0)
        # Check everything first so a conflict leaves no partial write behind
        versions = [self._check_version(kind, record, expected) for kind, record, expected in items]
        stored: List[Record] = []
        for (kind, record, _), version in zip(items, versions):
            saved = record.model_copy(update={"version": version})
            self._records[kind][record.id] = saved
            stored.append(saved)
        return stored

    async def delete(self, kind: EntityKind, record_id: UUID) -> bool:
        await asyncio.sleep(0)
        return self._records[kind].pop(record_id, None) is not None

    async def delete_many(self, keys: Sequence[RecordKey]) -> int:
        await asyncio.sleep(0)
        removed = 0
        for kind, record_id in keys:
            if self._records[kind].pop(record_id, None) is not None:
                removed += 1
        return removed

    async def query(self, kind: EntityKind, predicate: Optional[Predicate] = None) -> List[Record]:
        await asyncio.sleep(0)
        snapshot = list(self._records[kind].values())
        if predicate is None:
            return snapshot
        return [record for record in snapshot if predicate(record)]

    def lock(self, kind: EntityKind, record_id: UUID) -> AbstractAsyncContextManager:
        return self._locks.hold((kind, record_id))
