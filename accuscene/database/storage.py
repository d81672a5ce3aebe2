"""Storage implementation on top of an async SQLAlchemy engine.

Each record lives in the ``records`` table as a JSON payload. The ``version``
column is the optimistic-lock counter: updates are issued as
``UPDATE ... WHERE version = :expected`` and a zero row count is a conflict.
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from accuscene.core.exceptions import ConflictError, StorageError
from accuscene.database.models import RecordRow
from accuscene.models import Record, record_type
from accuscene.models.enums import EntityKind
from accuscene.storage.base import Predicate, PutItem, RecordKey, Storage
from accuscene.storage.locks import KeyedLocks
from accuscene.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SQLAlchemyStorage(Storage):
    """Relational storage. One short transaction per call."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker
        self._locks = KeyedLocks()

    @staticmethod
    def _to_payload(record: Record) -> Dict[str, Any]:
        return record.model_dump(mode="json", by_alias=True)

    @staticmethod
    def _to_record(row: RecordRow) -> Record:
        payload = dict(row.payload)
        payload["version"] = row.version
        return record_type(row.kind).model_validate(payload)

    async def _current_version(self, session: AsyncSession, kind: EntityKind, record_id: UUID) -> int:
        result = await session.execute(
            select(RecordRow.version).where(RecordRow.kind == kind.value, RecordRow.id == record_id)
        )
        version = result.scalar_one_or_none()
        return version or 0

    async def _write(
        self,
        session: AsyncSession,
        kind: EntityKind,
        record: Record,
        expected_version: Optional[int],
    ) -> Record:
        if expected_version is None:
            expected_version = await self._current_version(session, kind, record.id)

        new_version = expected_version + 1
        stored = record.model_copy(update={"version": new_version})
        payload = self._to_payload(stored)

        if expected_version == 0:
            existing = await self._current_version(session, kind, record.id)
            if existing:
                raise ConflictError(kind.value, record.id, expected_version, existing)
            session.add(RecordRow(
                kind=kind.value,
                id=record.id,
                version=new_version,
                payload=payload,
                created_at=stored.created_at,
                updated_at=stored.updated_at,
            ))
            await session.flush()
            return stored

        result = await session.execute(
            update(RecordRow)
            .where(
                RecordRow.kind == kind.value,
                RecordRow.id == record.id,
                RecordRow.version == expected_version,
            )
            .values(version=new_version, payload=payload, updated_at=stored.updated_at)
        )
        if result.rowcount == 0:
            actual = await self._current_version(session, kind, record.id)
            raise ConflictError(kind.value, record.id, expected_version, actual)
        return stored

    async def get(self, kind: EntityKind, record_id: UUID) -> Optional[Record]:
        try:
            async with self.session_maker() as session:
                row = await session.get(RecordRow, (kind.value, record_id))
                return self._to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            LOGGER.error(f"Error getting {kind.value} {record_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to read {kind.value} {record_id}", e) from e

    async def put(
        self,
        kind: EntityKind,
        record: Record,
        expected_version: Optional[int] = None,
    ) -> Record:
        return (await self.put_many([(kind, record, expected_version)]))[0]

    async def put_many(self, items: Sequence[PutItem]) -> List[Record]:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    return [
                        await self._write(session, kind, record, expected)
                        for kind, record, expected in items
                    ]
        except ConflictError:
            raise
        except IntegrityError as e:
            # Lost an insert race against another writer
            kind, record, expected = items[0]
            LOGGER.warning(f"Concurrent insert detected for {kind.value} {record.id}")
            raise ConflictError(kind.value, record.id, expected) from e
        except SQLAlchemyError as e:
            LOGGER.error(f"Error writing {len(items)} record(s): {e}", exc_info=True)
            raise StorageError("Failed to write records", e) from e

    async def delete(self, kind: EntityKind, record_id: UUID) -> bool:
        return await self.delete_many([(kind, record_id)]) == 1

    async def delete_many(self, keys: Sequence[RecordKey]) -> int:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    removed = 0
                    for kind, record_id in keys:
                        result = await session.execute(
                            delete(RecordRow).where(
                                RecordRow.kind == kind.value,
                                RecordRow.id == record_id,
                            )
                        )
                        removed += result.rowcount
                    return removed
        except SQLAlchemyError as e:
            LOGGER.error(f"Error deleting {len(keys)} record(s): {e}", exc_info=True)
            raise StorageError("Failed to delete records", e) from e

    async def query(self, kind: EntityKind, predicate: Optional[Predicate] = None) -> List[Record]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(select(RecordRow).where(RecordRow.kind == kind.value))
                records = [self._to_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            LOGGER.error(f"Error querying {kind.value}: {e}", exc_info=True)
            raise StorageError(f"Failed to query {kind.value}", e) from e

        if predicate is None:
            return records
        return [record for record in records if predicate(record)]

    def lock(self, kind: EntityKind, record_id: UUID) -> AbstractAsyncContextManager:
        return self._locks.hold((kind, record_id))
