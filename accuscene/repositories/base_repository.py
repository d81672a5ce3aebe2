import asyncio
from datetime import datetime
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from accuscene.config import settings
from accuscene.core.exceptions import ConflictError, NotFoundError, StorageError
from accuscene.domain.validation import validate
from accuscene.models import Record, utc_now
from accuscene.storage.base import Predicate, Storage
from accuscene.utils.logging import get_logger

# Generic type for the record class a repository manages
RecordT = TypeVar("RecordT", bound=Record)

LOGGER = get_logger(__name__)


def newest_first(record: Record) -> datetime:
    return record.updated_at


class BaseRepository(Generic[RecordT]):
    """Base repository implementing common CRUD operations over a ``Storage``.

    Every write validates the record first, so an invalid record never reaches
    the storage. Read-modify-write cycles go through ``mutate``, which holds the
    per-record lock and retries when another writer got there first.
    """

    def __init__(
        self,
        storage: Storage,
        model: Type[RecordT],
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the repository.

        Args:
            storage: Storage handle shared by all repositories of a service
            model: The record class this repository manages
            max_retries: Attempts for a conflicting ``mutate`` (defaults to settings)
            retry_delay: Base back-off delay in seconds (defaults to settings)
            clock: Time source for time-relative validation rules
        """
        self.storage = storage
        self.model = model
        self.kind = model.kind
        self.max_retries = max_retries or settings.mutation_max_retries
        self.retry_delay = settings.mutation_retry_delay if retry_delay is None else retry_delay
        self.clock = clock
        self.logger = LOGGER

    async def get_by_id(self, id: UUID) -> Optional[RecordT]:
        """Get a record by its ID.

        Args:
            id: The UUID of the record

        Returns:
            The record if found, None otherwise
        """
        try:
            return await self.storage.get(self.kind, id)
        except StorageError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def require(self, id: UUID) -> RecordT:
        """Get a record by its ID, raising ``NotFoundError`` when it is missing."""
        record = await self.get_by_id(id)
        if record is None:
            raise NotFoundError(self.kind.value, id)
        return record

    async def list(
        self,
        predicate: Optional[Predicate] = None,
        key: Callable[[RecordT], Any] = newest_first,
        reverse: bool = True,
    ) -> List[RecordT]:
        """Get all records matching ``predicate``.

        Args:
            predicate: Filter applied to each record; ``None`` keeps everything
            key: Sort key (defaults to ``updated_at``)
            reverse: Sort descending when True

        Returns:
            List of records, most recently updated first by default
        """
        try:
            records = await self.storage.query(self.kind, predicate)
        except StorageError as e:
            self.logger.error(
                f"Error retrieving all {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise
        return sorted(records, key=key, reverse=reverse)

    async def find_one(self, predicate: Predicate) -> Optional[RecordT]:
        matches = await self.list(predicate)
        return matches[0] if matches else None

    async def create(self, record: RecordT) -> RecordT:
        """Validate and store a new record.

        Raises:
            ValidationError: If the record breaks a field invariant
            ConflictError: If a record with the same ID already exists
        """
        record = validate(record, self.clock())
        try:
            stored = await self.storage.put(self.kind, record, expected_version=0)
        except StorageError as e:
            self.logger.error(
                f"Error creating {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise
        self.logger.info(f"Created {self.kind.value} {stored.id}")
        return stored

    async def update(self, record: RecordT) -> RecordT:
        """Validate and store a record read earlier.

        Fails with ``ConflictError`` when the stored version moved on since
        ``record`` was read. Use ``mutate`` to retry automatically.
        """
        record = validate(record, self.clock())
        try:
            return await self.storage.put(self.kind, record, expected_version=record.version)
        except StorageError as e:
            self.logger.error(
                f"Error updating {self.model.__name__} {record.id}: {str(e)}",
                exc_info=True
            )
            raise

    async def mutate(self, id: UUID, fn: Callable[[RecordT], RecordT]) -> RecordT:
        """Apply ``fn`` to the current stored value and persist the result.

        The cycle (read, apply, validate, write) runs under the record's lock
        and is repeated with exponential back-off when the write hits a
        version conflict.

        Args:
            id: The UUID of the record to change
            fn: Pure function from the current record to the new one

        Returns:
            The stored record

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: If ``fn`` fails or produces an invalid record
            ConflictError: If every attempt lost a race
        """
        for attempt in range(self.max_retries):
            async with self.storage.lock(self.kind, id):
                current = await self.require(id)
                updated = validate(fn(current), self.clock())
                try:
                    return await self.storage.put(self.kind, updated, expected_version=current.version)
                except ConflictError:
                    self.logger.warning(
                        f"Version conflict on {self.kind.value} {id} "
                        f"(Attempt {attempt + 1}/{self.max_retries})"
                    )
                    if attempt == self.max_retries - 1:
                        raise
            await self._wait_before_retry(attempt)
        raise ConflictError(self.kind.value, id)

    async def delete(self, id: UUID) -> bool:
        """Delete a record by ID.

        Returns:
            True if deleted, False if not found
        """
        try:
            deleted = await self.storage.delete(self.kind, id)
        except StorageError as e:
            self.logger.error(
                f"Error deleting {self.model.__name__} {id}: {str(e)}",
                exc_info=True
            )
            raise
        if deleted:
            self.logger.info(f"Deleted {self.kind.value} {id}")
        return deleted

    async def count(self, predicate: Optional[Predicate] = None) -> int:
        """Count records matching ``predicate``."""
        return len(await self.list(predicate))

    async def _wait_before_retry(self, attempt: int):
        """Exponential backoff wait."""
        wait_time = self.retry_delay * (2 ** attempt)
        await asyncio.sleep(wait_time)
