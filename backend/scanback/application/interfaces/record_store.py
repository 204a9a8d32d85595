"""Abstract repository interface (port) for tag record persistence."""

from abc import ABC, abstractmethod

from scanback.domain.entities import PublicTagView, RecordPatch, TagKind, TagRecord, TagStatus


class RecordStore(ABC):
    """Port for durable tag storage: implemented in the infrastructure layer.

    Every method is one atomic unit at the storage boundary; the lifecycle
    core adds no locking of its own.
    """

    @abstractmethod
    async def find_by_code(self, code: str) -> TagRecord | None:
        """Retrieve a full record by its code."""
        ...

    @abstractmethod
    async def find_public_view(self, code: str) -> PublicTagView | None:
        """Retrieve only the fields needed for public display."""
        ...

    @abstractmethod
    async def insert(self, record: TagRecord) -> TagRecord:
        """Persist a new record.

        Raises:
            UniqueConstraintViolationError: a record with this code already exists.
        """
        ...

    @abstractmethod
    async def update_by_code(self, code: str, patch: RecordPatch) -> TagRecord | None:
        """Apply ``patch`` atomically and return the updated record, or None if absent.

        The patch preconditions are checked under the same lock as the write.

        Raises:
            PatchConflictError: a precondition of ``patch`` does not hold.
        """
        ...

    @abstractmethod
    async def list_records(
        self,
        *,
        owner: str | None = None,
        kind: TagKind | None = None,
        status: TagStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[TagRecord]:
        """Retrieve a filtered, paginated list of records, newest first."""
        ...
