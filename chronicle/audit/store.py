"""AuditRecordStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from chronicle.audit.models import AuditRecord, AuditRecordFilter


class AuditRecordStore(ABC):
    """Ordered, append-only storage for hash-chained audit records.

    Implementations must make append conditional: a record is accepted only
    if it extends the current tail (sequence is tail.sequence + 1, or 0 on an
    empty store, and previous_hash equals the tail's hash, or the genesis
    hash). Anything else raises chronicle.db.errors.ConflictError, which is
    what keeps independent writer processes from forking the chain.

    Infrastructure failures raise chronicle.db.errors.ConnectionError. A
    stored row that no longer validates as an AuditRecord raises
    chronicle.db.errors.CorruptRecordError from the read methods.
    """

    @abstractmethod
    async def append(self, record: AuditRecord) -> AuditRecord:
        """Atomically persist a record that extends the current tail."""
        pass

    @abstractmethod
    async def get_tail(self) -> AuditRecord | None:
        """Get the most recently appended record, or None when empty."""
        pass

    @abstractmethod
    async def get_record(self, sequence: int) -> AuditRecord | None:
        """Get a record by sequence."""
        pass

    @abstractmethod
    def iter_records(
        self,
        record_filter: AuditRecordFilter | None = None,
        *,
        start_sequence: int | None = None,
        end_sequence: int | None = None,
        batch_size: int = 500,
    ) -> AsyncIterator[AuditRecord]:
        """Stream records in sequence order.

        Sequence bounds are inclusive. Ordering, limit and offset come from
        the filter (ascending by default). Records are fetched batch_size at
        a time so memory does not grow with the log.
        """
        pass

    @abstractmethod
    async def count_records(self, record_filter: AuditRecordFilter | None = None) -> int:
        """Count records matching the filter's criteria, ignoring paging."""
        pass

    async def list_records(
        self, record_filter: AuditRecordFilter | None = None
    ) -> list[AuditRecord]:
        """Materialize iter_records into a list."""
        return [record async for record in self.iter_records(record_filter)]
