"""In-memory implementation of AuditRecordStore."""

import asyncio
from bisect import bisect_left, bisect_right
from collections.abc import AsyncIterator

from chronicle.audit.hashing import GENESIS_HASH
from chronicle.audit.models import AuditRecord, AuditRecordFilter
from chronicle.audit.store import AuditRecordStore
from chronicle.db.errors import ConflictError


def _sequence_of(record: AuditRecord) -> int:
    return record.sequence


class InMemoryAuditRecordStore(AuditRecordStore):
    """In-memory implementation of AuditRecordStore for testing and development.

    Records live in a list ordered by sequence. Each method completes its
    check-and-mutate step without awaiting, so appends are atomic with
    respect to other coroutines on the same event loop.
    Not suitable for production use.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._records: list[AuditRecord] = []

    async def append(self, record: AuditRecord) -> AuditRecord:
        """Persist a record if it extends the current tail."""
        tail = self._records[-1] if self._records else None
        expected_sequence = tail.sequence + 1 if tail else 0
        expected_previous = tail.hash if tail else GENESIS_HASH

        if record.sequence != expected_sequence:
            raise ConflictError(
                f"Sequence {record.sequence} does not extend tail "
                f"(expected {expected_sequence})"
            )
        if record.previous_hash != expected_previous:
            raise ConflictError(
                f"Record {record.sequence} does not link to the current tail hash"
            )

        self._records.append(record)
        return record

    async def get_tail(self) -> AuditRecord | None:
        """Get the most recently appended record."""
        return self._records[-1] if self._records else None

    async def get_record(self, sequence: int) -> AuditRecord | None:
        """Get a record by sequence."""
        index = bisect_left(self._records, sequence, key=_sequence_of)
        if index < len(self._records) and self._records[index].sequence == sequence:
            return self._records[index]
        return None

    async def iter_records(
        self,
        record_filter: AuditRecordFilter | None = None,
        *,
        start_sequence: int | None = None,
        end_sequence: int | None = None,
        batch_size: int = 500,
    ) -> AsyncIterator[AuditRecord]:
        """Stream records in sequence order, yielding control between batches."""
        record_filter = record_filter or AuditRecordFilter()

        low = 0
        if start_sequence is not None:
            low = bisect_left(self._records, start_sequence, key=_sequence_of)
        high = len(self._records)
        if end_sequence is not None:
            high = bisect_right(self._records, end_sequence, key=_sequence_of)

        # Slice now: records appended while streaming are outside the scan
        window = self._records[low:high]
        if record_filter.descending:
            window.reverse()

        skipped = 0
        emitted = 0
        for position, record in enumerate(window, start=1):
            if record_filter.limit is not None and emitted >= record_filter.limit:
                return
            if record_filter.matches(record):
                if skipped < record_filter.offset:
                    skipped += 1
                else:
                    emitted += 1
                    yield record
            if position % batch_size == 0:
                await asyncio.sleep(0)

    async def count_records(self, record_filter: AuditRecordFilter | None = None) -> int:
        """Count records matching the filter's criteria."""
        if record_filter is None:
            return len(self._records)
        return sum(1 for record in self._records if record_filter.matches(record))
