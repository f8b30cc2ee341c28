"""Tests for InMemoryAuditRecordStore."""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from chronicle.audit.models import AuditRecordFilter
from chronicle.audit.stores import InMemoryAuditRecordStore
from chronicle.db.errors import ConflictError
from tests.factories import AuditRecordFactory


@pytest.fixture
def store() -> InMemoryAuditRecordStore:
    """Create a fresh store for each test."""
    return InMemoryAuditRecordStore()


@pytest.fixture
def records():
    """Five correctly chained records."""
    return AuditRecordFactory.chain(5)


@pytest_asyncio.fixture
async def filled_store(store, records) -> InMemoryAuditRecordStore:
    """Store holding the five chained records."""
    for record in records:
        await store.append(record)
    return store


class TestAppend:
    """Tests for conditional appends."""

    @pytest.mark.asyncio
    async def test_append_to_empty_store(self, store, records):
        """Should accept sequence 0 linked to genesis."""
        await store.append(records[0])

        tail = await store.get_tail()
        assert tail == records[0]

    @pytest.mark.asyncio
    async def test_rejects_wrong_first_sequence(self, store, records):
        """Should reject a first record that is not sequence 0."""
        with pytest.raises(ConflictError):
            await store.append(records[1])

    @pytest.mark.asyncio
    async def test_rejects_stale_previous_hash(self, store, records):
        """Should reject a record that does not link to the tail."""
        await store.append(records[0])
        forged = records[1].model_copy(update={"previous_hash": "f" * 64})

        with pytest.raises(ConflictError):
            await store.append(forged)
        assert await store.count_records() == 1

    @pytest.mark.asyncio
    async def test_rejects_duplicate_sequence(self, store, records):
        """Should reject appending the same position twice."""
        await store.append(records[0])
        with pytest.raises(ConflictError):
            await store.append(records[0])


class TestReads:
    """Tests for tail, point and range reads."""

    @pytest.mark.asyncio
    async def test_tail_of_empty_store(self, store):
        """Should return None when empty."""
        assert await store.get_tail() is None

    @pytest.mark.asyncio
    async def test_get_record(self, filled_store, records):
        """Should find records by sequence."""
        assert await filled_store.get_record(3) == records[3]
        assert await filled_store.get_record(99) is None

    @pytest.mark.asyncio
    async def test_get_record_after_gap(self, filled_store, records):
        """Should still find records when a middle one is missing."""
        del filled_store._records[2]

        assert await filled_store.get_record(2) is None
        assert await filled_store.get_record(3) == records[3]

    @pytest.mark.asyncio
    async def test_iter_records_in_order(self, filled_store):
        """Should stream ascending by sequence."""
        sequences = [r.sequence async for r in filled_store.iter_records()]
        assert sequences == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_iter_records_bounds_inclusive(self, filled_store):
        """Should honor inclusive sequence bounds."""
        sequences = [
            r.sequence
            async for r in filled_store.iter_records(start_sequence=1, end_sequence=3)
        ]
        assert sequences == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_iter_records_small_batches(self, filled_store):
        """Should return everything regardless of batch size."""
        sequences = [r.sequence async for r in filled_store.iter_records(batch_size=2)]
        assert sequences == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_iter_records_is_a_snapshot(self, filled_store):
        """Should not include records appended mid-stream."""
        extra = AuditRecordFactory.chain(6)[5]
        seen = []
        async for record in filled_store.iter_records():
            seen.append(record.sequence)
            if record.sequence == 0:
                # Not chained to this store's tail; placed directly
                filled_store._records.append(extra)
        assert seen == [0, 1, 2, 3, 4]


class TestFiltering:
    """Tests for filters, ordering and paging."""

    @pytest.mark.asyncio
    async def test_descending_with_limit(self, filled_store):
        """Should return newest first up to the limit."""
        record_filter = AuditRecordFilter(descending=True, limit=2)
        records = await filled_store.list_records(record_filter)
        assert [r.sequence for r in records] == [4, 3]

    @pytest.mark.asyncio
    async def test_offset(self, filled_store):
        """Should skip matching records."""
        records = await filled_store.list_records(AuditRecordFilter(offset=3))
        assert [r.sequence for r in records] == [3, 4]

    @pytest.mark.asyncio
    async def test_limit_zero(self, filled_store):
        """Should return nothing for limit 0."""
        assert await filled_store.list_records(AuditRecordFilter(limit=0)) == []

    @pytest.mark.asyncio
    async def test_filter_by_resource(self, filled_store):
        """Should apply criteria."""
        records = await filled_store.list_records(AuditRecordFilter(resource="/jobs/2"))
        assert [r.sequence for r in records] == [2]

    @pytest.mark.asyncio
    async def test_count_ignores_paging(self, filled_store):
        """Should count every match regardless of limit."""
        assert await filled_store.count_records(AuditRecordFilter(limit=1)) == 5

    @pytest.mark.asyncio
    async def test_count_by_time(self, store):
        """Should count records inside a time window."""
        t0 = datetime(2024, 1, 1, tzinfo=UTC)
        for record in AuditRecordFactory.chain(3, timestamp=t0):
            await store.append(record)

        assert await store.count_records(AuditRecordFilter(start_time=t0)) == 3
        later = AuditRecordFilter(start_time=t0 + timedelta(seconds=1))
        assert await store.count_records(later) == 0
