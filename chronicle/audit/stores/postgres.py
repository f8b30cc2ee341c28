"""PostgreSQL implementation of AuditRecordStore.

Uses asyncpg for async database access. Appends from any number of
processes are serialized by a transaction-scoped advisory lock and guarded
by the sequence primary key, so the table never holds a forked chain.
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import asyncpg

from chronicle.audit.hashing import GENESIS_HASH
from chronicle.audit.models import AuditRecord, AuditRecordFilter
from chronicle.audit.store import AuditRecordStore
from chronicle.db.errors import (
    ConflictError,
    ConnectionError,
    CorruptRecordError,
    StoreError,
)
from chronicle.db.pool import PostgresPool
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)

# pg_advisory_xact_lock key shared by every writer of audit_records
APPEND_LOCK_KEY = 0x61756469  # "audi"

_COLUMNS = """
    sequence, timestamp, event_type, severity, status, user_id,
    resource, action, details, ip_address, user_agent, correlation_id,
    source, metadata, previous_hash, hash
"""


class PostgresAuditRecordStore(AuditRecordStore):
    """PostgreSQL implementation of AuditRecordStore.

    Uses asyncpg connection pool for efficient database access.
    Records are insert-only; this class exposes no update or delete.
    """

    def __init__(self, pool: PostgresPool) -> None:
        """Initialize with connection pool.

        Args:
            pool: PostgreSQL connection pool
        """
        self._pool = pool

    async def append(self, record: AuditRecord) -> AuditRecord:
        """Insert a record if it extends the current tail."""
        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute("SELECT pg_advisory_xact_lock($1)", APPEND_LOCK_KEY)
                    tail = await conn.fetchrow(
                        "SELECT sequence, hash FROM audit_records "
                        "ORDER BY sequence DESC LIMIT 1"
                    )
                    expected_sequence = tail["sequence"] + 1 if tail else 0
                    expected_previous = tail["hash"] if tail else GENESIS_HASH
                    if (
                        record.sequence != expected_sequence
                        or record.previous_hash != expected_previous
                    ):
                        raise ConflictError(
                            f"Record {record.sequence} does not extend tail "
                            f"(expected sequence {expected_sequence})"
                        )
                    await conn.execute(
                        f"""
                        INSERT INTO audit_records ({_COLUMNS})
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb,
                                $10, $11, $12, $13, $14::jsonb, $15, $16)
                        """,
                        record.sequence,
                        record.timestamp,
                        record.event_type.value,
                        record.severity.value,
                        record.status.value,
                        record.user_id,
                        record.resource,
                        record.action,
                        json.dumps(record.details),
                        record.ip_address,
                        record.user_agent,
                        record.correlation_id,
                        record.source,
                        json.dumps(record.metadata),
                        record.previous_hash,
                        record.hash,
                    )
            logger.debug("audit_record_inserted", sequence=record.sequence)
            return record
        except StoreError:
            raise
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(
                f"Sequence {record.sequence} was taken by another writer", cause=e
            ) from e
        except Exception as e:
            logger.error(
                "postgres_append_audit_record_error",
                sequence=record.sequence,
                error=str(e),
            )
            raise ConnectionError(f"Failed to append audit record: {e}", cause=e) from e

    async def get_tail(self) -> AuditRecord | None:
        """Get the record with the highest sequence."""
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_COLUMNS} FROM audit_records ORDER BY sequence DESC LIMIT 1"
                )
        except StoreError:
            raise
        except Exception as e:
            logger.error("postgres_get_tail_error", error=str(e))
            raise ConnectionError(f"Failed to read audit tail: {e}", cause=e) from e
        return self._row_to_record(row) if row else None

    async def get_record(self, sequence: int) -> AuditRecord | None:
        """Get a record by sequence."""
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_COLUMNS} FROM audit_records WHERE sequence = $1",
                    sequence,
                )
        except StoreError:
            raise
        except Exception as e:
            logger.error("postgres_get_record_error", sequence=sequence, error=str(e))
            raise ConnectionError(f"Failed to read audit record: {e}", cause=e) from e
        return self._row_to_record(row) if row else None

    async def iter_records(
        self,
        record_filter: AuditRecordFilter | None = None,
        *,
        start_sequence: int | None = None,
        end_sequence: int | None = None,
        batch_size: int = 500,
    ) -> AsyncIterator[AuditRecord]:
        """Stream records using keyset pagination on sequence."""
        record_filter = record_filter or AuditRecordFilter()
        descending = record_filter.descending
        remaining = record_filter.limit
        offset = record_filter.offset
        cursor: int | None = None

        while True:
            fetch_size = batch_size if remaining is None else min(batch_size, remaining)
            if fetch_size <= 0:
                return

            conditions, params = self._build_conditions(
                record_filter, start_sequence, end_sequence
            )
            if cursor is not None:
                params.append(cursor)
                conditions.append(f"sequence {'<' if descending else '>'} ${len(params)}")

            query = f"SELECT {_COLUMNS} FROM audit_records"
            if conditions:
                query += " WHERE " + " AND ".join(conditions)
            query += f" ORDER BY sequence {'DESC' if descending else 'ASC'}"
            params.append(fetch_size)
            query += f" LIMIT ${len(params)}"
            params.append(offset)
            query += f" OFFSET ${len(params)}"

            rows = await self._fetch(query, params)
            for row in rows:
                yield self._row_to_record(row)

            if len(rows) < fetch_size:
                return
            cursor = rows[-1]["sequence"]
            offset = 0
            if remaining is not None:
                remaining -= len(rows)

    async def count_records(self, record_filter: AuditRecordFilter | None = None) -> int:
        """Count records matching the filter's criteria."""
        conditions, params = self._build_conditions(record_filter or AuditRecordFilter())
        query = "SELECT COUNT(*) FROM audit_records"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchval(query, *params)
        except StoreError:
            raise
        except Exception as e:
            logger.error("postgres_count_records_error", error=str(e))
            raise ConnectionError(f"Failed to count audit records: {e}", cause=e) from e

    # Helper methods
    async def _fetch(self, query: str, params: list[Any]) -> list[asyncpg.Record]:
        """Run a read query, releasing the connection before rows are consumed."""
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetch(query, *params)
        except StoreError:
            raise
        except Exception as e:
            logger.error("postgres_list_records_error", error=str(e))
            raise ConnectionError(f"Failed to list audit records: {e}", cause=e) from e

    @staticmethod
    def _build_conditions(
        record_filter: AuditRecordFilter,
        start_sequence: int | None = None,
        end_sequence: int | None = None,
    ) -> tuple[list[str], list[Any]]:
        """Translate filter criteria into WHERE clauses and parameters."""
        conditions: list[str] = []
        params: list[Any] = []

        def add(clause: str, value: Any) -> None:
            params.append(value)
            conditions.append(clause.format(param=f"${len(params)}"))

        if start_sequence is not None:
            add("sequence >= {param}", start_sequence)
        if end_sequence is not None:
            add("sequence <= {param}", end_sequence)
        if record_filter.start_time is not None:
            add("timestamp >= {param}", record_filter.start_time)
        if record_filter.end_time is not None:
            add("timestamp <= {param}", record_filter.end_time)
        if record_filter.event_type is not None:
            add("event_type = {param}", record_filter.event_type.value)
        if record_filter.severity is not None:
            add("severity = {param}", record_filter.severity.value)
        if record_filter.status is not None:
            add("status = {param}", record_filter.status.value)
        if record_filter.user_id is not None:
            add("user_id = {param}", record_filter.user_id)
        if record_filter.resource is not None:
            add("resource = {param}", record_filter.resource)
        if record_filter.correlation_id is not None:
            add("correlation_id = {param}", record_filter.correlation_id)

        return conditions, params

    @staticmethod
    def _row_to_record(row: Any) -> AuditRecord:
        """Convert database row to AuditRecord model.

        Raises:
            CorruptRecordError: If the row was edited into something that is
                no longer a valid record
        """
        sequence = row["sequence"]
        try:
            return AuditRecord(
                sequence=sequence,
                timestamp=row["timestamp"],
                event_type=row["event_type"],
                severity=row["severity"],
                status=row["status"],
                user_id=row["user_id"],
                resource=row["resource"],
                action=row["action"],
                details=json.loads(row["details"]) if row["details"] else {},
                ip_address=row["ip_address"],
                user_agent=row["user_agent"],
                correlation_id=row["correlation_id"],
                source=row["source"],
                metadata=json.loads(row["metadata"]) if row["metadata"] else {},
                previous_hash=row["previous_hash"],
                hash=row["hash"],
            )
        # pydantic's ValidationError and json's JSONDecodeError are ValueErrors
        except (ValueError, TypeError) as e:
            logger.warning("postgres_audit_row_unreadable", sequence=sequence, error=str(e))
            raise CorruptRecordError(
                sequence, f"Stored audit record {sequence} is malformed: {e}", cause=e
            ) from e
