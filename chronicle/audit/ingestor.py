"""Serialized appends to the audit hash chain.

Reading the tail, hashing the new record and persisting it form one
critical section guarded by an asyncio.Lock owned by the ingestor. Two
records can therefore never be hashed against the same previous_hash from
this process. Other processes are kept out by the store's conditional
append; a lost race surfaces as a conflict and the append is redone
against the fresh tail.
"""

import asyncio
import time
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from chronicle.audit.errors import (
    AppendConflictError,
    PersistenceError,
    ValidationError,
)
from chronicle.audit.hashing import HashChain
from chronicle.audit.models import AuditEventInput, AuditRecord, utc_now
from chronicle.audit.store import AuditRecordStore
from chronicle.config.models.audit import AuditConfig
from chronicle.db.errors import ConflictError, StoreError
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import (
    AUDIT_APPEND_CONFLICTS,
    AUDIT_APPEND_LATENCY,
    AUDIT_APPENDS,
)

logger = get_logger(__name__)


def coerce_event_input(event: AuditEventInput | Mapping[str, Any]) -> AuditEventInput:
    """Validate producer input.

    Raises:
        ValidationError: If required fields are missing or malformed
    """
    if isinstance(event, AuditEventInput):
        return event
    if not isinstance(event, Mapping):
        raise ValidationError(f"Audit event must be a mapping, got {type(event).__name__}")
    try:
        return AuditEventInput.model_validate(dict(event))
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in errors)
        raise ValidationError(f"Invalid audit event ({fields})", errors=errors) from e


class AuditIngestor:
    """Single writer for one audit log."""

    def __init__(
        self,
        store: AuditRecordStore,
        hash_chain: HashChain | None = None,
        config: AuditConfig | None = None,
    ) -> None:
        """Initialize the ingestor.

        Args:
            store: Record store to append to
            hash_chain: Hash engine, shared with the verifier
            config: Lock timeout, retry and default source settings
        """
        self._store = store
        self._hash_chain = hash_chain or HashChain()
        self._config = config or AuditConfig()
        self._lock = asyncio.Lock()

    async def append(self, event: AuditEventInput | Mapping[str, Any]) -> AuditRecord:
        """Append an event to the chain and return the stored record.

        Raises:
            ValidationError: Before any hashing if the event is malformed
            PersistenceError: If the store failed; nothing was committed
        """
        event_input = coerce_event_input(event)
        event_type = event_input.event_type.value

        try:
            await asyncio.wait_for(
                self._lock.acquire(), timeout=self._config.lock_timeout_seconds
            )
        except TimeoutError as e:
            AUDIT_APPENDS.labels(event_type=event_type, outcome="lock_timeout").inc()
            raise PersistenceError("Audit append lock busy; retry later") from e

        try:
            started = time.perf_counter()
            record = await self._append_locked(event_input)
            AUDIT_APPEND_LATENCY.observe(time.perf_counter() - started)
        except PersistenceError:
            AUDIT_APPENDS.labels(event_type=event_type, outcome="failed").inc()
            raise
        finally:
            self._lock.release()

        AUDIT_APPENDS.labels(event_type=event_type, outcome="success").inc()
        logger.info(
            "audit_record_appended",
            sequence=record.sequence,
            event_type=event_type,
            severity=record.severity.value,
            hash=record.hash,
        )
        return record

    async def _append_locked(self, event_input: AuditEventInput) -> AuditRecord:
        """Read tail, hash and persist; caller holds the lock."""
        attempts = self._config.max_append_retries + 1
        for attempt in range(1, attempts + 1):
            record = await self._build_record(event_input)
            try:
                return await self._persist(record)
            except AppendConflictError:
                AUDIT_APPEND_CONFLICTS.inc()
                logger.warning(
                    "audit_append_conflict",
                    sequence=record.sequence,
                    attempt=attempt,
                    max_attempts=attempts,
                )
        raise PersistenceError(
            f"Audit append lost {attempts} consecutive races for the chain tail"
        )

    async def _build_record(self, event_input: AuditEventInput) -> AuditRecord:
        """Create the complete next record from the current tail."""
        try:
            tail = await self._store.get_tail()
        except StoreError as e:
            logger.error("audit_tail_read_failed", error=str(e))
            raise PersistenceError(f"Failed to read audit tail: {e}", cause=e) from e

        previous_hash = tail.hash if tail else self._hash_chain.genesis
        fields: dict[str, Any] = {
            "sequence": tail.sequence + 1 if tail else 0,
            "timestamp": utc_now(),
            "event_type": event_input.event_type,
            "severity": event_input.severity,
            "status": event_input.status,
            "user_id": event_input.user_id,
            "resource": event_input.resource,
            "action": event_input.action,
            "details": event_input.details,
            "ip_address": event_input.ip_address,
            "user_agent": event_input.user_agent,
            "correlation_id": event_input.correlation_id,
            "source": event_input.source or self._config.default_source,
            "metadata": event_input.metadata,
        }
        digest = self._hash_chain.hash_fields(fields, previous_hash)
        return AuditRecord(**fields, previous_hash=previous_hash, hash=digest)

    async def _persist(self, record: AuditRecord) -> AuditRecord:
        """Write the record; the write is never abandoned half way.

        Cancelling the caller does not cancel an issued write. The lock stays
        held until the write settles so no later append can read a tail
        that might still change.
        """
        write = asyncio.ensure_future(self._store.append(record))
        try:
            return await asyncio.shield(write)
        except asyncio.CancelledError:
            await asyncio.wait([write])
            if not write.cancelled() and write.exception() is None:
                logger.warning(
                    "audit_append_completed_after_cancel", sequence=record.sequence
                )
            raise
        except ConflictError as e:
            raise AppendConflictError(str(e), cause=e) from e
        except StoreError as e:
            logger.error(
                "audit_append_failed", sequence=record.sequence, error=str(e)
            )
            raise PersistenceError(f"Failed to persist audit record: {e}", cause=e) from e
