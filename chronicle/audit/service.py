"""AuditLogService: the entry point callers use.

Wires the ingestor, verifier and exporter around one injected store and
one HashChain. Each operation takes the caller's AuditContext and checks
the permission it needs before touching the log.
"""

from collections import defaultdict
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from datetime import UTC, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from chronicle.audit.context import AuditContext, AuditPermission
from chronicle.audit.errors import PersistenceError
from chronicle.audit.exporter import AuditExporter
from chronicle.audit.hashing import HashChain
from chronicle.audit.ingestor import AuditIngestor
from chronicle.audit.models import (
    AuditEventInput,
    AuditEventType,
    AuditRecord,
    AuditRecordFilter,
    AuditSeverity,
    IntegrityReport,
    VerifyRange,
    coerce_filter,
    utc_now,
)
from chronicle.audit.store import AuditRecordStore
from chronicle.audit.verifier import AuditVerifier
from chronicle.config.models.audit import AuditConfig
from chronicle.db.errors import StoreError
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_QUERY_LIMIT = 100

AuditListener = Callable[[AuditRecord], Awaitable[None]]


class AuditNotification(str, Enum):
    """Notifications emitted after a successful append."""

    RECORD_CREATED = "record_created"
    CRITICAL_EVENT_DETECTED = "critical_event_detected"


class AuditMetrics(BaseModel):
    """Headline counts for compliance dashboards."""

    model_config = ConfigDict(frozen=True)

    total_logs: int
    logs_today: int
    critical_events: int
    security_incidents: int


class AuditLogService:
    """Tamper-evident audit log over an injected record store.

    The only internal state is the ingestor's append lock and the
    notification listeners; there is no module-level instance.
    """

    def __init__(
        self,
        store: AuditRecordStore,
        *,
        hash_chain: HashChain | None = None,
        config: AuditConfig | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Ordered, append-only record store
            hash_chain: Hash engine shared by append and verify
            config: Audit behaviour settings
        """
        self._store = store
        self._hash_chain = hash_chain or HashChain()
        self._config = config or AuditConfig()
        self._ingestor = AuditIngestor(store, self._hash_chain, self._config)
        self._verifier = AuditVerifier(store, self._hash_chain, self._config)
        self._exporter = AuditExporter(store, self._config)
        self._listeners: dict[AuditNotification, list[AuditListener]] = defaultdict(list)

    @property
    def store(self) -> AuditRecordStore:
        return self._store

    def add_listener(self, notification: AuditNotification, listener: AuditListener) -> None:
        """Register an async callback for a notification."""
        self._listeners[notification].append(listener)

    def remove_listener(self, notification: AuditNotification, listener: AuditListener) -> None:
        """Unregister a callback; unknown listeners are ignored."""
        try:
            self._listeners[notification].remove(listener)
        except ValueError:
            logger.warning("audit_listener_not_found", notification=notification.value)

    async def log(
        self,
        event: AuditEventInput | Mapping[str, Any],
        *,
        context: AuditContext,
    ) -> AuditRecord:
        """Append an event to the log.

        Raises:
            AuthorizationError: If context lacks WRITE
            ValidationError: If the event is malformed
            PersistenceError: If the store failed; safe to retry
        """
        context.require(AuditPermission.WRITE)
        record = await self._ingestor.append(event)

        await self._notify(AuditNotification.RECORD_CREATED, record)
        if record.severity == AuditSeverity.CRITICAL:
            await self._notify(AuditNotification.CRITICAL_EVENT_DETECTED, record)
        return record

    async def verify_integrity(
        self,
        range_filter: VerifyRange | None = None,
        *,
        context: AuditContext,
        stop_at_first_break: bool | None = None,
    ) -> IntegrityReport:
        """Verify the hash chain.

        A broken chain is returned as a report with valid=False, never
        raised. It is logged at error level with every break attached.

        Raises:
            AuthorizationError: If context lacks VERIFY
            PersistenceError: If the store cannot be read
        """
        context.require(AuditPermission.VERIFY)
        report = await self._verifier.verify(
            range_filter, stop_at_first_break=stop_at_first_break
        )

        if report.valid:
            logger.info(
                "audit_integrity_verified",
                actor_id=context.actor_id,
                records_checked=report.records_checked,
            )
        else:
            logger.error(
                "audit_integrity_violation",
                actor_id=context.actor_id,
                records_checked=report.records_checked,
                first_break=report.first_break,
                breaks=[b.model_dump(mode="json") for b in report.breaks],
            )
        return report

    async def generate_export(
        self,
        export_filter: AuditRecordFilter | Mapping[str, Any] | None = None,
        *,
        context: AuditContext,
    ) -> str:
        """Render matching records as CSV text.

        Raises:
            AuthorizationError: If context lacks EXPORT
            ExportFilterError: If the filter is invalid
            PersistenceError: If the store cannot be read
        """
        context.require(AuditPermission.EXPORT)
        logger.info("audit_export_requested", actor_id=context.actor_id)
        return await self._exporter.generate_export(export_filter)

    async def stream_export(
        self,
        export_filter: AuditRecordFilter | Mapping[str, Any] | None = None,
        *,
        context: AuditContext,
    ) -> AsyncIterator[str]:
        """Stream the CSV export in chunks, for large downloads."""
        context.require(AuditPermission.EXPORT)
        logger.info("audit_export_requested", actor_id=context.actor_id, streamed=True)
        async for chunk in self._exporter.stream_export(export_filter):
            yield chunk

    async def get_records(
        self,
        record_filter: AuditRecordFilter | Mapping[str, Any] | None = None,
        *,
        context: AuditContext,
    ) -> list[AuditRecord]:
        """Plain filtered read in the filter's order (ascending by default)."""
        context.require(AuditPermission.READ)
        record_filter = coerce_filter(record_filter)
        try:
            return await self._store.list_records(record_filter)
        except StoreError as e:
            raise PersistenceError(f"Failed to read audit records: {e}", cause=e) from e

    async def query_logs(
        self,
        record_filter: AuditRecordFilter | Mapping[str, Any] | None = None,
        *,
        context: AuditContext,
    ) -> list[AuditRecord]:
        """Newest-first page of records, 100 by default."""
        record_filter = coerce_filter(record_filter)
        updates: dict[str, Any] = {"descending": True}
        if record_filter.limit is None:
            updates["limit"] = DEFAULT_QUERY_LIMIT
        return await self.get_records(
            record_filter.model_copy(update=updates), context=context
        )

    async def get_metrics(self, *, context: AuditContext) -> AuditMetrics:
        """Count all, today's, critical and security-incident records."""
        context.require(AuditPermission.READ)
        start_of_day = datetime.combine(utc_now().date(), time.min, tzinfo=UTC)
        try:
            return AuditMetrics(
                total_logs=await self._store.count_records(),
                logs_today=await self._store.count_records(
                    AuditRecordFilter(start_time=start_of_day)
                ),
                critical_events=await self._store.count_records(
                    AuditRecordFilter(severity=AuditSeverity.CRITICAL)
                ),
                security_incidents=await self._store.count_records(
                    AuditRecordFilter(event_type=AuditEventType.SECURITY_INCIDENT)
                ),
            )
        except StoreError as e:
            raise PersistenceError(f"Failed to count audit records: {e}", cause=e) from e

    async def _notify(self, notification: AuditNotification, record: AuditRecord) -> None:
        """Call listeners; a failing listener never undoes the append."""
        for listener in list(self._listeners[notification]):
            try:
                await listener(record)
            except Exception as e:
                logger.error(
                    "audit_listener_failed",
                    notification=notification.value,
                    sequence=record.sequence,
                    error=str(e),
                )
