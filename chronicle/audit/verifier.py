"""Integrity verification of the stored hash chain.

The verifier replays the chain in sequence order, recomputing every hash
with the same HashChain the ingestor used. It checks three things per
record: the sequence follows its predecessor, previous_hash links to the
predecessor's hash, and the stored hash matches the recomputed one. A row
the store can no longer read as a record is reported as malformed and the
scan carries on after it.

The scan covers a snapshot: the tail is read once up front and records
appended afterwards are outside the range, so verification can run next to
live appends without reporting spurious breaks.
"""

import time

from chronicle.audit.errors import CanonicalEncodingError, PersistenceError
from chronicle.audit.hashing import HashChain
from chronicle.audit.models import (
    AuditRecord,
    IntegrityBreak,
    IntegrityBreakKind,
    IntegrityReport,
    VerifyRange,
)
from chronicle.audit.store import AuditRecordStore
from chronicle.config.models.audit import AuditConfig
from chronicle.db.errors import CorruptRecordError, StoreError
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import (
    AUDIT_INTEGRITY_BREAKS,
    AUDIT_VERIFICATIONS,
    AUDIT_VERIFY_LATENCY,
)

logger = get_logger(__name__)


class AuditVerifier:
    """Streams the chain from the store and reports integrity breaks."""

    def __init__(
        self,
        store: AuditRecordStore,
        hash_chain: HashChain | None = None,
        config: AuditConfig | None = None,
    ) -> None:
        self._store = store
        self._hash_chain = hash_chain or HashChain()
        self._config = config or AuditConfig()

    async def verify(
        self,
        verify_range: VerifyRange | None = None,
        *,
        stop_at_first_break: bool | None = None,
    ) -> IntegrityReport:
        """Verify the chain, or the part of it inside verify_range.

        Args:
            verify_range: Inclusive sequence bounds; whole log when None
            stop_at_first_break: Override AuditConfig.stop_at_first_break.
                When False every break is enumerated, re-anchoring on each
                record's stored hash so each tampered record is reported once.

        Returns:
            IntegrityReport; valid=False signals tampering or corruption

        Raises:
            PersistenceError: Only if the store cannot be read
        """
        stop = (
            self._config.stop_at_first_break
            if stop_at_first_break is None
            else stop_at_first_break
        )
        verify_range = verify_range or VerifyRange()
        started = time.perf_counter()

        try:
            report = await self._scan(verify_range, stop)
        except StoreError as e:
            logger.error("audit_verify_store_error", error=str(e))
            raise PersistenceError(f"Failed to read audit log: {e}", cause=e) from e

        AUDIT_VERIFY_LATENCY.observe(time.perf_counter() - started)
        AUDIT_VERIFICATIONS.labels(result="valid" if report.valid else "broken").inc()
        for integrity_break in report.breaks:
            AUDIT_INTEGRITY_BREAKS.labels(kind=integrity_break.kind.value).inc()
        return report

    async def _scan(self, verify_range: VerifyRange, stop: bool) -> IntegrityReport:
        try:
            tail = await self._store.get_tail()
            tail_sequence = tail.sequence if tail else None
        except CorruptRecordError as e:
            # Still the snapshot bound; the row is reported when reached
            tail_sequence = e.sequence
        start = verify_range.start_sequence or 0
        end = tail_sequence
        if end is not None and verify_range.end_sequence is not None:
            end = min(end, verify_range.end_sequence)

        if end is None or start > end:
            logger.info("audit_verify_empty_range", start_sequence=start)
            return IntegrityReport(valid=True, records_checked=0)

        breaks: list[IntegrityBreak] = []
        expected_previous: str | None = self._hash_chain.genesis
        if start > 0:
            try:
                anchor = await self._store.get_record(start - 1)
            except CorruptRecordError as e:
                anchor = None
                breaks.append(self._malformed(e))
            else:
                if anchor is None:
                    breaks.append(
                        IntegrityBreak(
                            sequence=start - 1,
                            kind=IntegrityBreakKind.SEQUENCE_GAP,
                            expected=str(start - 1),
                            actual="missing",
                            message=f"Record {start - 1} preceding the range is missing",
                        )
                    )
            if breaks and stop:
                return self._report(breaks, 0, start, end, stopped_early=True)
            expected_previous = anchor.hash if anchor else None

        records_checked = 0
        expected_sequence = start
        resume_at = start
        while resume_at <= end:
            try:
                async for record in self._store.iter_records(
                    start_sequence=resume_at,
                    end_sequence=end,
                    batch_size=self._config.verify_batch_size,
                ):
                    records_checked += 1
                    record_breaks = self._check(record, expected_sequence, expected_previous)
                    if record_breaks:
                        breaks.extend(record_breaks)
                        if stop:
                            return self._report(
                                breaks, records_checked, start, end, stopped_early=True
                            )
                    expected_previous = record.hash
                    expected_sequence = record.sequence + 1
                break
            except CorruptRecordError as e:
                # The reader stops at an unreadable row; resume right after it
                records_checked += 1
                if e.sequence != expected_sequence:
                    breaks.append(self._gap(expected_sequence, e.sequence))
                breaks.append(self._malformed(e))
                if stop:
                    return self._report(
                        breaks, records_checked, start, end, stopped_early=True
                    )
                expected_previous = None
                expected_sequence = e.sequence + 1
                resume_at = e.sequence + 1

        return self._report(breaks, records_checked, start, end)

    @staticmethod
    def _gap(expected_sequence: int, found_sequence: int) -> IntegrityBreak:
        return IntegrityBreak(
            sequence=found_sequence,
            kind=IntegrityBreakKind.SEQUENCE_GAP,
            expected=str(expected_sequence),
            actual=str(found_sequence),
            message=f"Records {expected_sequence}..{found_sequence - 1} are missing",
        )

    @staticmethod
    def _malformed(error: CorruptRecordError) -> IntegrityBreak:
        return IntegrityBreak(
            sequence=error.sequence,
            kind=IntegrityBreakKind.MALFORMED_RECORD,
            expected="valid audit record",
            actual="unreadable",
            message=str(error),
        )

    def _check(
        self,
        record: AuditRecord,
        expected_sequence: int,
        expected_previous: str | None,
    ) -> list[IntegrityBreak]:
        """Compare one record against what the chain requires."""
        found: list[IntegrityBreak] = []

        gap = record.sequence != expected_sequence
        if gap:
            found.append(self._gap(expected_sequence, record.sequence))
        # After a gap the link to the missing record cannot be checked
        elif expected_previous is not None and record.previous_hash != expected_previous:
            found.append(
                IntegrityBreak(
                    sequence=record.sequence,
                    kind=IntegrityBreakKind.PREVIOUS_HASH_MISMATCH,
                    expected=expected_previous,
                    actual=record.previous_hash,
                    message=f"Record {record.sequence} does not link to its predecessor",
                )
            )

        try:
            recomputed = self._hash_chain.hash_record(record)
        except CanonicalEncodingError as e:
            # Stored content that cannot be encoded was never hashed by us
            recomputed = f"<unencodable: {e.message}>"
        if recomputed != record.hash:
            found.append(
                IntegrityBreak(
                    sequence=record.sequence,
                    kind=IntegrityBreakKind.HASH_MISMATCH,
                    expected=recomputed,
                    actual=record.hash,
                    message=f"Record {record.sequence} content does not match its hash",
                )
            )
        return found

    @staticmethod
    def _report(
        breaks: list[IntegrityBreak],
        records_checked: int,
        start: int,
        end: int,
        *,
        stopped_early: bool = False,
    ) -> IntegrityReport:
        return IntegrityReport(
            valid=not breaks,
            records_checked=records_checked,
            first_break=breaks[0].sequence if breaks else None,
            breaks=breaks,
            start_sequence=start,
            end_sequence=end,
            stopped_early=stopped_early,
        )
