"""CSV export of audit records for compliance review.

Rows follow RFC 4180 as implemented by the csv module's default dialect:
cells holding the delimiter, a quote or a line break are quoted and quotes
are doubled, so csv.reader recovers every cell exactly. details and metadata
are flattened to their canonical JSON text in a single cell.
"""

import csv
import io
from collections.abc import AsyncIterator, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from chronicle.audit import canonical
from chronicle.audit.canonical import RECORD_FIELDS
from chronicle.audit.errors import ExportFilterError, PersistenceError
from chronicle.audit.models import AuditRecord, AuditRecordFilter, coerce_filter
from chronicle.audit.store import AuditRecordStore
from chronicle.config.models.audit import AuditConfig
from chronicle.db.errors import StoreError
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import AUDIT_EXPORTED_ROWS

logger = get_logger(__name__)


def render_cell(value: Any) -> str:
    """Render one field value as export text."""
    if value is None:
        return ""
    # Enum before str: the audit enums are str subclasses
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return canonical.format_timestamp(value)
    return canonical.dumps(value)


def record_to_row(record: AuditRecord) -> list[str]:
    """Render a record as cells in RECORD_FIELDS order."""
    return [render_cell(getattr(record, name)) for name in RECORD_FIELDS]


class AuditExporter:
    """Renders filtered audit records as CSV text."""

    def __init__(
        self,
        store: AuditRecordStore,
        config: AuditConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or AuditConfig()

    async def stream_export(
        self,
        export_filter: AuditRecordFilter | Mapping[str, Any] | None = None,
    ) -> AsyncIterator[str]:
        """Yield the export as CSV chunks: the header first, then batches of rows.

        Raises:
            ExportFilterError: On a bad filter or when too many rows match
            PersistenceError: If the store cannot be read
        """
        record_filter = coerce_filter(export_filter)
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\r\n")

        writer.writerow(RECORD_FIELDS)
        yield self._drain(buffer)

        rows = 0
        try:
            # Snapshot: rows appended while exporting are left out
            tail = await self._store.get_tail()
            if tail is None:
                logger.info("audit_export_generated", rows=0)
                return

            async for record in self._store.iter_records(
                record_filter, end_sequence=tail.sequence
            ):
                rows += 1
                if rows > self._config.export_max_rows:
                    raise ExportFilterError(
                        f"Export exceeds {self._config.export_max_rows} rows; "
                        "narrow the filter or set a limit"
                    )
                writer.writerow(record_to_row(record))
                if rows % 500 == 0:
                    AUDIT_EXPORTED_ROWS.inc(500)
                    yield self._drain(buffer)
        except StoreError as e:
            logger.error("audit_export_store_error", error=str(e))
            raise PersistenceError(f"Failed to read audit log: {e}", cause=e) from e

        AUDIT_EXPORTED_ROWS.inc(rows % 500)
        logger.info("audit_export_generated", rows=rows)
        tail_chunk = self._drain(buffer)
        if tail_chunk:
            yield tail_chunk

    async def generate_export(
        self,
        export_filter: AuditRecordFilter | Mapping[str, Any] | None = None,
    ) -> str:
        """Render the whole export as one string.

        An empty result still produces the header row.
        """
        chunks = [chunk async for chunk in self.stream_export(export_filter)]
        return "".join(chunks)

    @staticmethod
    def _drain(buffer: io.StringIO) -> str:
        text = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return text
