"""Record filters shared by reads, exports and metrics."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from chronicle.audit.errors import ExportFilterError
from chronicle.audit.models.enums import AuditEventType, AuditSeverity, AuditStatus
from chronicle.audit.models.record import AuditRecord


class AuditRecordFilter(BaseModel):
    """Conjunctive filter over audit records.

    Every criterion is optional; a record must satisfy all that are set.
    Accepts snake_case or camelCase keys (eventType, startTime, ...) so
    query parameters can be passed straight to from_params.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    start_time: datetime | None = Field(default=None, description="Inclusive lower bound")
    end_time: datetime | None = Field(default=None, description="Inclusive upper bound")
    event_type: AuditEventType | None = None
    severity: AuditSeverity | None = None
    status: AuditStatus | None = None
    user_id: str | None = None
    resource: str | None = None
    correlation_id: str | None = None
    descending: bool = Field(default=False, description="Newest first")
    limit: int | None = Field(default=None, description="Maximum records returned")
    offset: int = Field(default=0, description="Matching records to skip")

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None) -> "AuditRecordFilter":
        """Build and check a filter from loosely typed parameters.

        Raises:
            ExportFilterError: On unknown keys, bad values or contradictions
        """
        try:
            record_filter = cls.model_validate(dict(params or {}))
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'filter'}: {err['msg']}"
                for err in e.errors()
            )
            raise ExportFilterError(f"Invalid filter: {problems}") from e
        return record_filter.checked()

    def checked(self) -> "AuditRecordFilter":
        """Return self after rejecting contradictory criteria.

        Raises:
            ExportFilterError: If the criteria can never be satisfied
        """
        for name in ("start_time", "end_time"):
            value = getattr(self, name)
            if value is not None and (value.tzinfo is None or value.utcoffset() is None):
                raise ExportFilterError(f"{name} must be timezone-aware")
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time > self.end_time
        ):
            raise ExportFilterError("start_time is after end_time")
        if self.limit is not None and self.limit < 0:
            raise ExportFilterError("limit must not be negative")
        if self.offset < 0:
            raise ExportFilterError("offset must not be negative")
        return self

    def matches(self, record: AuditRecord) -> bool:
        """Check the non-paging criteria against one record."""
        if self.start_time is not None and record.timestamp < self.start_time:
            return False
        if self.end_time is not None and record.timestamp > self.end_time:
            return False
        if self.event_type is not None and record.event_type != self.event_type:
            return False
        if self.severity is not None and record.severity != self.severity:
            return False
        if self.status is not None and record.status != self.status:
            return False
        if self.user_id is not None and record.user_id != self.user_id:
            return False
        if self.resource is not None and record.resource != self.resource:
            return False
        if self.correlation_id is not None and record.correlation_id != self.correlation_id:
            return False
        return True


def coerce_filter(
    value: "AuditRecordFilter | Mapping[str, Any] | None",
) -> AuditRecordFilter:
    """Accept a filter, a parameter mapping or None and return a checked filter."""
    if value is None:
        return AuditRecordFilter()
    if isinstance(value, AuditRecordFilter):
        return value.checked()
    return AuditRecordFilter.from_params(value)
