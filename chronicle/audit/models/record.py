"""AuditRecord and AuditEventInput models."""

import math
from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import to_jsonable_python

from chronicle.audit import canonical
from chronicle.audit.canonical import HASHED_FIELDS
from chronicle.audit.errors import CanonicalEncodingError
from chronicle.audit.models.details import EventDetails, normalize_details
from chronicle.audit.models.enums import AuditEventType, AuditSeverity, AuditStatus

HEX_DIGEST_PATTERN = r"^[0-9a-f]{64}$"


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class AuditEventInput(BaseModel):
    """What a producer submits to be logged.

    Carries every AuditRecord field except the ones the ingestor assigns:
    sequence, timestamp, previous_hash and hash.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_type: AuditEventType = Field(..., description="Event classification")
    severity: AuditSeverity = Field(..., description="Event severity")
    status: AuditStatus = Field(default=AuditStatus.SUCCESS, description="Outcome")
    user_id: str | None = Field(default=None, description="Acting user")
    resource: str = Field(..., min_length=1, description="Affected resource")
    action: str = Field(..., min_length=1, description="What was done")
    details: dict[str, Any] = Field(..., description="Event payload")
    ip_address: str | None = None
    user_agent: str | None = None
    correlation_id: str | None = None
    source: str | None = Field(
        default=None, description="Producer; the configured default when omitted"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("user_id", "ip_address", "user_agent", "correlation_id", mode="before")
    @classmethod
    def _empty_is_absent(cls, value: Any) -> Any:
        # Absent context is always None, never an empty string
        return None if value == "" else value

    @field_validator("details", mode="before")
    @classmethod
    def _details_match_event_type(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            raise ValueError("details is required (use {} for no details)")
        event_type = info.data.get("event_type")
        if event_type is None:
            # event_type failed validation and carries its own error
            return value
        if not isinstance(value, (Mapping, EventDetails)):
            raise ValueError("details must be a mapping")
        if isinstance(value, Mapping):
            value = dict(value)
            _require_finite(value)
        else:
            _require_finite(value.model_dump())
        return _encodable(normalize_details(event_type, value))

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_encodable(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError("metadata must be a mapping")
        _require_finite(value)
        return _encodable(to_jsonable_python(dict(value)))


def _require_finite(value: Any) -> None:
    """Reject NaN and infinities before serialization can coerce them to null."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"non-finite number: {value!r}")
    elif isinstance(value, Decimal) and not value.is_finite():
        raise ValueError(f"non-finite number: {value!r}")
    elif isinstance(value, Mapping):
        for item in value.values():
            _require_finite(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _require_finite(item)


def _encodable(value: dict[str, Any]) -> dict[str, Any]:
    """Reject payloads without a canonical encoding (NaN, non-string keys)."""
    try:
        canonical.dumps(value)
    except CanonicalEncodingError as e:
        raise ValueError(e.message) from e
    return value


class AuditRecord(BaseModel):
    """One immutable, hash-chained entry of the audit log."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(..., ge=0, description="Position in the chain")
    timestamp: datetime = Field(..., description="Append time (UTC)")
    event_type: AuditEventType
    severity: AuditSeverity
    status: AuditStatus
    user_id: str | None = Field(default=None, min_length=1)
    resource: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = Field(default=None, min_length=1)
    user_agent: str | None = Field(default=None, min_length=1)
    correlation_id: str | None = Field(default=None, min_length=1)
    source: str = "system"
    metadata: dict[str, Any] = Field(default_factory=dict)
    previous_hash: str = Field(..., pattern=HEX_DIGEST_PATTERN)
    hash: str = Field(..., pattern=HEX_DIGEST_PATTERN)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_is_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("timestamp must be timezone-aware")
        return value.astimezone(UTC)

    def hashed_fields(self) -> dict[str, Any]:
        """Fields covered by the record hash, previous_hash excluded."""
        return {name: getattr(self, name) for name in HASHED_FIELDS}
