"""Canonical encoding of audit record content.

The encoding is the hash input, so it must be byte-for-byte reproducible by
any verifier, including ones written in other languages:

- fields appear in HASHED_FIELDS order as a JSON array of [name, value] pairs
- mapping keys are sorted lexicographically (by code point) at every depth
- timestamps are ISO-8601 UTC strings with microseconds and a "Z" suffix
- numbers are JSON numbers in plain normalized decimal form: 1, 1.0 and
  Decimal("1.00") all encode as 1; 1e20 encodes as 100000000000000000000
- strings are JSON strings without ASCII escaping
- output is compact UTF-8 JSON (no insignificant whitespace)

Numbers are normalized so a value keeps its encoding after a round trip
through a store that does not preserve int/float distinctions (JSONB).
"""

import json
import math
from collections.abc import Mapping
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from chronicle.audit.errors import CanonicalEncodingError

# Every AuditRecord field except previous_hash (chained separately) and hash
HASHED_FIELDS: tuple[str, ...] = (
    "sequence",
    "timestamp",
    "event_type",
    "severity",
    "status",
    "user_id",
    "resource",
    "action",
    "details",
    "ip_address",
    "user_agent",
    "correlation_id",
    "source",
    "metadata",
)

# Column order for exports and persisted layout
RECORD_FIELDS: tuple[str, ...] = HASHED_FIELDS + ("previous_hash", "hash")


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as canonical ISO-8601 UTC."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise CanonicalEncodingError("naive datetimes have no canonical form")
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def format_number(value: int | float | Decimal) -> str:
    """Render a number as a plain, normalized decimal string."""
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalEncodingError(f"non-finite number: {value!r}")
        value = Decimal(repr(value))
    elif not value.is_finite():
        raise CanonicalEncodingError(f"non-finite number: {value!r}")
    text = format(value.normalize(), "f")
    return "0" if text == "-0" else text


def _string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _emit(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, Enum):
        return _emit(value.value)
    if isinstance(value, str):
        return _string(value)
    if isinstance(value, (int, float, Decimal)):
        return format_number(value)
    if isinstance(value, datetime):
        return _string(format_timestamp(value))
    if isinstance(value, date):
        return _string(value.isoformat())
    if isinstance(value, Mapping):
        keys = list(value)
        for key in keys:
            if not isinstance(key, str):
                raise CanonicalEncodingError(f"mapping keys must be strings, got {key!r}")
        members = (f"{_string(key)}:{_emit(value[key])}" for key in sorted(keys))
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_emit(item) for item in value) + "]"
    raise CanonicalEncodingError(f"no canonical encoding for {type(value).__name__}")


def dumps(value: Any) -> str:
    """Serialize any encodable value as canonical compact JSON text."""
    return _emit(value)


def encode(fields: Mapping[str, Any]) -> bytes:
    """Canonically encode the hashed fields of a record.

    Args:
        fields: Mapping holding at least every name in HASHED_FIELDS

    Returns:
        UTF-8 bytes used as hash input

    Raises:
        CanonicalEncodingError: If a field is missing or not encodable
    """
    missing = [name for name in HASHED_FIELDS if name not in fields]
    if missing:
        raise CanonicalEncodingError(f"missing fields: {', '.join(missing)}")
    pairs = ",".join(f"[{_string(name)},{_emit(fields[name])}]" for name in HASHED_FIELDS)
    try:
        return f"[{pairs}]".encode("utf-8")
    except UnicodeEncodeError as e:
        raise CanonicalEncodingError(f"text is not valid Unicode: {e}") from e
