"""Tests for canonical encoding of hashed record fields."""

import json
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from chronicle.audit import canonical
from chronicle.audit.canonical import HASHED_FIELDS, RECORD_FIELDS
from chronicle.audit.errors import CanonicalEncodingError, ValidationError


@pytest.fixture
def fields() -> dict:
    """Hashed fields of a typical record."""
    return {
        "sequence": 3,
        "timestamp": datetime(2024, 5, 1, 12, 30, 0, 123456, tzinfo=UTC),
        "event_type": "data_modification",
        "severity": "high",
        "status": "success",
        "user_id": "user-7",
        "resource": "/loans/19",
        "action": "approve",
        "details": {"record_id": "19", "changes": {"state": "approved", "amount": 2500}},
        "ip_address": "10.0.0.5",
        "user_agent": "curl/8.0",
        "correlation_id": "corr-1",
        "source": "loan-service",
        "metadata": {"region": "eu"},
    }


class TestFormatTimestamp:
    """Tests for format_timestamp."""

    def test_utc_with_microseconds(self) -> None:
        """Should render UTC with six fractional digits and a Z suffix."""
        value = datetime(2024, 1, 2, 3, 4, 5, 6, tzinfo=UTC)
        assert canonical.format_timestamp(value) == "2024-01-02T03:04:05.000006Z"

    def test_converts_offsets_to_utc(self) -> None:
        """Should convert aware datetimes in other zones to UTC."""
        value = datetime(2024, 1, 2, 5, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert canonical.format_timestamp(value) == "2024-01-02T03:00:00.000000Z"

    def test_rejects_naive(self) -> None:
        """Should refuse naive datetimes."""
        with pytest.raises(CanonicalEncodingError):
            canonical.format_timestamp(datetime(2024, 1, 2))


class TestFormatNumber:
    """Tests for number normalization."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1, "1"),
            (1.0, "1"),
            (Decimal("1.00"), "1"),
            (-0.0, "0"),
            (0.5, "0.5"),
            (1e20, "100000000000000000000"),
            (-42, "-42"),
            (Decimal("0.010"), "0.01"),
        ],
    )
    def test_normalizes(self, value, expected: str) -> None:
        """Should render equal numbers identically."""
        assert canonical.format_number(value) == expected

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), Decimal("NaN")])
    def test_rejects_non_finite(self, value) -> None:
        """Should reject NaN and infinities."""
        with pytest.raises(CanonicalEncodingError):
            canonical.format_number(value)


class TestDumps:
    """Tests for canonical JSON serialization."""

    def test_sorts_keys_at_every_depth(self) -> None:
        """Should sort mapping keys recursively."""
        value = {"b": {"z": 1, "a": 2}, "a": [{"y": 1, "x": 2}]}
        assert canonical.dumps(value) == '{"a":[{"x":2,"y":1}],"b":{"a":2,"z":1}}'

    def test_output_is_valid_json(self) -> None:
        """Should produce text the json module parses back."""
        value = {"name": "Zoë \"quoted\"", "n": 2.5, "flag": False, "none": None}
        assert json.loads(canonical.dumps(value)) == value

    def test_does_not_escape_non_ascii(self) -> None:
        """Should keep non-ASCII text as UTF-8."""
        assert canonical.dumps("日本") == '"日本"'

    def test_rejects_non_string_keys(self) -> None:
        """Should reject mappings with non-string keys."""
        with pytest.raises(CanonicalEncodingError):
            canonical.dumps({1: "a"})

    def test_rejects_unknown_types(self) -> None:
        """Should reject values without a canonical form."""
        with pytest.raises(CanonicalEncodingError):
            canonical.dumps({"value": object()})

    def test_encoding_error_is_validation_error(self) -> None:
        """Should be catchable as a ValidationError."""
        with pytest.raises(ValidationError):
            canonical.dumps(float("nan"))


class TestEncode:
    """Tests for encode."""

    def test_fields_in_fixed_order(self, fields: dict) -> None:
        """Should emit [name, value] pairs in HASHED_FIELDS order."""
        decoded = json.loads(canonical.encode(fields))
        assert [pair[0] for pair in decoded] == list(HASHED_FIELDS)

    def test_input_order_is_irrelevant(self, fields: dict) -> None:
        """Should encode identically regardless of mapping insertion order."""
        reordered = dict(reversed(list(fields.items())))
        reordered["details"] = dict(reversed(list(fields["details"].items())))
        assert canonical.encode(reordered) == canonical.encode(fields)

    def test_numeric_type_is_irrelevant(self, fields: dict) -> None:
        """Should encode 2500 and 2500.0 identically."""
        changed = dict(
            fields,
            details={"record_id": "19", "changes": {"state": "approved", "amount": 2500.0}},
        )
        assert canonical.encode(changed) == canonical.encode(fields)

    @pytest.mark.parametrize("name", HASHED_FIELDS)
    def test_every_field_is_covered(self, fields: dict, name: str) -> None:
        """Should change when any hashed field changes."""
        replacement = {
            "sequence": 4,
            "timestamp": fields["timestamp"] + timedelta(microseconds=1),
            "details": {"record_id": "20"},
            "metadata": {"region": "us"},
        }.get(name, "changed")
        assert canonical.encode(dict(fields, **{name: replacement})) != canonical.encode(fields)

    def test_ignores_fields_outside_hash_scope(self, fields: dict) -> None:
        """Should ignore previous_hash, hash and unknown keys."""
        extended = dict(fields, previous_hash="a" * 64, hash="b" * 64, extra=1)
        assert canonical.encode(extended) == canonical.encode(fields)

    def test_missing_field_raises(self, fields: dict) -> None:
        """Should name the missing fields."""
        del fields["source"]
        with pytest.raises(CanonicalEncodingError, match="source"):
            canonical.encode(fields)

    def test_lone_surrogate_raises(self, fields: dict) -> None:
        """Should reject text that is not valid Unicode."""
        fields["action"] = "bad\ud800"
        with pytest.raises(CanonicalEncodingError):
            canonical.encode(fields)


def test_record_fields_end_with_chain_links() -> None:
    """Should list previous_hash and hash after the hashed fields."""
    assert RECORD_FIELDS[-2:] == ("previous_hash", "hash")
    assert RECORD_FIELDS[:-2] == HASHED_FIELDS
