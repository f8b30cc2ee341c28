"""Hash chain engine.

Each record's hash is SHA-256 over its canonical encoding followed by the
ASCII hex digest of its predecessor. The first record links to GENESIS_HASH.
Nothing here holds state, so append and verify share the exact same code.
"""

import hashlib
import re
from collections.abc import Mapping
from typing import Any

from chronicle.audit import canonical
from chronicle.audit.models.record import AuditRecord

DIGEST_SIZE = hashlib.sha256().digest_size
GENESIS_HASH = "0" * (DIGEST_SIZE * 2)

_HEX_DIGEST = re.compile(rf"^[0-9a-f]{{{DIGEST_SIZE * 2}}}$")


def is_hex_digest(value: str) -> bool:
    """Check that value is a lowercase hex SHA-256 digest."""
    return bool(_HEX_DIGEST.match(value))


def compute_hash(canonical_bytes: bytes, previous_hash: str) -> str:
    """Compute a record digest.

    Args:
        canonical_bytes: Output of canonical.encode for the record
        previous_hash: Hex digest of the preceding record, or GENESIS_HASH

    Returns:
        Lowercase hex SHA-256 digest

    Raises:
        ValueError: If previous_hash is not a hex digest
    """
    if not is_hex_digest(previous_hash):
        raise ValueError(f"previous_hash is not a hex SHA-256 digest: {previous_hash!r}")
    digest = hashlib.sha256()
    digest.update(canonical_bytes)
    digest.update(previous_hash.encode("ascii"))
    return digest.hexdigest()


class HashChain:
    """Injectable facade over the canonical encoder and compute_hash."""

    genesis: str = GENESIS_HASH

    def hash_fields(self, fields: Mapping[str, Any], previous_hash: str) -> str:
        """Hash the hashed fields of a record that is about to be appended."""
        return compute_hash(canonical.encode(fields), previous_hash)

    def hash_record(self, record: AuditRecord) -> str:
        """Recompute the hash a stored record should carry."""
        return self.hash_fields(record.hashed_fields(), record.previous_hash)
