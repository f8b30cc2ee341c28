"""Tamper-evident audit log: hash-chained records, verification, export.

Every record carries the SHA-256 hash of its predecessor, so altering,
removing or reordering a stored record is detectable by replaying the
chain. Build the service with `chronicle.audit.factory.build_audit_service`.
"""
