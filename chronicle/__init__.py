"""Chronicle: tamper-evident audit logging.

Audit events are appended to a SHA-256 hash chain, verified on demand and
exported as CSV for compliance review.
"""

__version__ = "0.1.0"
