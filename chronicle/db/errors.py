"""Errors raised by record store backends.

Driver exceptions never leave a backend unwrapped; the original is kept on
``cause`` for logging.
"""


class StoreError(Exception):
    """A record store could not complete an operation."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConnectionError(StoreError):  # noqa: A001
    """The backend is unreachable or a statement failed."""


class ConflictError(StoreError):
    """A conditional append found a different tail than the caller expected."""


class CorruptRecordError(StoreError):
    """A stored row no longer forms a valid record.

    Raised by readers for rows edited outside the append path; ``sequence``
    names the offending row.
    """

    def __init__(self, sequence: int, message: str, cause: Exception | None = None) -> None:
        super().__init__(message, cause)
        self.sequence = sequence
