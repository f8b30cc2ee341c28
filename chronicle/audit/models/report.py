"""Integrity verification results."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from chronicle.audit.models.enums import IntegrityBreakKind


class VerifyRange(BaseModel):
    """Inclusive sequence bounds for a verification run.

    Verifying a suffix (start_sequence > 0) anchors on the stored hash of
    the record just before the range.
    """

    model_config = ConfigDict(frozen=True)

    start_sequence: int | None = Field(default=None, ge=0)
    end_sequence: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "VerifyRange":
        if (
            self.start_sequence is not None
            and self.end_sequence is not None
            and self.start_sequence > self.end_sequence
        ):
            raise ValueError("start_sequence must not exceed end_sequence")
        return self


class IntegrityBreak(BaseModel):
    """One position where the stored chain does not hold."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(..., description="Sequence of the offending record")
    kind: IntegrityBreakKind
    expected: str = Field(..., description="Value the chain requires")
    actual: str = Field(..., description="Value found in the store")
    message: str


class IntegrityReport(BaseModel):
    """Outcome of verify_integrity.

    valid=False is the integrity violation signal. It is a normal result,
    not an exception, and must be surfaced as-is to compliance consumers.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    records_checked: int = Field(..., ge=0)
    first_break: int | None = Field(
        default=None, description="Sequence of the first broken record"
    )
    breaks: list[IntegrityBreak] = Field(default_factory=list)
    start_sequence: int | None = Field(
        default=None, description="First sequence in the scanned snapshot"
    )
    end_sequence: int | None = Field(
        default=None, description="Last sequence in the scanned snapshot"
    )
    stopped_early: bool = Field(
        default=False, description="Scan halted at the first break"
    )
