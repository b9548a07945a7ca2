"""Attempt and migration result models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AttemptOutcome(Enum):
    """How a single strategy attempt ended."""

    SUCCEEDED = "succeeded"
    NOT_APPLICABLE = "not_applicable"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TransferReport(BaseModel):
    """What a successful strategy execution reports back."""

    stats: dict[str, Any] = Field(default_factory=dict)
    output: str = ""
    teardown_errors: list[str] = Field(default_factory=list)


class AttemptResult(BaseModel):
    """Outcome of evaluating and possibly executing one strategy."""

    model_config = ConfigDict(frozen=True)

    strategy: str
    outcome: AttemptOutcome
    reason: str = ""
    error_type: str | None = None
    elapsed: float = 0.0
    teardown_errors: tuple[str, ...] = ()
    stats: dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        """One line summary of the attempt."""
        if self.outcome is AttemptOutcome.SUCCEEDED:
            line = f"{self.strategy}: succeeded in {self.elapsed:.1f}s"
        elif self.outcome is AttemptOutcome.NOT_APPLICABLE:
            line = f"{self.strategy}: skipped, not applicable: {self.reason}"
        elif self.outcome is AttemptOutcome.CANCELLED:
            line = f"{self.strategy}: cancelled"
        else:
            cause = self.error_type or "Error"
            line = f"{self.strategy}: failed ({cause}): {self.reason}"
        if self.teardown_errors:
            line += f" [teardown errors: {'; '.join(self.teardown_errors)}]"
        return line


class MigrationResult(BaseModel):
    """Successful result of a migration run."""

    strategy: str
    attempts: list[AttemptResult]

    @property
    def succeeded(self) -> AttemptResult:
        return self.attempts[-1]


def describe_attempts(attempts: list[AttemptResult]) -> str:
    """Format every attempt in order, one per line."""
    if not attempts:
        return "  (no strategies attempted)"
    return "\n".join(f"  {i}. {attempt.describe()}" for i, attempt in enumerate(attempts, 1))
