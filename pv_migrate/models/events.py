"""Engine observability events."""

from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .results import AttemptOutcome


class EventKind(Enum):
    """Phase transitions reported by the engine."""

    EVALUATION_STARTED = "evaluation_started"
    APPLICABILITY_RESULT = "applicability_result"
    EXECUTION_STARTED = "execution_started"
    EXECUTION_FINISHED = "execution_finished"
    RUN_CANCELLED = "run_cancelled"


class EngineEvent(BaseModel):
    """One phase transition of a migration run."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    strategy: str | None = None
    applicable: bool | None = None
    reason: str = ""
    outcome: AttemptOutcome | None = None
    elapsed: float | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


EventListener = Callable[[EngineEvent], None]
