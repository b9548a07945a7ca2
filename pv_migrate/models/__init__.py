"""Data models for pv-migrate."""

from .events import EngineEvent, EventKind, EventListener  # noqa: F401
from .request import MigrationRequest, TransferOptions, VolumeLocator  # noqa: F401
from .results import (  # noqa: F401
    AttemptOutcome,
    AttemptResult,
    MigrationResult,
    TransferReport,
    describe_attempts,
)

__all__ = [
    # Request models
    "MigrationRequest",
    "TransferOptions",
    "VolumeLocator",
    # Result models
    "AttemptOutcome",
    "AttemptResult",
    "MigrationResult",
    "TransferReport",
    "describe_attempts",
    # Events
    "EngineEvent",
    "EventKind",
    "EventListener",
]
