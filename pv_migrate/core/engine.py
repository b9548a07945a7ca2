"""Migration engine: ordered fallback over migration strategies."""

import asyncio
import time
from typing import Protocol

import structlog

from ..models.events import EngineEvent, EventKind, EventListener
from ..models.request import MigrationRequest, VolumeLocator
from ..models.results import AttemptOutcome, AttemptResult, MigrationResult
from .cluster import ClusterClient
from .exceptions import MigrationFailedError, StrategyError
from .mount_inspector import MountInspector
from .settings import MigrationSettings
from .strategies.base import AttemptContext, BaseStrategy
from .strategies.registry import StrategyRegistry

logger = structlog.get_logger()


class ClusterProvider(Protocol):
    """Anything that hands out a client for a locator's cluster."""

    def client_for(self, locator: VolumeLocator) -> ClusterClient: ...


def log_event(event: EngineEvent) -> None:
    """Default listener: one structured log line per phase transition."""
    event_logger = logger.bind(component="migration_engine", strategy=event.strategy)
    if event.kind is EventKind.EVALUATION_STARTED:
        event_logger.info("Evaluating strategy")
    elif event.kind is EventKind.APPLICABILITY_RESULT:
        if event.applicable:
            event_logger.info("Strategy is applicable")
        else:
            event_logger.info("Strategy is not applicable", reason=event.reason)
    elif event.kind is EventKind.EXECUTION_STARTED:
        event_logger.info("Executing strategy")
    elif event.kind is EventKind.EXECUTION_FINISHED:
        if event.outcome is AttemptOutcome.SUCCEEDED:
            event_logger.info("Strategy succeeded", elapsed=round(event.elapsed or 0, 2))
        else:
            event_logger.warning(
                "Strategy failed", reason=event.reason, elapsed=round(event.elapsed or 0, 2)
            )
    elif event.kind is EventKind.RUN_CANCELLED:
        event_logger.warning("Migration cancelled")


class MigrationEngine:
    """Tries strategies one at a time until one migrates the data.

    Strategies are never run concurrently for a request: each attempt's
    resources are released before the next candidate is evaluated.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        clusters: ClusterProvider,
        settings: MigrationSettings | None = None,
        listener: EventListener | None = None,
        inspector: MountInspector | None = None,
    ):
        self.registry = registry
        self.clusters = clusters
        self.settings = settings or MigrationSettings()
        self.listener = listener or log_event
        self.inspector = inspector or MountInspector()
        self.logger = logger.bind(component="migration_engine")

    async def run(self, request: MigrationRequest) -> MigrationResult:
        """Migrate the request's source claim to its destination claim.

        Args:
            request: Migration request

        Returns:
            MigrationResult naming the strategy that succeeded

        Raises:
            ConfigurationError: Invalid strategy override, before any cluster call
            MigrationFailedError: Every candidate failed or was not applicable
            asyncio.CancelledError: The run was cancelled; the in-flight attempt
                was torn down and no further strategy was tried
        """
        candidates = self.registry.resolve(request.strategies)
        source_client = self.clusters.client_for(request.source)
        dest_client = self.clusters.client_for(request.dest)

        self.logger.info(
            "Starting migration",
            source=str(request.source),
            dest=str(request.dest),
            strategies=[strategy.name for strategy in candidates],
        )

        attempts: list[AttemptResult] = []
        for strategy in candidates:
            ctx = AttemptContext(
                source_client=source_client,
                dest_client=dest_client,
                settings=self.settings,
                inspector=self.inspector,
            )
            ctx.logger = ctx.logger.bind(strategy=strategy.name)

            started = time.monotonic()
            try:
                attempt = await self._attempt(strategy, request, ctx, started)
            except asyncio.CancelledError:
                attempts.append(
                    AttemptResult(
                        strategy=strategy.name,
                        outcome=AttemptOutcome.CANCELLED,
                        reason="cancelled",
                        elapsed=time.monotonic() - started,
                    )
                )
                self._emit(EventKind.RUN_CANCELLED, strategy.name)
                raise

            attempts.append(attempt)
            if attempt.outcome is AttemptOutcome.SUCCEEDED:
                self.logger.info(
                    "Migration succeeded",
                    strategy=strategy.name,
                    attempts=len(attempts),
                    stats=attempt.stats,
                )
                return MigrationResult(strategy=strategy.name, attempts=attempts)

        raise MigrationFailedError(attempts)

    async def _attempt(
        self,
        strategy: BaseStrategy,
        request: MigrationRequest,
        ctx: AttemptContext,
        started: float,
    ) -> AttemptResult:
        """Evaluate and, when applicable, execute one strategy."""
        self._emit(EventKind.EVALUATION_STARTED, strategy.name)

        try:
            applicability = await strategy.applicable(request, ctx)
        except Exception as e:
            self._emit(EventKind.APPLICABILITY_RESULT, strategy.name, applicable=False, reason=str(e))
            return self._failed(strategy, e, started, executed=False)

        self._emit(
            EventKind.APPLICABILITY_RESULT,
            strategy.name,
            applicable=applicability.applicable,
            reason=applicability.reason,
        )
        if not applicability.applicable:
            return AttemptResult(
                strategy=strategy.name,
                outcome=AttemptOutcome.NOT_APPLICABLE,
                reason=applicability.reason,
                elapsed=time.monotonic() - started,
            )

        self._emit(EventKind.EXECUTION_STARTED, strategy.name)
        try:
            report = await strategy.execute(request, ctx)
        except Exception as e:
            return self._failed(strategy, e, started)

        elapsed = time.monotonic() - started
        self._emit(
            EventKind.EXECUTION_FINISHED,
            strategy.name,
            outcome=AttemptOutcome.SUCCEEDED,
            elapsed=elapsed,
        )
        return AttemptResult(
            strategy=strategy.name,
            outcome=AttemptOutcome.SUCCEEDED,
            elapsed=elapsed,
            teardown_errors=tuple(report.teardown_errors),
            stats=report.stats,
        )

    def _failed(
        self, strategy: BaseStrategy, error: Exception, started: float, executed: bool = True
    ) -> AttemptResult:
        elapsed = time.monotonic() - started
        if not isinstance(error, StrategyError):
            self.logger.debug("Unexpected strategy error", strategy=strategy.name, exc_info=error)
        # EXECUTION_FINISHED only pairs with an EXECUTION_STARTED
        if executed:
            self._emit(
                EventKind.EXECUTION_FINISHED,
                strategy.name,
                outcome=AttemptOutcome.FAILED,
                reason=str(error),
                elapsed=elapsed,
            )
        return AttemptResult(
            strategy=strategy.name,
            outcome=AttemptOutcome.FAILED,
            reason=str(error),
            error_type=type(error).__name__,
            elapsed=elapsed,
            teardown_errors=tuple(getattr(error, "teardown_errors", ())),
        )

    def _emit(self, kind: EventKind, strategy: str | None, **fields) -> None:
        self.listener(EngineEvent(kind=kind, strategy=strategy, **fields))
