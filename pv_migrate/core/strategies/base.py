"""Abstract base class for migration strategies."""

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog
from kubernetes import client as k8s

from ...models.request import MigrationRequest, VolumeLocator
from ...models.results import TransferReport
from ..cluster import ClusterClient
from ..exceptions import ClusterAccessError, MountSafetyError, ProvisioningFailed
from ..mount_inspector import MountInfo, MountInspector, mount_safety_reason
from ..settings import MigrationSettings

logger = structlog.get_logger()


@dataclass(frozen=True)
class Applicability:
    """Result of a strategy's applicability check."""

    applicable: bool
    reason: str = ""


@dataclass
class VolumeState:
    """Live state of one side of the request."""

    locator: VolumeLocator
    pvc: k8s.V1PersistentVolumeClaim
    mount: MountInfo


@dataclass
class AttemptContext:
    """Everything one strategy attempt needs besides the request."""

    source_client: ClusterClient
    dest_client: ClusterClient
    settings: MigrationSettings
    inspector: MountInspector = field(default_factory=MountInspector)
    attempt_id: str = field(default_factory=lambda: secrets.token_hex(3))
    logger: Any = None

    def __post_init__(self):
        if self.logger is None:
            self.logger = logger.bind(attempt_id=self.attempt_id)


class BaseStrategy(ABC):
    """Abstract base class for all migration strategies.

    ``applicable`` runs the checks every strategy shares (both claims exist,
    mount safety gate) before the strategy's own topology check. ``execute``
    performs one complete attempt and must release everything it provisioned.
    """

    name: str = ""

    def __init__(self):
        self.logger = logger.bind(component=self.__class__.__name__.lower(), strategy=self.name)

    async def applicable(self, request: MigrationRequest, ctx: AttemptContext) -> Applicability:
        """Decide whether this strategy can handle the request.

        Args:
            request: Migration request
            ctx: Attempt context with cluster clients

        Returns:
            Applicability with a reason when not applicable

        Raises:
            ClusterAccessError: If cluster state cannot be read
        """
        source = await self._inspect_volume(ctx.source_client, request.source, ctx)
        if source is None:
            return Applicability(False, f"source PVC {request.source} not found")

        dest = await self._inspect_volume(ctx.dest_client, request.dest, ctx)
        if dest is None:
            return Applicability(False, f"destination PVC {request.dest} not found")

        if not request.options.ignore_mounted:
            reason = mount_safety_reason(request.source, source.mount, request.dest, dest.mount)
            if reason:
                return Applicability(False, reason)

        return await self._check_topology(request, ctx, source, dest)

    @abstractmethod
    async def _check_topology(
        self,
        request: MigrationRequest,
        ctx: AttemptContext,
        source: VolumeState,
        dest: VolumeState,
    ) -> Applicability:
        """Strategy specific applicability check."""
        pass

    @abstractmethod
    async def execute(self, request: MigrationRequest, ctx: AttemptContext) -> TransferReport:
        """Provision, transfer, verify and tear down.

        Raises:
            StrategyError: Typed cause of the failure
        """
        pass

    async def _recheck(
        self, request: MigrationRequest, ctx: AttemptContext
    ) -> tuple[VolumeState, VolumeState]:
        """Re-read both sides right before provisioning.

        Raises:
            ProvisioningFailed: If a claim disappeared since the applicability check
            MountSafetyError: If a claim got mounted since the applicability check
        """
        source = await self._inspect_volume(ctx.source_client, request.source, ctx)
        dest = await self._inspect_volume(ctx.dest_client, request.dest, ctx)
        if source is None or dest is None:
            raise ProvisioningFailed("source or destination PVC disappeared before the transfer")

        if not request.options.ignore_mounted:
            reason = mount_safety_reason(request.source, source.mount, request.dest, dest.mount)
            if reason:
                raise MountSafetyError(reason)
        return source, dest

    async def _inspect_volume(
        self, client: ClusterClient, locator: VolumeLocator, ctx: AttemptContext
    ) -> VolumeState | None:
        try:
            pvc = await client.read_pvc(locator.namespace, locator.name)
        except ClusterAccessError as e:
            if e.status == 404:
                return None
            raise
        mount = await ctx.inspector.is_mounted(client, locator)
        return VolumeState(locator=locator, pvc=pvc, mount=mount)
