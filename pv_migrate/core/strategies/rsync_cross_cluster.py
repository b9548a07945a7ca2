"""Rsync over SSH between claims of different clusters."""

from ...constants import STRATEGY_RSYNC_CROSS_CLUSTER
from ...models.request import MigrationRequest
from ..resources import wait_for_service_address
from .base import Applicability, AttemptContext, VolumeState
from .rsync_ssh import RsyncSSHStrategy


class RsyncCrossClusterStrategy(RsyncSSHStrategy):
    """Relay exposed through a LoadBalancer service reachable from the source cluster.

    Works for any pair of reachable clusters, including a single cluster, but
    needs a load balancer implementation in the destination cluster and has the
    largest failure surface, so it is tried last.
    """

    name = STRATEGY_RSYNC_CROSS_CLUSTER
    service_type = "LoadBalancer"

    async def _check_topology(
        self,
        request: MigrationRequest,
        ctx: AttemptContext,
        source: VolumeState,
        dest: VolumeState,
    ) -> Applicability:
        # Both claims were resolved through their own clusters by the caller
        return Applicability(True)

    async def _relay_address(
        self, request: MigrationRequest, ctx: AttemptContext, service_name: str
    ) -> str:
        return await wait_for_service_address(
            ctx.dest_client,
            request.dest.namespace,
            service_name,
            timeout=ctx.settings.load_balancer_timeout,
            poll_interval=ctx.settings.poll_interval,
        )
