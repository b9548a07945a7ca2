"""Rsync over SSH between two claims of the same cluster."""

from ...constants import STRATEGY_RSYNC_IN_CLUSTER
from ...models.request import MigrationRequest
from .base import Applicability, AttemptContext, VolumeState
from .rsync_ssh import RsyncSSHStrategy


class RsyncInClusterStrategy(RsyncSSHStrategy):
    """Relay exposed through a ClusterIP service; namespaces may differ."""

    name = STRATEGY_RSYNC_IN_CLUSTER
    service_type = "ClusterIP"

    async def _check_topology(
        self,
        request: MigrationRequest,
        ctx: AttemptContext,
        source: VolumeState,
        dest: VolumeState,
    ) -> Applicability:
        if not request.source.same_cluster(request.dest):
            return Applicability(False, "source and destination are in different clusters")
        return Applicability(True)

    async def _relay_address(
        self, request: MigrationRequest, ctx: AttemptContext, service_name: str
    ) -> str:
        return f"{service_name}.{request.dest.namespace}"
