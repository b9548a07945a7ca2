"""Migration by attaching both claims to one pod and copying locally."""

from ...constants import DEST_MOUNT_PATH, SOURCE_MOUNT_PATH, STRATEGY_MOUNT_BOTH
from ...models.request import MigrationRequest
from ...models.results import TransferReport
from ..manifests import mount_both_pod, resource_name
from ..resources import EphemeralResourceSet, wait_for_pod_completion, wait_for_pod_started
from ..rsync import build_rsync_args, parse_rsync_stats
from .base import Applicability, AttemptContext, BaseStrategy, VolumeState


class MountBothStrategy(BaseStrategy):
    """Copy data inside a single pod that mounts both claims.

    Needs no network exposure, so it is the cheapest strategy. Only possible
    when both claims live in the same namespace of the same cluster and can be
    attached on a common node.
    """

    name = STRATEGY_MOUNT_BOTH

    async def _check_topology(
        self,
        request: MigrationRequest,
        ctx: AttemptContext,
        source: VolumeState,
        dest: VolumeState,
    ) -> Applicability:
        if not request.source.same_cluster(request.dest):
            return Applicability(False, "source and destination are in different clusters")
        if not request.source.same_namespace(request.dest):
            return Applicability(False, "source and destination are in different namespaces")

        ok, _, reason = await self._common_node(ctx, source, dest)
        if not ok:
            return Applicability(False, reason)
        return Applicability(True)

    async def _common_node(
        self, ctx: AttemptContext, source: VolumeState, dest: VolumeState
    ) -> tuple[bool, str | None, str]:
        """Find the node both claims can be attached on.

        Returns:
            Tuple of (possible, node_name or None for any node, reason)
        """
        source_node = await ctx.inspector.node_constraint(ctx.source_client, source.pvc, source.mount)
        dest_node = await ctx.inspector.node_constraint(ctx.dest_client, dest.pvc, dest.mount)

        if source_node and dest_node and source_node != dest_node:
            return (
                False,
                None,
                f"source is bound to node {source_node} and destination to node {dest_node}",
            )
        return True, source_node or dest_node, ""

    async def execute(self, request: MigrationRequest, ctx: AttemptContext) -> TransferReport:
        """Run rsync between the two mounts of a single pod."""
        source, dest = await self._recheck(request, ctx)
        _, node_name, _ = await self._common_node(ctx, source, dest)

        namespace = request.source.namespace
        command = build_rsync_args(
            SOURCE_MOUNT_PATH,
            DEST_MOUNT_PATH + "/",
            delete=request.options.delete_extraneous,
        )
        pod = mount_both_pod(
            ctx.attempt_id,
            request.rsync_image,
            request.source.name,
            request.dest.name,
            command,
            node_name=node_name,
        )
        pod_name = resource_name(ctx.attempt_id, "rsync")

        ctx.logger.info(
            "Starting mount-both transfer",
            namespace=namespace,
            source_pvc=request.source.name,
            dest_pvc=request.dest.name,
            node=node_name,
            delete=request.options.delete_extraneous,
        )

        async with EphemeralResourceSet(ctx.logger) as resources:
            await resources.create_pod(ctx.source_client, namespace, pod)
            await wait_for_pod_started(
                ctx.source_client,
                namespace,
                pod_name,
                timeout=ctx.settings.readiness_timeout,
                poll_interval=ctx.settings.poll_interval,
            )
            output = await wait_for_pod_completion(
                ctx.source_client,
                namespace,
                pod_name,
                timeout=ctx.settings.transfer_timeout,
                poll_interval=ctx.settings.poll_interval,
            )

        return TransferReport(
            stats=parse_rsync_stats(output),
            output=output,
            teardown_errors=list(resources.teardown_errors),
        )
