"""Shared implementation of the rsync-over-SSH tunnel strategies."""

import asyncio
from abc import abstractmethod

from ...constants import (
    DEST_MOUNT_PATH,
    SOURCE_MOUNT_PATH,
    SSH_CONNECT_TIMEOUT,
    SSH_ERROR_LOG_LEVEL,
    SSH_KEY_MOUNT_PATH,
    SSH_NO_HOST_CHECK,
    SSH_NO_KNOWN_HOSTS,
    SSH_PRIVATE_KEY_FILE,
    SSHD_USER,
)
from ...models.request import MigrationRequest
from ...models.results import TransferReport
from ..keys import generate_ssh_keypair
from ..manifests import (
    authorized_keys_secret,
    connection_secret,
    resource_name,
    rsync_ssh_pod,
    sshd_pod,
    sshd_service,
)
from ..resources import (
    EphemeralResourceSet,
    wait_for_pod_completion,
    wait_for_pod_ready,
    wait_for_pod_started,
)
from ..rsync import build_rsync_args, parse_rsync_stats
from .base import AttemptContext, BaseStrategy


def build_ssh_command() -> str:
    """Remote shell used by rsync inside the transfer pod."""
    ssh_opts = [
        "ssh",
        "-i",
        f"{SSH_KEY_MOUNT_PATH}/{SSH_PRIVATE_KEY_FILE}",
        "-o",
        SSH_NO_HOST_CHECK,
        "-o",
        SSH_NO_KNOWN_HOSTS,
        "-o",
        SSH_ERROR_LOG_LEVEL,
        "-o",
        SSH_CONNECT_TIMEOUT,
    ]
    return " ".join(ssh_opts)


class RsyncSSHStrategy(BaseStrategy):
    """Push the source claim to an sshd relay that mounts the destination claim.

    Resources, in creation order: authorized_keys secret and sshd relay pod in
    the destination namespace, a service exposing the relay, then a connection
    secret and rsync transfer pod in the source namespace. The transfer pod is
    only created once the relay is ready and its address is known.
    """

    service_type = "ClusterIP"

    @abstractmethod
    async def _relay_address(
        self, request: MigrationRequest, ctx: AttemptContext, service_name: str
    ) -> str:
        """Address the transfer pod uses to reach the relay service."""
        pass

    async def execute(self, request: MigrationRequest, ctx: AttemptContext) -> TransferReport:
        """Run one tunnel attempt, releasing every object it created."""
        settings = ctx.settings
        source_ns = request.source.namespace
        dest_ns = request.dest.namespace
        sshd_name = resource_name(ctx.attempt_id, "sshd")
        rsync_name = resource_name(ctx.attempt_id, "rsync")

        await self._recheck(request, ctx)
        keypair = await asyncio.to_thread(generate_ssh_keypair, settings.ssh_key_bits)

        ctx.logger.info(
            "Starting rsync over SSH transfer",
            strategy=self.name,
            source=str(request.source),
            dest=str(request.dest),
            service_type=self.service_type,
            delete=request.options.delete_extraneous,
        )

        async with EphemeralResourceSet(ctx.logger) as resources:
            # Relay side
            await resources.create_secret(
                ctx.dest_client, dest_ns, authorized_keys_secret(ctx.attempt_id, keypair.public_key)
            )
            await resources.create_pod(
                ctx.dest_client,
                dest_ns,
                sshd_pod(ctx.attempt_id, request.sshd_image, request.dest.name),
            )
            await resources.create_service(
                ctx.dest_client, dest_ns, sshd_service(ctx.attempt_id, self.service_type)
            )
            await wait_for_pod_ready(
                ctx.dest_client,
                dest_ns,
                sshd_name,
                timeout=settings.readiness_timeout,
                poll_interval=settings.poll_interval,
            )
            address = await self._relay_address(request, ctx, sshd_name)
            ctx.logger.info("Relay ready", address=address)

            # Transfer side
            await resources.create_secret(
                ctx.source_client,
                source_ns,
                connection_secret(ctx.attempt_id, keypair.private_key, address),
            )
            command = build_rsync_args(
                SOURCE_MOUNT_PATH,
                f"{SSHD_USER}@$(SSHD_ADDRESS):{DEST_MOUNT_PATH}/",
                delete=request.options.delete_extraneous,
                ssh_command=build_ssh_command(),
            )
            await resources.create_pod(
                ctx.source_client,
                source_ns,
                rsync_ssh_pod(
                    ctx.attempt_id, request.rsync_image, request.source.name, rsync_name, command
                ),
            )
            await wait_for_pod_started(
                ctx.source_client,
                source_ns,
                rsync_name,
                timeout=settings.readiness_timeout,
                poll_interval=settings.poll_interval,
            )
            output = await wait_for_pod_completion(
                ctx.source_client,
                source_ns,
                rsync_name,
                timeout=settings.transfer_timeout,
                poll_interval=settings.poll_interval,
            )

        return TransferReport(
            stats=parse_rsync_stats(output),
            output=output,
            teardown_errors=list(resources.teardown_errors),
        )
