"""Ephemeral cluster resources owned by a single strategy attempt."""

import asyncio
from dataclasses import dataclass
from typing import Any

import structlog
from kubernetes import client as k8s

from ..constants import LOG_TAIL_CHARS, LOG_TAIL_LINES
from .cluster import ClusterClient
from .exceptions import (
    ClusterAccessError,
    ProvisioningFailed,
    ReadinessTimeout,
    StrategyError,
    TeardownFailed,
    TransferFailed,
    TransferTimeout,
)

logger = structlog.get_logger()

# Container waiting reasons that will not resolve by waiting longer
FATAL_WAITING_REASONS = frozenset(
    {
        "ErrImagePull",
        "ImagePullBackOff",
        "InvalidImageName",
        "CreateContainerConfigError",
        "CreateContainerError",
    }
)


@dataclass
class TrackedResource:
    """A cluster object created by an attempt."""

    kind: str
    client: ClusterClient
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.kind} {self.namespace}/{self.name}"


class EphemeralResourceSet:
    """Tracks every object an attempt creates and deletes them all on exit.

    Objects are registered only after the cluster accepted them, so release
    deletes exactly what was acquired, in reverse order, once each. Deletion
    errors are collected in ``teardown_errors`` and never raised.

    Usage::

        async with EphemeralResourceSet(logger) as resources:
            await resources.create_pod(client, namespace, body)
            ...
    """

    def __init__(self, log: Any = None):
        self.logger = log or logger.bind(component="ephemeral_resources")
        self.created: list[TrackedResource] = []
        self.teardown_errors: list[str] = []
        self._released = False

    async def __aenter__(self) -> "EphemeralResourceSet":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.release()
        if isinstance(exc_val, StrategyError):
            exc_val.teardown_errors.extend(self.teardown_errors)
        elif exc_val is not None and self.teardown_errors:
            exc_val.add_note("Teardown errors: " + "; ".join(self.teardown_errors))

    async def create_pod(self, client: ClusterClient, namespace: str, body: k8s.V1Pod) -> Any:
        return await self._create("pod", client, namespace, body, client.create_pod)

    async def create_service(
        self, client: ClusterClient, namespace: str, body: k8s.V1Service
    ) -> Any:
        return await self._create("service", client, namespace, body, client.create_service)

    async def create_secret(self, client: ClusterClient, namespace: str, body: k8s.V1Secret) -> Any:
        return await self._create("secret", client, namespace, body, client.create_secret)

    async def _create(self, kind, client, namespace, body, create_fn) -> Any:
        if self._released:
            raise ProvisioningFailed(f"Cannot create {kind}: resource set already released")

        name = body.metadata.name
        # The API call runs in a worker thread and completes even if we are cancelled
        create = asyncio.ensure_future(create_fn(namespace, body))
        try:
            created = await asyncio.shield(create)
        except ClusterAccessError as e:
            raise ProvisioningFailed(f"Failed to create {kind} {namespace}/{name}: {e}") from e
        except asyncio.CancelledError:
            await asyncio.wait([create])
            if not create.cancelled() and create.exception() is None:
                self._track(kind, client, namespace, name)
            raise

        self._track(kind, client, namespace, name)
        return created

    def _track(self, kind: str, client: ClusterClient, namespace: str, name: str) -> None:
        self.created.append(TrackedResource(kind, client, namespace, name))
        self.logger.debug("Created ephemeral resource", kind=kind, namespace=namespace, name=name)

    async def release(self) -> None:
        """Delete every created object, newest first. Safe to call more than once."""
        if self._released:
            return
        self._released = True

        for resource in reversed(self.created):
            delete_fn = {
                "pod": resource.client.delete_pod,
                "service": resource.client.delete_service,
                "secret": resource.client.delete_secret,
            }[resource.kind]
            try:
                await delete_fn(resource.namespace, resource.name)
                self.logger.debug("Deleted ephemeral resource", resource=str(resource))
            except ClusterAccessError as e:
                if e.status == 404:
                    continue
                error = TeardownFailed(f"Failed to delete {resource}: {e}")
                self.teardown_errors.append(str(error))
                self.logger.warning(
                    "Ephemeral resource may be orphaned",
                    resource=str(resource),
                    error=str(e),
                )


async def wait_for_pod_ready(
    client: ClusterClient,
    namespace: str,
    name: str,
    timeout: float,
    poll_interval: float = 2.0,
) -> k8s.V1Pod:
    """Poll until a pod reports the Ready condition.

    Raises:
        ReadinessTimeout: If the pod is not ready within ``timeout`` seconds
        ProvisioningFailed: If the pod terminates or cannot pull its image
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        try:
            pod = await client.read_pod(namespace, name)
        except ClusterAccessError as e:
            raise ProvisioningFailed(f"Failed to read pod {namespace}/{name}: {e}") from e

        status = pod.status
        phase = status.phase if status else None
        if phase in ("Failed", "Succeeded"):
            raise ProvisioningFailed(f"Pod {namespace}/{name} terminated ({phase}) before ready")

        for container_status in (status.container_statuses if status else None) or []:
            waiting = container_status.state.waiting if container_status.state else None
            if waiting is not None and waiting.reason in FATAL_WAITING_REASONS:
                raise ProvisioningFailed(
                    f"Pod {namespace}/{name} cannot start: {waiting.reason}: {waiting.message or ''}"
                )

        if _is_ready(pod):
            return pod

        if loop.time() >= deadline:
            raise ReadinessTimeout(f"Pod {namespace}/{name} not ready after {timeout:g}s")
        await asyncio.sleep(poll_interval)


async def wait_for_pod_started(
    client: ClusterClient,
    namespace: str,
    name: str,
    timeout: float,
    poll_interval: float = 2.0,
) -> k8s.V1Pod:
    """Poll until a run-to-completion pod is scheduled and has left Pending.

    Raises:
        ReadinessTimeout: If the pod is still pending after ``timeout`` seconds
        ProvisioningFailed: If the pod cannot pull its image or start
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        try:
            pod = await client.read_pod(namespace, name)
        except ClusterAccessError as e:
            raise ProvisioningFailed(f"Failed to read pod {namespace}/{name}: {e}") from e

        status = pod.status
        if status is not None and status.phase in ("Running", "Succeeded", "Failed"):
            return pod

        for container_status in (status.container_statuses if status else None) or []:
            waiting = container_status.state.waiting if container_status.state else None
            if waiting is not None and waiting.reason in FATAL_WAITING_REASONS:
                raise ProvisioningFailed(
                    f"Pod {namespace}/{name} cannot start: {waiting.reason}: {waiting.message or ''}"
                )

        if loop.time() >= deadline:
            raise ReadinessTimeout(f"Pod {namespace}/{name} still pending after {timeout:g}s")
        await asyncio.sleep(poll_interval)


async def wait_for_pod_completion(
    client: ClusterClient,
    namespace: str,
    name: str,
    timeout: float,
    poll_interval: float = 2.0,
) -> str:
    """Poll until a run-to-completion pod finishes and return its log.

    Raises:
        TransferFailed: If the pod exits non-zero
        TransferTimeout: If the pod does not finish within ``timeout`` seconds
        ProvisioningFailed: If the pod cannot start
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        try:
            pod = await client.read_pod(namespace, name)
        except ClusterAccessError as e:
            raise TransferFailed(f"Lost track of transfer pod {namespace}/{name}: {e}") from e

        status = pod.status
        phase = status.phase if status else None

        if phase == "Succeeded":
            return await _read_log(client, namespace, name)

        if phase == "Failed":
            output = await _read_log(client, namespace, name)
            exit_code = _exit_code(pod)
            raise TransferFailed(
                f"Transfer pod {namespace}/{name} failed (exit {exit_code}): "
                f"{output[-LOG_TAIL_CHARS:].strip()}",
                exit_code=exit_code,
                output=output,
            )

        for container_status in (status.container_statuses if status else None) or []:
            waiting = container_status.state.waiting if container_status.state else None
            if waiting is not None and waiting.reason in FATAL_WAITING_REASONS:
                raise ProvisioningFailed(
                    f"Transfer pod {namespace}/{name} cannot start: {waiting.reason}"
                )

        if loop.time() >= deadline:
            raise TransferTimeout(f"Transfer pod {namespace}/{name} did not finish after {timeout:g}s")
        await asyncio.sleep(poll_interval)


async def wait_for_service_address(
    client: ClusterClient,
    namespace: str,
    name: str,
    timeout: float,
    poll_interval: float = 2.0,
) -> str:
    """Poll until a LoadBalancer service publishes an ingress IP or hostname.

    Raises:
        ReadinessTimeout: If no address appears within ``timeout`` seconds
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        try:
            service = await client.read_service(namespace, name)
        except ClusterAccessError as e:
            raise ProvisioningFailed(f"Failed to read service {namespace}/{name}: {e}") from e

        load_balancer = service.status.load_balancer if service.status else None
        for ingress in (load_balancer.ingress if load_balancer else None) or []:
            address = ingress.ip or ingress.hostname
            if address:
                return address

        if loop.time() >= deadline:
            raise ReadinessTimeout(
                f"Service {namespace}/{name} got no load balancer address after {timeout:g}s"
            )
        await asyncio.sleep(poll_interval)


def _is_ready(pod: k8s.V1Pod) -> bool:
    for condition in (pod.status.conditions if pod.status else None) or []:
        if condition.type == "Ready" and condition.status == "True":
            return True
    return False


def _exit_code(pod: k8s.V1Pod) -> int | None:
    for container_status in (pod.status.container_statuses if pod.status else None) or []:
        terminated = container_status.state.terminated if container_status.state else None
        if terminated is not None:
            return terminated.exit_code
    return None


async def _read_log(client: ClusterClient, namespace: str, name: str) -> str:
    try:
        return await client.read_pod_log(namespace, name, tail_lines=LOG_TAIL_LINES) or ""
    except ClusterAccessError as e:
        logger.warning("Failed to read pod log", namespace=namespace, pod=name, error=str(e))
        return ""
