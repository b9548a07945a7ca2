"""Kubernetes cluster access for pv-migrate.

Resolves user supplied kubeconfig/context/namespace into fully specified volume
locators and exposes an async facade over the blocking Kubernetes SDK.
"""

import asyncio
import os
from pathlib import Path
from typing import Any

import structlog
import urllib3
from kubernetes import client as k8s
from kubernetes import config as k8s_config
from kubernetes.client import ApiException
from kubernetes.config import ConfigException

from ..models.request import VolumeLocator
from .exceptions import ClusterAccessError, ConfigurationError

logger = structlog.get_logger()

DEFAULT_NAMESPACE = "default"


def default_kubeconfig_path() -> str:
    """Return the kubeconfig used when none is given (first KUBECONFIG entry or ~/.kube/config)."""
    env_value = os.getenv("KUBECONFIG", "")
    for entry in env_value.split(os.pathsep):
        if entry.strip():
            return str(Path(entry.strip()).expanduser())
    return str(Path.home() / ".kube" / "config")


def resolve_locator(
    kubeconfig: str | None, context: str | None, namespace: str | None, name: str
) -> VolumeLocator:
    """Fill in default kubeconfig, current context and context namespace.

    Args:
        kubeconfig: Path to a kubeconfig file, empty for the default
        context: Context name, empty for the current context
        namespace: Namespace, empty for the context's namespace
        name: PVC name

    Returns:
        VolumeLocator with every field resolved

    Raises:
        ConfigurationError: If the kubeconfig or context cannot be loaded
    """
    config_path = str(Path(kubeconfig).expanduser()) if kubeconfig else default_kubeconfig_path()

    try:
        contexts, active_context = k8s_config.list_kube_config_contexts(config_file=config_path)
    except (ConfigException, OSError) as e:
        raise ConfigurationError(f"Failed to load kubeconfig {config_path}: {e}") from e

    if context:
        selected = next((c for c in contexts if c.get("name") == context), None)
        if selected is None:
            raise ConfigurationError(f"Context '{context}' not found in kubeconfig {config_path}")
    else:
        selected = active_context
        if not selected:
            raise ConfigurationError(f"No current context set in kubeconfig {config_path}")

    if not namespace:
        namespace = (selected.get("context") or {}).get("namespace") or DEFAULT_NAMESPACE

    return VolumeLocator(
        kubeconfig=config_path,
        context=selected["name"],
        namespace=namespace,
        name=name,
    )


class ClusterClient:
    """Async facade over CoreV1Api for one cluster-access descriptor."""

    def __init__(self, core_api: k8s.CoreV1Api, cluster_key: tuple[str, str] = ("", "")):
        self.core_api = core_api
        self.cluster_key = cluster_key
        self.logger = logger.bind(component="cluster_client", context=cluster_key[1])

    async def _call(self, description: str, fn, *args, **kwargs) -> Any:
        """Run a blocking SDK call in a thread and translate its errors."""
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except ApiException as e:
            raise ClusterAccessError(
                f"{description} failed ({e.status} {e.reason})", status=e.status
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise ClusterAccessError(f"{description} failed: cluster unreachable: {e}") from e

    # Reads

    async def read_pvc(self, namespace: str, name: str) -> k8s.V1PersistentVolumeClaim:
        return await self._call(
            f"Reading PVC {namespace}/{name}",
            self.core_api.read_namespaced_persistent_volume_claim,
            name,
            namespace,
        )

    async def read_pv(self, name: str) -> k8s.V1PersistentVolume:
        return await self._call(
            f"Reading PV {name}", self.core_api.read_persistent_volume, name
        )

    async def list_pods(self, namespace: str) -> list[k8s.V1Pod]:
        pod_list = await self._call(
            f"Listing pods in {namespace}", self.core_api.list_namespaced_pod, namespace
        )
        return list(pod_list.items or [])

    async def read_pod(self, namespace: str, name: str) -> k8s.V1Pod:
        return await self._call(
            f"Reading pod {namespace}/{name}", self.core_api.read_namespaced_pod, name, namespace
        )

    async def read_pod_log(self, namespace: str, name: str, tail_lines: int | None = None) -> str:
        kwargs: dict[str, Any] = {}
        if tail_lines is not None:
            kwargs["tail_lines"] = tail_lines
        return await self._call(
            f"Reading logs of pod {namespace}/{name}",
            self.core_api.read_namespaced_pod_log,
            name,
            namespace,
            **kwargs,
        )

    async def read_service(self, namespace: str, name: str) -> k8s.V1Service:
        return await self._call(
            f"Reading service {namespace}/{name}",
            self.core_api.read_namespaced_service,
            name,
            namespace,
        )

    # Creates

    async def create_pod(self, namespace: str, body: k8s.V1Pod) -> k8s.V1Pod:
        return await self._call(
            f"Creating pod in {namespace}", self.core_api.create_namespaced_pod, namespace, body
        )

    async def create_service(self, namespace: str, body: k8s.V1Service) -> k8s.V1Service:
        return await self._call(
            f"Creating service in {namespace}",
            self.core_api.create_namespaced_service,
            namespace,
            body,
        )

    async def create_secret(self, namespace: str, body: k8s.V1Secret) -> k8s.V1Secret:
        return await self._call(
            f"Creating secret in {namespace}",
            self.core_api.create_namespaced_secret,
            namespace,
            body,
        )

    # Deletes

    async def delete_pod(self, namespace: str, name: str) -> None:
        await self._call(
            f"Deleting pod {namespace}/{name}",
            self.core_api.delete_namespaced_pod,
            name,
            namespace,
            grace_period_seconds=0,
        )

    async def delete_service(self, namespace: str, name: str) -> None:
        await self._call(
            f"Deleting service {namespace}/{name}",
            self.core_api.delete_namespaced_service,
            name,
            namespace,
        )

    async def delete_secret(self, namespace: str, name: str) -> None:
        await self._call(
            f"Deleting secret {namespace}/{name}",
            self.core_api.delete_namespaced_secret,
            name,
            namespace,
        )


class ClusterResolver:
    """Builds and caches one ClusterClient per cluster-access descriptor."""

    def __init__(self):
        self._clients: dict[tuple[str, str], ClusterClient] = {}

    def client_for(self, locator: VolumeLocator) -> ClusterClient:
        """Get the client for the cluster a locator points at.

        Raises:
            ConfigurationError: If the kubeconfig or context cannot be loaded
        """
        key = locator.cluster_key
        if key not in self._clients:
            try:
                api_client = k8s_config.new_client_from_config(
                    config_file=locator.kubeconfig or None,
                    context=locator.context or None,
                )
            except (ConfigException, OSError) as e:
                raise ConfigurationError(
                    f"Failed to build client for context '{locator.context}': {e}"
                ) from e
            self._clients[key] = ClusterClient(k8s.CoreV1Api(api_client), key)
            logger.debug("Cluster client created", kubeconfig=key[0], context=key[1])
        return self._clients[key]
