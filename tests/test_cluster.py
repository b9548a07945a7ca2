"""Tests for kubeconfig resolution and the cluster client facade."""

from unittest.mock import MagicMock

import pytest
import urllib3
from kubernetes.client import ApiException
from kubernetes.config import ConfigException

from pv_migrate.core.cluster import ClusterClient, ClusterResolver, resolve_locator
from pv_migrate.core.exceptions import ClusterAccessError, ConfigurationError
from pv_migrate.models.request import VolumeLocator

KUBECONFIG = """\
apiVersion: v1
kind: Config
current-context: dev
clusters:
- name: c1
  cluster:
    server: https://127.0.0.1:6443
users:
- name: u1
  user:
    token: abc
contexts:
- name: dev
  context:
    cluster: c1
    user: u1
    namespace: team
- name: prod
  context:
    cluster: c1
    user: u1
"""


@pytest.fixture
def kubeconfig(tmp_path):
    path = tmp_path / "config"
    path.write_text(KUBECONFIG)
    return str(path)


class TestResolveLocator:
    def test_current_context_and_its_namespace(self, kubeconfig):
        locator = resolve_locator(kubeconfig, "", "", "data")

        assert locator == VolumeLocator(
            kubeconfig=kubeconfig, context="dev", namespace="team", name="data"
        )

    def test_context_without_namespace_uses_default(self, kubeconfig):
        assert resolve_locator(kubeconfig, "prod", None, "data").namespace == "default"

    def test_explicit_namespace_wins(self, kubeconfig):
        assert resolve_locator(kubeconfig, "dev", "other", "data").namespace == "other"

    def test_kubeconfig_env_default(self, kubeconfig, monkeypatch):
        monkeypatch.setenv("KUBECONFIG", kubeconfig)

        assert resolve_locator("", "", "", "data").kubeconfig == kubeconfig

    def test_unknown_context(self, kubeconfig):
        with pytest.raises(ConfigurationError, match="Context 'staging' not found"):
            resolve_locator(kubeconfig, "staging", "", "data")

    def test_missing_kubeconfig(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Failed to load kubeconfig"):
            resolve_locator(str(tmp_path / "absent"), "", "", "data")


class TestClusterClient:
    @pytest.mark.asyncio
    async def test_api_exception_keeps_status(self):
        core_api = MagicMock()
        core_api.read_namespaced_persistent_volume_claim.side_effect = ApiException(
            status=404, reason="Not Found"
        )
        client = ClusterClient(core_api, ("/k", "dev"))

        with pytest.raises(ClusterAccessError) as exc_info:
            await client.read_pvc("apps", "data")

        assert exc_info.value.status == 404
        core_api.read_namespaced_persistent_volume_claim.assert_called_once_with("data", "apps")

    @pytest.mark.asyncio
    async def test_connection_error_is_cluster_access_error(self):
        core_api = MagicMock()
        core_api.list_namespaced_pod.side_effect = urllib3.exceptions.ProtocolError("reset")
        client = ClusterClient(core_api)

        with pytest.raises(ClusterAccessError, match="unreachable") as exc_info:
            await client.list_pods("apps")

        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_list_pods_unwraps_items(self):
        core_api = MagicMock()
        core_api.list_namespaced_pod.return_value = MagicMock(items=["a", "b"])

        assert await ClusterClient(core_api).list_pods("apps") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_delete_pod_without_grace_period(self):
        core_api = MagicMock()

        await ClusterClient(core_api).delete_pod("apps", "p")

        core_api.delete_namespaced_pod.assert_called_once_with("p", "apps", grace_period_seconds=0)


class TestClusterResolver:
    def test_caches_per_cluster(self, monkeypatch):
        factory = MagicMock(side_effect=lambda **kwargs: MagicMock())
        monkeypatch.setattr("pv_migrate.core.cluster.k8s_config.new_client_from_config", factory)
        resolver = ClusterResolver()

        first = resolver.client_for(VolumeLocator(kubeconfig="/k", context="dev", name="a"))
        second = resolver.client_for(VolumeLocator(kubeconfig="/k", context="dev", name="b"))
        third = resolver.client_for(VolumeLocator(kubeconfig="/k", context="prod", name="a"))

        assert first is second
        assert first is not third
        assert factory.call_count == 2

    def test_bad_context_is_configuration_error(self, monkeypatch):
        monkeypatch.setattr(
            "pv_migrate.core.cluster.k8s_config.new_client_from_config",
            MagicMock(side_effect=ConfigException("no context")),
        )

        with pytest.raises(ConfigurationError, match="no context"):
            ClusterResolver().client_for(VolumeLocator(context="dev", name="a"))
