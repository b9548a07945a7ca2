"""Shared pytest fixtures for pv-migrate tests."""

import pytest

from pv_migrate.core.settings import MigrationSettings
from tests.fakes import FakeCluster, FakeResolver


@pytest.fixture
def fast_settings() -> MigrationSettings:
    """Settings with tiny timeouts so waits finish instantly."""
    return MigrationSettings(
        readiness_timeout=0.05,
        transfer_timeout=0.5,
        load_balancer_timeout=0.05,
        poll_interval=0.001,
        ssh_key_bits=1024,
    )


@pytest.fixture
def cluster_a() -> FakeCluster:
    return FakeCluster("cluster-a")


@pytest.fixture
def cluster_b() -> FakeCluster:
    return FakeCluster("cluster-b")


@pytest.fixture
def resolver(cluster_a: FakeCluster, cluster_b: FakeCluster) -> FakeResolver:
    return FakeResolver({"ctx-a": cluster_a, "ctx-b": cluster_b})


@pytest.fixture(autouse=True)
def fake_keypair(monkeypatch):
    """Skip RSA generation in strategy tests."""
    from pv_migrate.core.keys import SSHKeyPair

    monkeypatch.setattr(
        "pv_migrate.core.strategies.rsync_ssh.generate_ssh_keypair",
        lambda bits: SSHKeyPair(private_key="PRIVATE", public_key="ssh-rsa PUBLIC pv-migrate"),
    )


