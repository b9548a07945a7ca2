"""Tests for settings and configuration loading."""

import pytest

from pv_migrate.constants import DEFAULT_SSHD_IMAGE
from pv_migrate.core.config_loader import default_config_path, load_config
from pv_migrate.core.exceptions import ConfigurationError
from pv_migrate.core.settings import MigrationSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and .env files."""
    for name in MigrationSettings.model_fields:
        monkeypatch.delenv(f"PV_MIGRATE_{name.upper()}", raising=False)
    monkeypatch.setenv("PV_MIGRATE_CONFIG", str(tmp_path / "missing.yml"))
    monkeypatch.chdir(tmp_path)


def test_defaults_without_config_file():
    config = load_config()

    assert config.config_file is None
    assert config.settings.readiness_timeout == 300
    assert config.settings.transfer_timeout == 21600
    assert config.images.sshd == DEFAULT_SSHD_IMAGE


def test_yaml_values(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "settings:\n"
        "  readiness_timeout: 60\n"
        "  poll_interval: 0.5\n"
        "images:\n"
        "  rsync: registry.local/rsync:1\n"
    )

    config = load_config(str(path))

    assert config.config_file == str(path)
    assert config.settings.readiness_timeout == 60
    assert config.settings.poll_interval == 0.5
    assert config.images.rsync == "registry.local/rsync:1"
    assert config.images.sshd == DEFAULT_SSHD_IMAGE


def test_environment_wins_over_yaml(tmp_path, monkeypatch):
    path = tmp_path / "config.yml"
    path.write_text("settings:\n  readiness_timeout: 60\n  transfer_timeout: 100\n")
    monkeypatch.setenv("PV_MIGRATE_READINESS_TIMEOUT", "5")

    settings = load_config(str(path)).settings

    assert settings.readiness_timeout == 5
    assert settings.transfer_timeout == 100


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "env.yml"
    path.write_text("images:\n  sshd: registry.local/sshd:2\n")
    monkeypatch.setenv("PV_MIGRATE_CONFIG", str(path))

    assert default_config_path() == path
    assert load_config().images.sshd == "registry.local/sshd:2"


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(str(tmp_path / "nope.yml"))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("settings: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Failed to parse"):
        load_config(str(path))


def test_non_mapping_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError, match="must contain a mapping"):
        load_config(str(path))


def test_invalid_value(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("settings:\n  readiness_timeout: soon\n")

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_config(str(path))
