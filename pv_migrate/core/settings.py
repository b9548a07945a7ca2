"""Timeout settings configuration for pv-migrate operations.

Provides centralized timeout configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MigrationSettings(BaseSettings):
    """Migration timeout and tuning configuration."""

    readiness_timeout: float = Field(
        300, description="Seconds to wait for an ephemeral pod to become ready"
    )

    transfer_timeout: float = Field(
        21600, description="Seconds to wait for the transfer pod to finish"
    )

    load_balancer_timeout: float = Field(
        300, description="Seconds to wait for a load balancer address"
    )

    poll_interval: float = Field(2.0, description="Seconds between cluster state polls")

    ssh_key_bits: int = Field(2048, description="RSA key size for one-time SSH keys")

    log_level: str = Field("INFO", description="Default log level")

    model_config = SettingsConfigDict(env_prefix="PV_MIGRATE_", env_file=".env", extra="ignore")
