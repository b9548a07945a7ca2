"""Core exceptions for pv-migrate operations."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.results import AttemptResult


class PVMigrateError(Exception):
    """Base exception for pv-migrate operations."""


class ConfigurationError(PVMigrateError):
    """Configuration validation or loading failed."""


class ClusterAccessError(PVMigrateError):
    """Cluster API was unreachable or rejected a request."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class StrategyError(PVMigrateError):
    """A strategy attempt failed.

    ``teardown_errors`` lists resources that could not be deleted after the
    failure; they are diagnostics and never replace the failure itself.
    """

    def __init__(self, *args):
        super().__init__(*args)
        self.teardown_errors: list[str] = []


class MountSafetyError(StrategyError):
    """A volume is mounted and mounted volumes are not to be migrated."""


class ProvisioningFailed(StrategyError):
    """Cluster rejected or failed to create an ephemeral resource."""


class ReadinessTimeout(StrategyError):
    """A provisioned resource did not become ready in time."""


class TransferFailed(StrategyError):
    """The transfer tool exited with a non-success status."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class TransferTimeout(TransferFailed):
    """The transfer did not finish in time."""


class TeardownFailed(StrategyError):
    """An ephemeral resource could not be deleted."""


class MigrationFailedError(PVMigrateError):
    """Every candidate strategy failed or was not applicable."""

    def __init__(self, attempts: list["AttemptResult"]):
        from ..models.results import describe_attempts

        self.attempts = list(attempts)
        super().__init__(
            "Migration failed, all strategies were exhausted:\n" + describe_attempts(self.attempts)
        )
