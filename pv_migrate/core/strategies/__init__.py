"""Migration strategies for moving data between PersistentVolumeClaims."""

from .base import Applicability, AttemptContext, BaseStrategy, VolumeState  # noqa: F401
from .mount_both import MountBothStrategy  # noqa: F401
from .registry import StrategyRegistry, default_registry  # noqa: F401
from .rsync_cross_cluster import RsyncCrossClusterStrategy  # noqa: F401
from .rsync_in_cluster import RsyncInClusterStrategy  # noqa: F401
from .rsync_ssh import RsyncSSHStrategy  # noqa: F401

__all__ = [
    "Applicability",
    "AttemptContext",
    "BaseStrategy",
    "VolumeState",
    "MountBothStrategy",
    "RsyncSSHStrategy",
    "RsyncInClusterStrategy",
    "RsyncCrossClusterStrategy",
    "StrategyRegistry",
    "default_registry",
]
