"""Mount and node placement inspection for PersistentVolumeClaims."""

from dataclasses import dataclass, field

import structlog

from ..constants import HOSTNAME_LABEL, MULTI_NODE_ACCESS_MODES, TERMINAL_POD_PHASES
from ..models.request import VolumeLocator
from .cluster import ClusterClient

logger = structlog.get_logger()


@dataclass
class MountInfo:
    """Whether a claim is in use and where."""

    mounted: bool
    node_name: str | None = None
    pods: list[str] = field(default_factory=list)


class MountInspector:
    """Inspects live cluster state for workloads using a claim.

    All methods are read-only. Cluster errors propagate to the caller: an
    unreachable API must never be mistaken for an unmounted volume.
    """

    def __init__(self):
        self.logger = logger.bind(component="mount_inspector")

    async def is_mounted(self, client: ClusterClient, locator: VolumeLocator) -> MountInfo:
        """Check whether a non-terminated pod references the claim.

        Args:
            client: Client for the locator's cluster
            locator: Claim to inspect

        Returns:
            MountInfo with the first mounting pod's node

        Raises:
            ClusterAccessError: If pods cannot be listed
        """
        pods = await client.list_pods(locator.namespace)

        mounting_pods: list[str] = []
        node_name: str | None = None
        for pod in pods:
            phase = pod.status.phase if pod.status else None
            # Terminating pods keep the volume attached until their containers stop
            if phase in TERMINAL_POD_PHASES:
                continue
            for volume in (pod.spec.volumes if pod.spec else None) or []:
                claim = volume.persistent_volume_claim
                if claim is not None and claim.claim_name == locator.name:
                    mounting_pods.append(pod.metadata.name)
                    if node_name is None and pod.spec.node_name:
                        node_name = pod.spec.node_name
                    break

        info = MountInfo(mounted=bool(mounting_pods), node_name=node_name, pods=mounting_pods)
        self.logger.debug(
            "Mount inspection",
            pvc=str(locator),
            mounted=info.mounted,
            node=info.node_name,
            pods=info.pods,
        )
        return info

    async def node_constraint(self, client: ClusterClient, pvc, mount: MountInfo) -> str | None:
        """Return the single node a claim must be attached on, if any.

        A mounting pod's node wins. Otherwise the bound PersistentVolume's
        required node affinity is used when it pins exactly one hostname.
        Claims whose access modes allow multi-node attachment are unconstrained.
        """
        if supports_multi_node(pvc):
            return None

        if mount.mounted and mount.node_name:
            return mount.node_name

        volume_name = pvc.spec.volume_name
        if not volume_name:
            return None

        pv = await client.read_pv(volume_name)
        return _pinned_hostname(pv)


def supports_multi_node(pvc) -> bool:
    """True when the claim can be attached on several nodes at once."""
    return bool(set(pvc.spec.access_modes or []) & MULTI_NODE_ACCESS_MODES)


def _pinned_hostname(pv) -> str | None:
    node_affinity = pv.spec.node_affinity if pv and pv.spec else None
    required = node_affinity.required if node_affinity else None
    if required is None:
        return None

    hostnames: set[str] = set()
    for term in required.node_selector_terms or []:
        for expression in term.match_expressions or []:
            if expression.key == HOSTNAME_LABEL and expression.operator == "In":
                hostnames.update(expression.values or [])

    if len(hostnames) == 1:
        return hostnames.pop()
    return None


def mount_safety_reason(
    source: VolumeLocator,
    source_mount: MountInfo,
    dest: VolumeLocator,
    dest_mount: MountInfo,
) -> str | None:
    """Describe why migration must be refused because a side is mounted."""
    problems = []
    for side, locator, mount in (("source", source, source_mount), ("destination", dest, dest_mount)):
        if mount.mounted:
            problems.append(
                f"{side} PVC {locator} is mounted by pod(s) {', '.join(mount.pods)}"
                + (f" on node {mount.node_name}" if mount.node_name else "")
            )
    if not problems:
        return None
    return "; ".join(problems) + " (use ignore-mounted to migrate anyway)"
