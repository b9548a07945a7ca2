"""Migration request data models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import DEFAULT_IGNORE_MOUNTED, DEFAULT_RSYNC_IMAGE, DEFAULT_SSHD_IMAGE


class VolumeLocator(BaseModel):
    """Identifies one PersistentVolumeClaim in one cluster."""

    model_config = ConfigDict(frozen=True)

    kubeconfig: str = ""  # Empty means KUBECONFIG or ~/.kube/config
    context: str = ""  # Empty means the current context
    namespace: str = ""
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("PVC name must not be empty")
        return v.strip()

    @property
    def cluster_key(self) -> tuple[str, str]:
        """Cluster-access descriptor used for client caching and comparisons."""
        return (self.kubeconfig, self.context)

    def same_cluster(self, other: "VolumeLocator") -> bool:
        return self.cluster_key == other.cluster_key

    def same_namespace(self, other: "VolumeLocator") -> bool:
        return self.same_cluster(other) and self.namespace == other.namespace

    def __str__(self) -> str:
        context = self.context or "<current>"
        namespace = self.namespace or "<default>"
        return f"{context}/{namespace}/{self.name}"


class TransferOptions(BaseModel):
    """Options applied to the data transfer."""

    model_config = ConfigDict(frozen=True)

    delete_extraneous: bool = False
    ignore_mounted: bool = DEFAULT_IGNORE_MOUNTED


class MigrationRequest(BaseModel):
    """A single migration job from a source PVC to a destination PVC."""

    model_config = ConfigDict(frozen=True)

    source: VolumeLocator
    dest: VolumeLocator
    options: TransferOptions = Field(default_factory=TransferOptions)
    strategies: tuple[str, ...] = ()  # Empty means the default order
    rsync_image: str = DEFAULT_RSYNC_IMAGE
    sshd_image: str = DEFAULT_SSHD_IMAGE

    def log_fields(self) -> dict[str, Any]:
        """Flat fields describing the request for structured logging."""
        return {
            "source_kubeconfig": self.source.kubeconfig,
            "source_context": self.source.context,
            "source_namespace": self.source.namespace,
            "source_pvc": self.source.name,
            "dest_kubeconfig": self.dest.kubeconfig,
            "dest_context": self.dest.context,
            "dest_namespace": self.dest.namespace,
            "dest_pvc": self.dest.name,
            "delete_extraneous": self.options.delete_extraneous,
            "ignore_mounted": self.options.ignore_mounted,
        }
