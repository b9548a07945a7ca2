"""Kubernetes object builders for ephemeral migration resources."""

from kubernetes import client as k8s

from ..constants import (
    APP_NAME,
    AUTHORIZED_KEYS_FILE,
    DEST_MOUNT_PATH,
    HOSTNAME_LABEL,
    LABEL_APP,
    LABEL_COMPONENT,
    LABEL_INSTANCE,
    LABEL_MANAGED_BY,
    SECRET_ADDRESS,
    SECRET_PRIVATE_KEY,
    SOURCE_MOUNT_PATH,
    SSH_KEY_MOUNT_PATH,
    SSH_PRIVATE_KEY_FILE,
    SSHD_PORT,
)


def resource_name(attempt_id: str, role: str) -> str:
    """Name shared by every object of one attempt, e.g. ``pv-migrate-1a2b3c-sshd``."""
    return f"{APP_NAME}-{attempt_id}-{role}"


def labels(attempt_id: str, component: str) -> dict[str, str]:
    return {
        LABEL_APP: APP_NAME,
        LABEL_INSTANCE: attempt_id,
        LABEL_COMPONENT: component,
        LABEL_MANAGED_BY: APP_NAME,
    }


def _pvc_volume(name: str, claim_name: str, read_only: bool = False) -> k8s.V1Volume:
    return k8s.V1Volume(
        name=name,
        persistent_volume_claim=k8s.V1PersistentVolumeClaimVolumeSource(
            claim_name=claim_name, read_only=read_only
        ),
    )


def _secret_volume(name: str, secret_name: str, items: list[tuple[str, str]]) -> k8s.V1Volume:
    return k8s.V1Volume(
        name=name,
        secret=k8s.V1SecretVolumeSource(
            secret_name=secret_name,
            default_mode=0o400,
            items=[k8s.V1KeyToPath(key=key, path=path) for key, path in items],
        ),
    )


def mount_both_pod(
    attempt_id: str,
    image: str,
    source_claim: str,
    dest_claim: str,
    command: list[str],
    node_name: str | None = None,
) -> k8s.V1Pod:
    """Single pod with both claims attached, running a local copy."""
    name = resource_name(attempt_id, "rsync")
    return k8s.V1Pod(
        metadata=k8s.V1ObjectMeta(name=name, labels=labels(attempt_id, "rsync")),
        spec=k8s.V1PodSpec(
            restart_policy="Never",
            node_selector={HOSTNAME_LABEL: node_name} if node_name else None,
            containers=[
                k8s.V1Container(
                    name="rsync",
                    image=image,
                    command=command,
                    volume_mounts=[
                        k8s.V1VolumeMount(name="source", mount_path=SOURCE_MOUNT_PATH, read_only=True),
                        k8s.V1VolumeMount(name="dest", mount_path=DEST_MOUNT_PATH),
                    ],
                )
            ],
            volumes=[
                _pvc_volume("source", source_claim, read_only=True),
                _pvc_volume("dest", dest_claim),
            ],
        ),
    )


def authorized_keys_secret(attempt_id: str, public_key: str) -> k8s.V1Secret:
    return k8s.V1Secret(
        metadata=k8s.V1ObjectMeta(
            name=resource_name(attempt_id, "sshd"), labels=labels(attempt_id, "sshd")
        ),
        type="Opaque",
        string_data={AUTHORIZED_KEYS_FILE: public_key + "\n"},
    )


def connection_secret(attempt_id: str, private_key: str, address: str) -> k8s.V1Secret:
    """One-time credentials and relay address handed to the transfer pod."""
    return k8s.V1Secret(
        metadata=k8s.V1ObjectMeta(
            name=resource_name(attempt_id, "rsync"), labels=labels(attempt_id, "rsync")
        ),
        type="Opaque",
        string_data={SECRET_PRIVATE_KEY: private_key, SECRET_ADDRESS: address},
    )


def sshd_pod(attempt_id: str, image: str, dest_claim: str) -> k8s.V1Pod:
    """Relay pod serving the destination claim over SSH."""
    name = resource_name(attempt_id, "sshd")
    return k8s.V1Pod(
        metadata=k8s.V1ObjectMeta(name=name, labels=labels(attempt_id, "sshd")),
        spec=k8s.V1PodSpec(
            restart_policy="Never",
            containers=[
                k8s.V1Container(
                    name="sshd",
                    image=image,
                    ports=[k8s.V1ContainerPort(container_port=SSHD_PORT, name="ssh")],
                    readiness_probe=k8s.V1Probe(
                        tcp_socket=k8s.V1TCPSocketAction(port=SSHD_PORT),
                        initial_delay_seconds=1,
                        period_seconds=2,
                    ),
                    volume_mounts=[
                        k8s.V1VolumeMount(name="dest", mount_path=DEST_MOUNT_PATH),
                        k8s.V1VolumeMount(
                            name="keys",
                            mount_path=f"/root/.ssh/{AUTHORIZED_KEYS_FILE}",
                            sub_path=AUTHORIZED_KEYS_FILE,
                            read_only=True,
                        ),
                    ],
                )
            ],
            volumes=[
                _pvc_volume("dest", dest_claim),
                _secret_volume("keys", name, [(AUTHORIZED_KEYS_FILE, AUTHORIZED_KEYS_FILE)]),
            ],
        ),
    )


def sshd_service(attempt_id: str, service_type: str = "ClusterIP") -> k8s.V1Service:
    """Service exposing the relay pod, in-cluster or through a load balancer."""
    return k8s.V1Service(
        metadata=k8s.V1ObjectMeta(
            name=resource_name(attempt_id, "sshd"), labels=labels(attempt_id, "sshd")
        ),
        spec=k8s.V1ServiceSpec(
            type=service_type,
            selector=labels(attempt_id, "sshd"),
            ports=[k8s.V1ServicePort(name="ssh", port=SSHD_PORT, target_port=SSHD_PORT)],
        ),
    )


def rsync_ssh_pod(
    attempt_id: str,
    image: str,
    source_claim: str,
    secret_name: str,
    command: list[str],
) -> k8s.V1Pod:
    """Transfer pod pushing the source claim to the relay.

    The relay address is read from the connection secret into ``SSHD_ADDRESS``
    and may be referenced in ``command`` as ``$(SSHD_ADDRESS)``.
    """
    name = resource_name(attempt_id, "rsync")
    return k8s.V1Pod(
        metadata=k8s.V1ObjectMeta(name=name, labels=labels(attempt_id, "rsync")),
        spec=k8s.V1PodSpec(
            restart_policy="Never",
            containers=[
                k8s.V1Container(
                    name="rsync",
                    image=image,
                    command=command,
                    env=[
                        k8s.V1EnvVar(
                            name="SSHD_ADDRESS",
                            value_from=k8s.V1EnvVarSource(
                                secret_key_ref=k8s.V1SecretKeySelector(
                                    name=secret_name, key=SECRET_ADDRESS
                                )
                            ),
                        )
                    ],
                    volume_mounts=[
                        k8s.V1VolumeMount(name="source", mount_path=SOURCE_MOUNT_PATH, read_only=True),
                        k8s.V1VolumeMount(name="keys", mount_path=SSH_KEY_MOUNT_PATH, read_only=True),
                    ],
                )
            ],
            volumes=[
                _pvc_volume("source", source_claim, read_only=True),
                _secret_volume("keys", secret_name, [(SECRET_PRIVATE_KEY, SSH_PRIVATE_KEY_FILE)]),
            ],
        ),
    )
