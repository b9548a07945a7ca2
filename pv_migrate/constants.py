"""Centralized constants for pv-migrate."""

# Transfer tool images
DEFAULT_RSYNC_IMAGE = "docker.io/instrumentisto/rsync-ssh:alpine"
DEFAULT_SSHD_IMAGE = "docker.io/utkuozdemir/pv-migrate-sshd:1.0.0"

DEFAULT_IGNORE_MOUNTED = False

# Strategy identifiers, in default priority order
STRATEGY_MOUNT_BOTH = "mount-both"
STRATEGY_RSYNC_IN_CLUSTER = "rsync-ssh-in-cluster"
STRATEGY_RSYNC_CROSS_CLUSTER = "rsync-ssh-cross-cluster"

# Mount points inside ephemeral pods
SOURCE_MOUNT_PATH = "/source"
DEST_MOUNT_PATH = "/dest"
SSH_KEY_MOUNT_PATH = "/etc/pv-migrate/ssh"
SSH_PRIVATE_KEY_FILE = "id_rsa"
AUTHORIZED_KEYS_FILE = "authorized_keys"

# Secret keys
SECRET_PRIVATE_KEY = "ssh-privatekey"
SECRET_ADDRESS = "address"

SSHD_PORT = 22
SSHD_USER = "root"

# Kubernetes labels and well-known keys
LABEL_APP = "app.kubernetes.io/name"
LABEL_INSTANCE = "app.kubernetes.io/instance"
LABEL_COMPONENT = "app.kubernetes.io/component"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
APP_NAME = "pv-migrate"
HOSTNAME_LABEL = "kubernetes.io/hostname"

# Access modes that allow attaching a volume on more than one node
MULTI_NODE_ACCESS_MODES = frozenset({"ReadWriteMany", "ReadOnlyMany"})

# Pod phases that no longer hold a volume
TERMINAL_POD_PHASES = frozenset({"Succeeded", "Failed"})

# Lines of pod log fetched from a finished pod; the rsync --stats summary is at the end
LOG_TAIL_LINES = 500

# Bytes of pod log kept in failure messages
LOG_TAIL_CHARS = 1000

# SSH client options for the transfer pod
SSH_NO_HOST_CHECK = "StrictHostKeyChecking=no"
SSH_NO_KNOWN_HOSTS = "UserKnownHostsFile=/dev/null"
SSH_ERROR_LOG_LEVEL = "LogLevel=ERROR"
SSH_CONNECT_TIMEOUT = "ConnectTimeout=10"
