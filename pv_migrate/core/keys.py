"""One-time SSH key pairs for tunnel strategies."""

import io
from dataclasses import dataclass

import paramiko
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class SSHKeyPair:
    """PEM private key and OpenSSH public key line."""

    private_key: str
    public_key: str


def generate_ssh_keypair(bits: int = 2048, comment: str = "pv-migrate") -> SSHKeyPair:
    """Generate an RSA key pair used for exactly one migration attempt.

    Args:
        bits: RSA key size
        comment: Comment appended to the public key line

    Returns:
        SSHKeyPair with private key in PEM form
    """
    key = paramiko.RSAKey.generate(bits)

    buffer = io.StringIO()
    key.write_private_key(buffer)

    public_key = f"{key.get_name()} {key.get_base64()} {comment}"
    logger.debug("Generated one-time SSH key pair", bits=bits, fingerprint=key.get_fingerprint().hex())
    return SSHKeyPair(private_key=buffer.getvalue(), public_key=public_key)
