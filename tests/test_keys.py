"""Tests for one-time SSH key generation."""

import io

import paramiko

from pv_migrate.core.keys import generate_ssh_keypair


def test_generates_matching_pair():
    keypair = generate_ssh_keypair(bits=1024)

    assert "PRIVATE KEY" in keypair.private_key
    key_type, public_b64, comment = keypair.public_key.split(" ")
    assert key_type == "ssh-rsa"
    assert comment == "pv-migrate"

    loaded = paramiko.RSAKey.from_private_key(io.StringIO(keypair.private_key))
    assert loaded.get_base64() == public_b64


def test_each_call_is_unique():
    first = generate_ssh_keypair(bits=1024, comment="a")
    second = generate_ssh_keypair(bits=1024, comment="a")

    assert first.private_key != second.private_key
    assert first.public_key.endswith(" a")
