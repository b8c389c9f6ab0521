"""Builders for keys, certificates and signers used across tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Literal

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509.oid import NameOID

from poweb.handshake import NonceSigner, SigningPrivateKey

KeyType = Literal["ec", "rsa", "ed25519"]


def make_private_key(key_type: KeyType = "ec") -> SigningPrivateKey:
    """Generate a fresh private key of the given type."""
    if key_type == "rsa":
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)
    if key_type == "ed25519":
        return ed25519.Ed25519PrivateKey.generate()
    return ec.generate_private_key(ec.SECP256R1())


def issue_certificate(
    private_key: SigningPrivateKey,
    common_name: str = "poweb-test-endpoint",
    valid_for: timedelta = timedelta(days=1),
) -> x509.Certificate:
    """Issue a self-signed certificate for the key."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(UTC)

    # Ed25519 signs without a separate digest.
    algorithm = None if isinstance(private_key, ed25519.Ed25519PrivateKey) else hashes.SHA256()

    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + valid_for)
        .sign(private_key, algorithm)
    )


def make_signer(key_type: KeyType = "ec", common_name: str = "poweb-test-endpoint") -> NonceSigner:
    """Create a nonce signer with a fresh key and self-signed certificate."""
    private_key = make_private_key(key_type)
    return NonceSigner(
        certificate=issue_certificate(private_key, common_name),
        private_key=private_key,
    )
