"""
Nonce signers used to answer handshake challenges.

A signer proves control of the private key behind a certificate by signing
the nonce the server sent. The handshake only depends on the `Signer`
protocol; `NonceSigner` is the implementation backed by `cryptography` keys.

Supported key types and schemes:
- RSA: PKCS#1 v1.5 with SHA-256
- EC: ECDSA with SHA-256 (DER-encoded signature)
- Ed25519: pure Ed25519
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from poweb.codec import NonceSignature

__all__ = [
    "Signer",
    "NonceSigner",
    "SigningPrivateKey",
    "verify_nonce_signature",
]

SigningPrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey | ed25519.Ed25519PrivateKey
"""Private key types a `NonceSigner` can sign with."""


@runtime_checkable
class Signer(Protocol):
    """Anything able to sign a handshake nonce on behalf of a certificate holder."""

    @property
    def certificate(self) -> x509.Certificate:
        """Certificate identifying the signer."""
        ...

    def sign(self, nonce: bytes) -> bytes:
        """
        Sign the nonce.

        Args:
            nonce: Challenge nonce sent by the server.

        Returns:
            Raw signature bytes.
        """
        ...


@dataclass(frozen=True, slots=True)
class NonceSigner:
    """
    Signer backed by a private key and its certificate.

    Attributes:
        certificate: Certificate whose public key matches `private_key`.
        private_key: Key used to sign nonces.
    """

    certificate: x509.Certificate
    private_key: SigningPrivateKey

    def __post_init__(self) -> None:
        if not isinstance(self.private_key, SigningPrivateKey):
            raise TypeError(f"Unsupported private key type: {type(self.private_key).__name__}")

    def sign(self, nonce: bytes) -> bytes:
        """Sign the nonce with the scheme matching the key type."""
        key = self.private_key
        if isinstance(key, rsa.RSAPrivateKey):
            return key.sign(nonce, padding.PKCS1v15(), hashes.SHA256())
        if isinstance(key, ec.EllipticCurvePrivateKey):
            return key.sign(nonce, ec.ECDSA(hashes.SHA256()))
        return key.sign(nonce)


def verify_nonce_signature(nonce_signature: NonceSignature) -> bool:
    """
    Verify a nonce signature against the certificate it carries.

    This only proves possession of the certified key; whether the certificate
    itself is trusted is for the server to decide.

    Args:
        nonce_signature: Signature to verify.

    Returns:
        True if the signature is valid, False otherwise.
    """
    public_key = nonce_signature.signer_certificate.public_key()
    nonce = nonce_signature.nonce
    signature = nonce_signature.signature

    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(signature, nonce, padding.PKCS1v15(), hashes.SHA256())
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(signature, nonce, ec.ECDSA(hashes.SHA256()))
        elif isinstance(public_key, ed25519.Ed25519PublicKey):
            public_key.verify(signature, nonce)
        else:
            return False
    except InvalidSignature:
        return False
    return True
