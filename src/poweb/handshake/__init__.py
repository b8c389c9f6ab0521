"""
Handshake sub-protocol.

The server opens every collection with a challenge nonce. The client answers
with one signature per nonce signer, so that a single connection can collect
parcels for several endpoints at once.
"""

from .coordinator import INVALID_CHALLENGE_CLOSE_REASON, HandshakeCoordinator
from .signer import NonceSigner, Signer, SigningPrivateKey, verify_nonce_signature
from .signer_set import SignerSet

__all__ = [
    "HandshakeCoordinator",
    "INVALID_CHALLENGE_CLOSE_REASON",
    "Signer",
    "NonceSigner",
    "SigningPrivateKey",
    "SignerSet",
    "verify_nonce_signature",
]
