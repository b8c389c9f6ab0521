"""
PoWebSockets client: parcel collection over WebSockets.

A client opens a WebSocket to the server, proves control over one or more
endpoints by signing a challenge nonce, then receives parcels as they are
delivered and acknowledges the ones it has safely stored.
"""

from .client import PoWebClient
from .config import PoWebClientConfig
from .errors import (
    InvalidServerMessageError,
    NonceSignerError,
    PoWebError,
    ServerConnectionError,
)
from .handshake import NonceSigner, Signer, verify_nonce_signature
from .lifecycle import ConnectionState
from .session import ParcelCollection
from .streaming_mode import StreamingMode

__all__ = [
    # Client
    "PoWebClient",
    "PoWebClientConfig",
    "ParcelCollection",
    "StreamingMode",
    "ConnectionState",
    # Signers
    "Signer",
    "NonceSigner",
    "verify_nonce_signature",
    # Errors
    "PoWebError",
    "NonceSignerError",
    "ServerConnectionError",
    "InvalidServerMessageError",
]
