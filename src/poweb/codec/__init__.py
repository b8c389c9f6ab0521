"""Wire codec for the PoWebSockets handshake and parcel deliveries."""

from .messages import (
    Challenge,
    InvalidChallengeError,
    InvalidMessageError,
    MessageType,
    NonceSignature,
    ParcelDelivery,
    Response,
    encode_ack,
)
from .rlp import RLPDecodingError, decode_rlp, encode_rlp

__all__ = [
    # Messages
    "Challenge",
    "Response",
    "NonceSignature",
    "ParcelDelivery",
    "MessageType",
    "encode_ack",
    # Errors
    "InvalidMessageError",
    "InvalidChallengeError",
    "RLPDecodingError",
    # RLP
    "encode_rlp",
    "decode_rlp",
]
