"""
PoWebSockets wire messages.

Every binary message is a one-byte type tag followed by an RLP payload::

    message = message-type || RLP([field1, field2, ...])

Message types:
- CHALLENGE (0x01):       [nonce]
- RESPONSE (0x02):        [[nonce, certificate, signature], ...]
- NONCE_SIGNATURE (0x03): [nonce, certificate, signature]
- PARCEL_DELIVERY (0x04): [delivery-id, parcel]

Certificates travel DER-encoded. Delivery ids travel UTF-8 encoded.

Acknowledgements are not binary messages: the client acknowledges a delivery
by sending its id back in a text frame.
"""

from __future__ import annotations

from enum import IntEnum
from typing_extensions import Annotated

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding
from pydantic import Field

from poweb.types import StrictBaseModel

from .rlp import RLPDecodingError, RLPItem, decode_rlp, encode_rlp


class MessageType(IntEnum):
    """Type tag prefixed to every binary message."""

    CHALLENGE = 0x01
    """Server to client: nonce to be signed."""

    RESPONSE = 0x02
    """Client to server: signatures over the challenge nonce."""

    NONCE_SIGNATURE = 0x03
    """A single signature, when sent on its own."""

    PARCEL_DELIVERY = 0x04
    """Server to client: one parcel and its delivery id."""


class InvalidMessageError(Exception):
    """Raised when bytes do not decode as the expected message."""


class InvalidChallengeError(InvalidMessageError):
    """Raised when bytes do not decode as a handshake challenge."""


class NonceSignature(StrictBaseModel):
    """Signature over a handshake nonce, along with the signer's certificate."""

    nonce: bytes
    """The nonce that was signed."""

    signer_certificate: x509.Certificate
    """Certificate of the signer, used by the server to verify the signature."""

    signature: bytes
    """Raw signature over the nonce."""

    def serialize(self) -> bytes:
        """Encode as a standalone NONCE_SIGNATURE message."""
        return _frame(MessageType.NONCE_SIGNATURE, self._to_rlp())

    @classmethod
    def deserialize(cls, data: bytes) -> NonceSignature:
        """
        Decode a standalone NONCE_SIGNATURE message.

        Raises:
            InvalidMessageError: If data is not a valid nonce signature.
        """
        return cls._from_rlp(_unframe(data, MessageType.NONCE_SIGNATURE))

    def _to_rlp(self) -> list[RLPItem]:
        certificate_der = self.signer_certificate.public_bytes(Encoding.DER)
        return [self.nonce, certificate_der, self.signature]

    @classmethod
    def _from_rlp(cls, item: RLPItem) -> NonceSignature:
        nonce, certificate_der, signature = _expect_fields(item, 3, "NonceSignature")
        try:
            certificate = x509.load_der_x509_certificate(certificate_der)
        except ValueError as e:
            raise InvalidMessageError(f"Invalid signer certificate: {e}") from e
        return cls(nonce=nonce, signer_certificate=certificate, signature=signature)


class Challenge(StrictBaseModel):
    """Handshake challenge sent by the server right after the connection opens."""

    nonce: bytes
    """Value every nonce signer must sign."""

    def serialize(self) -> bytes:
        """Encode as a CHALLENGE message."""
        return _frame(MessageType.CHALLENGE, [self.nonce])

    @classmethod
    def deserialize(cls, data: bytes) -> Challenge:
        """
        Decode a CHALLENGE message.

        Raises:
            InvalidChallengeError: If data is not a valid challenge.
        """
        try:
            (nonce,) = _expect_fields(_unframe(data, MessageType.CHALLENGE), 1, "Challenge")
        except InvalidMessageError as e:
            raise InvalidChallengeError(f"Invalid challenge: {e}") from e
        return cls(nonce=nonce)


class Response(StrictBaseModel):
    """
    Handshake response sent by the client.

    Signatures appear in the same order as the signers that produced them.
    """

    nonce_signatures: Annotated[tuple[NonceSignature, ...], Field(min_length=1)]
    """One signature per nonce signer."""

    def serialize(self) -> bytes:
        """Encode as a RESPONSE message."""
        return _frame(MessageType.RESPONSE, [s._to_rlp() for s in self.nonce_signatures])

    @classmethod
    def deserialize(cls, data: bytes) -> Response:
        """
        Decode a RESPONSE message.

        Raises:
            InvalidMessageError: If data is not a valid response.
        """
        items = _unframe(data, MessageType.RESPONSE)
        if not isinstance(items, list) or not items:
            raise InvalidMessageError("Response must contain at least one nonce signature")
        return cls(nonce_signatures=tuple(NonceSignature._from_rlp(item) for item in items))


class ParcelDelivery(StrictBaseModel):
    """A parcel pushed by the server, identified by a delivery id."""

    delivery_id: Annotated[str, Field(min_length=1)]
    """Server-assigned identifier, echoed back to acknowledge the delivery."""

    parcel_serialized: bytes
    """The parcel exactly as serialized by its sender."""

    def serialize(self) -> bytes:
        """Encode as a PARCEL_DELIVERY message."""
        return _frame(
            MessageType.PARCEL_DELIVERY,
            [self.delivery_id.encode("utf-8"), self.parcel_serialized],
        )

    @classmethod
    def deserialize(cls, data: bytes) -> ParcelDelivery:
        """
        Decode a PARCEL_DELIVERY message.

        Raises:
            InvalidMessageError: If data is not a valid parcel delivery.
        """
        delivery_id, parcel_serialized = _expect_fields(
            _unframe(data, MessageType.PARCEL_DELIVERY), 2, "ParcelDelivery"
        )
        try:
            delivery_id_text = delivery_id.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidMessageError(f"Delivery id is not valid UTF-8: {e}") from e
        if not delivery_id_text:
            raise InvalidMessageError("Delivery id is empty")
        return cls(delivery_id=delivery_id_text, parcel_serialized=parcel_serialized)


def encode_ack(delivery_id: str) -> str:
    """Encode the text frame acknowledging the delivery with the given id."""
    return delivery_id


def _frame(message_type: MessageType, payload: list[RLPItem]) -> bytes:
    return bytes([message_type]) + encode_rlp(payload)


def _unframe(data: bytes, expected_type: MessageType) -> RLPItem:
    """Check the type tag and return the decoded RLP payload."""
    if len(data) < 2:
        raise InvalidMessageError("Message too short")
    if data[0] != expected_type:
        raise InvalidMessageError(
            f"Expected {expected_type.name} message, got type {data[0]:#04x}"
        )
    try:
        return decode_rlp(data[1:])
    except RLPDecodingError as e:
        raise InvalidMessageError(f"Invalid RLP: {e}") from e


def _expect_fields(item: RLPItem, count: int, name: str) -> list[bytes]:
    """Unpack an RLP list of exactly `count` byte strings."""
    if not isinstance(item, list) or len(item) != count:
        raise InvalidMessageError(f"{name} requires {count} elements")
    fields: list[bytes] = []
    for element in item:
        if not isinstance(element, bytes):
            raise InvalidMessageError(f"{name} fields must be byte strings")
        fields.append(element)
    return fields
