"""Tests for the PoWebSockets wire messages."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.serialization import Encoding
from pydantic import ValidationError

from poweb.codec import (
    Challenge,
    InvalidChallengeError,
    InvalidMessageError,
    MessageType,
    NonceSignature,
    ParcelDelivery,
    Response,
    encode_ack,
    encode_rlp,
)
from poweb.handshake import NonceSigner

NONCE = b"the nonce"


def make_nonce_signature(signer: NonceSigner, nonce: bytes = NONCE) -> NonceSignature:
    """Sign the nonce with the signer."""
    return NonceSignature(
        nonce=nonce,
        signer_certificate=signer.certificate,
        signature=signer.sign(nonce),
    )


class TestChallenge:
    """Tests for the handshake challenge."""

    def test_serialization_starts_with_type_tag(self) -> None:
        """The first byte identifies the message type."""
        serialized = Challenge(nonce=NONCE).serialize()

        assert serialized[0] == MessageType.CHALLENGE
        assert serialized[1:] == encode_rlp([NONCE])

    def test_deserialize(self) -> None:
        """A serialized challenge decodes to the same nonce."""
        challenge = Challenge.deserialize(Challenge(nonce=NONCE).serialize())

        assert challenge.nonce == NONCE

    def test_text_is_not_a_challenge(self) -> None:
        """Arbitrary text is refused."""
        with pytest.raises(InvalidChallengeError):
            Challenge.deserialize(b"Not a valid challenge")

    def test_wrong_message_type(self) -> None:
        """A parcel delivery is not a challenge."""
        delivery = ParcelDelivery(delivery_id="id", parcel_serialized=b"parcel")

        with pytest.raises(InvalidChallengeError, match="Expected CHALLENGE"):
            Challenge.deserialize(delivery.serialize())

    def test_extra_fields(self) -> None:
        """A challenge has exactly one field."""
        data = bytes([MessageType.CHALLENGE]) + encode_rlp([NONCE, b"extra"])

        with pytest.raises(InvalidChallengeError, match="1 elements"):
            Challenge.deserialize(data)

    def test_invalid_challenge_is_an_invalid_message(self) -> None:
        """Callers can catch challenge errors as generic message errors."""
        assert issubclass(InvalidChallengeError, InvalidMessageError)

    def test_nonce_must_be_bytes(self) -> None:
        """Strict models do not coerce text into bytes."""
        with pytest.raises(ValidationError):
            Challenge(nonce="nonce")  # type: ignore[arg-type]


class TestNonceSignature:
    """Tests for standalone nonce signatures."""

    def test_round_trip_keeps_certificate(self, signer: NonceSigner) -> None:
        """The certificate survives serialization."""
        original = make_nonce_signature(signer)

        decoded = NonceSignature.deserialize(original.serialize())

        assert decoded.nonce == NONCE
        assert decoded.signer_certificate == signer.certificate
        assert decoded.signature == original.signature

    def test_invalid_certificate(self, signer: NonceSigner) -> None:
        """Certificates must be valid DER."""
        data = bytes([MessageType.NONCE_SIGNATURE]) + encode_rlp(
            [NONCE, b"not a certificate", b"signature"]
        )

        with pytest.raises(InvalidMessageError, match="certificate"):
            NonceSignature.deserialize(data)

    def test_models_are_frozen(self, signer: NonceSigner) -> None:
        """Signatures cannot be altered once built."""
        nonce_signature = make_nonce_signature(signer)

        with pytest.raises(ValidationError):
            nonce_signature.nonce = b"other"  # type: ignore[misc]


class TestResponse:
    """Tests for the handshake response."""

    def test_preserves_signature_order(self, signer: NonceSigner, signer_2: NonceSigner) -> None:
        """Signatures decode in the order they were encoded."""
        response = Response(
            nonce_signatures=(make_nonce_signature(signer), make_nonce_signature(signer_2))
        )

        decoded = Response.deserialize(response.serialize())

        certificates = [s.signer_certificate for s in decoded.nonce_signatures]
        assert certificates == [signer.certificate, signer_2.certificate]

    def test_requires_a_signature(self) -> None:
        """An empty response cannot be built."""
        with pytest.raises(ValidationError):
            Response(nonce_signatures=())

    def test_decoding_requires_a_signature(self) -> None:
        """An empty response cannot be decoded."""
        with pytest.raises(InvalidMessageError, match="at least one"):
            Response.deserialize(bytes([MessageType.RESPONSE]) + encode_rlp([]))

    def test_signature_fields_must_be_complete(self, signer: NonceSigner) -> None:
        """Each embedded signature has three fields."""
        certificate_der = signer.certificate.public_bytes(Encoding.DER)
        data = bytes([MessageType.RESPONSE]) + encode_rlp([[NONCE, certificate_der]])

        with pytest.raises(InvalidMessageError, match="3 elements"):
            Response.deserialize(data)


class TestParcelDelivery:
    """Tests for parcel deliveries."""

    def test_round_trip(self) -> None:
        """Delivery id and parcel survive serialization."""
        delivery = ParcelDelivery(delivery_id="the delivery id", parcel_serialized=b"parcel")

        assert ParcelDelivery.deserialize(delivery.serialize()) == delivery

    def test_empty_parcel_is_allowed(self) -> None:
        """Parcel contents are opaque, even when empty."""
        delivery = ParcelDelivery(delivery_id="id", parcel_serialized=b"")

        assert ParcelDelivery.deserialize(delivery.serialize()).parcel_serialized == b""

    def test_text_is_not_a_delivery(self) -> None:
        """Arbitrary text is refused."""
        with pytest.raises(InvalidMessageError):
            ParcelDelivery.deserialize(b"invalid")

    def test_single_byte_is_too_short(self) -> None:
        """A type tag alone is not a message."""
        with pytest.raises(InvalidMessageError, match="too short"):
            ParcelDelivery.deserialize(bytes([MessageType.PARCEL_DELIVERY]))

    def test_delivery_id_must_be_utf8(self) -> None:
        """Delivery ids are text."""
        data = bytes([MessageType.PARCEL_DELIVERY]) + encode_rlp([b"\xff\xfe", b"parcel"])

        with pytest.raises(InvalidMessageError, match="UTF-8"):
            ParcelDelivery.deserialize(data)

    def test_delivery_id_must_not_be_empty(self) -> None:
        """Empty delivery ids cannot be acknowledged, so they are refused."""
        data = bytes([MessageType.PARCEL_DELIVERY]) + encode_rlp([b"", b"parcel"])

        with pytest.raises(InvalidMessageError, match="empty"):
            ParcelDelivery.deserialize(data)

    def test_invalid_rlp(self) -> None:
        """Broken RLP is reported as an invalid message."""
        data = bytes([MessageType.PARCEL_DELIVERY]) + b"\xc5\x83id"

        with pytest.raises(InvalidMessageError, match="Invalid RLP"):
            ParcelDelivery.deserialize(data)


class TestAck:
    """Tests for acknowledgements."""

    def test_ack_is_the_delivery_id(self) -> None:
        """The ack text frame carries the delivery id verbatim."""
        assert encode_ack("the delivery id") == "the delivery id"
