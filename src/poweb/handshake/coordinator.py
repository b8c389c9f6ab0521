"""
Challenge/response handshake run at the start of every collection.

Handshake flow::

    <- Challenge(nonce)                       # first message from the server
    -> Response([NonceSignature, ...])        # one signature per signer

The server uses the certificates in the response to decide which parcels
the client may collect. Failures are always fatal to the session: there is
no retry at this layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from poweb.codec import Challenge, InvalidChallengeError, Response
from poweb.errors import InvalidServerMessageError
from poweb.lifecycle import ConnectionLifecycle, ConnectionState
from poweb.transport import ConnectionClosed

from .signer_set import SignerSet

logger = logging.getLogger(__name__)

INVALID_CHALLENGE_CLOSE_REASON = "Invalid handshake challenge"
"""Close reason sent when the first message is not a valid challenge."""


@dataclass(frozen=True, slots=True)
class HandshakeCoordinator:
    """Answers the server's challenge on behalf of a set of signers."""

    signer_set: SignerSet
    """Signers whose signatures make up the response."""

    async def perform(self, lifecycle: ConnectionLifecycle) -> None:
        """
        Run the handshake over a freshly opened connection.

        On success the lifecycle is left in the STREAMING state.

        Args:
            lifecycle: Lifecycle of a connection in the HANDSHAKING state.

        Raises:
            ServerConnectionError: If the server closed the connection before
                sending the challenge.
            InvalidServerMessageError: If the first message was not a valid
                challenge. The connection is closed with a policy violation.
        """
        if lifecycle.state is not ConnectionState.HANDSHAKING:
            raise RuntimeError(f"Cannot start handshake in state {lifecycle.state.name}")

        # The challenge must be the very first message.
        try:
            challenge_serialized = await lifecycle.receive()
        except ConnectionClosed as e:
            raise lifecycle.closure_error(e) from e

        try:
            challenge = Challenge.deserialize(challenge_serialized)
        except InvalidChallengeError as e:
            await lifecycle.close_for_policy_violation(INVALID_CHALLENGE_CLOSE_REASON)
            raise InvalidServerMessageError("Server sent an invalid handshake challenge") from e

        response = Response(nonce_signatures=self.signer_set.sign(challenge.nonce))

        try:
            await lifecycle.send_bytes(response.serialize())
        except ConnectionClosed as e:
            raise lifecycle.closure_error(e) from e

        logger.debug("Handshake response sent with %d signature(s)", len(self.signer_set))
        lifecycle.advance(ConnectionState.STREAMING)
