"""
Parcel delivery loop, run once the handshake has succeeded.

Every binary message from the server is a parcel delivery. Each one is
surfaced to the caller as a `ParcelCollection`, in arrival order, and only
when the caller asks for the next one: nothing is read ahead.

Acknowledgements
----------------
The caller acknowledges a collection by awaiting `ParcelCollection.ack()`,
which sends the delivery id back to the server in a text message. A given
delivery id is acknowledged at most once per session; further calls are
no-ops. Collections that are never acknowledged are simply dropped on the
client side.

Termination
-----------
- Normal close by the server: the stream ends.
- Any other close by the server: `ServerConnectionError`.
- Malformed delivery: the client closes with a policy violation, then
  raises `InvalidServerMessageError`.
- The caller stops consuming (``aclose()`` or task cancellation): the client
  closes normally without reading anything else.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass, field

from poweb.codec import InvalidMessageError, ParcelDelivery, encode_ack
from poweb.errors import InvalidServerMessageError, ServerConnectionError
from poweb.lifecycle import ConnectionLifecycle, ConnectionState
from poweb.transport import ConnectionClosed

logger = logging.getLogger(__name__)

INVALID_DELIVERY_CLOSE_REASON = "Invalid parcel delivery"
"""Close reason sent when a delivery cannot be decoded."""


@dataclass(frozen=True, slots=True)
class ParcelCollection:
    """A parcel delivered by the server, pending acknowledgement."""

    delivery_id: str
    """Identifier the server assigned to this delivery."""

    parcel_serialized: bytes
    """The parcel, exactly as serialized by its sender."""

    ack_callback: Callable[[], Awaitable[None]] = field(repr=False, compare=False)
    """Sends the acknowledgement for this delivery."""

    async def ack(self) -> None:
        """
        Acknowledge the delivery so the server does not deliver it again.

        Raises:
            ServerConnectionError: If the connection is already closed.
        """
        await self.ack_callback()


@dataclass(slots=True)
class StreamingSession:
    """Turns inbound deliveries into parcel collections for one connection."""

    lifecycle: ConnectionLifecycle
    """Lifecycle of a connection whose handshake has completed."""

    _acknowledged: set[str] = field(default_factory=set, init=False)
    """Delivery ids already acknowledged (or being acknowledged)."""

    _consumed: bool = field(default=False, init=False)
    """Whether the stream has already been started."""

    @property
    def acknowledged_delivery_ids(self) -> frozenset[str]:
        """Delivery ids acknowledged so far."""
        return frozenset(self._acknowledged)

    async def stream(self) -> AsyncGenerator[ParcelCollection, None]:
        """
        Yield parcel collections until the connection ends.

        The connection is closed on every exit path, including when the
        caller stops iterating early.

        Raises:
            ServerConnectionError: If the server closed the connection with
                an error code or abruptly.
            InvalidServerMessageError: If a delivery could not be decoded.
            RuntimeError: If the stream was already consumed or the handshake
                has not completed.
        """
        if self._consumed:
            raise RuntimeError("The parcel stream of a session can only be consumed once")
        self._consumed = True

        if self.lifecycle.state is not ConnectionState.STREAMING:
            raise RuntimeError(f"Cannot stream parcels in state {self.lifecycle.state.name}")

        try:
            while True:
                try:
                    message = await self.lifecycle.receive()
                except ConnectionClosed as e:
                    if e.is_normal:
                        logger.info("Server closed the connection normally")
                        return
                    raise self.lifecycle.closure_error(e) from e

                try:
                    delivery = ParcelDelivery.deserialize(message)
                except InvalidMessageError as e:
                    await self.lifecycle.close_for_policy_violation(INVALID_DELIVERY_CLOSE_REASON)
                    raise InvalidServerMessageError("Received invalid message from server") from e

                logger.debug(
                    "Received delivery %s (%d bytes)",
                    delivery.delivery_id,
                    len(delivery.parcel_serialized),
                )
                yield ParcelCollection(
                    delivery_id=delivery.delivery_id,
                    parcel_serialized=delivery.parcel_serialized,
                    ack_callback=functools.partial(self._acknowledge, delivery.delivery_id),
                )
        finally:
            # Normal close: covers both completion and early exit by the caller.
            await self.lifecycle.close()

    async def _acknowledge(self, delivery_id: str) -> None:
        # Claimed before sending so that concurrent calls cannot both send.
        if delivery_id in self._acknowledged:
            return
        self._acknowledged.add(delivery_id)

        try:
            await self.lifecycle.send_text(encode_ack(delivery_id))
        except ConnectionClosed as e:
            self._acknowledged.discard(delivery_id)
            raise ServerConnectionError(
                f"Cannot acknowledge delivery {delivery_id!r}: the connection is closed",
                close_code=e.code,
                close_reason=e.reason,
            ) from e

        logger.debug("Acknowledged delivery %s", delivery_id)
