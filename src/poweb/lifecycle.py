"""
Connection lifecycle for one parcel collection session.

State machine (single forward path)::

    CONNECTING -> HANDSHAKING -> STREAMING -> CLOSING -> CLOSED

Any state may jump forward to CLOSING (or straight to CLOSED when the
connection never opened), but never backwards.

The lifecycle owns the outbound side of the connection:

- The streaming mode becomes a header on the upgrade request.
- Every send and the single outbound close go through one lock. This way an
  acknowledgement issued before cancellation is on the wire before the close
  frame.
- Closing is idempotent. Once a close was sent, or the server's close was
  answered by the transport, further attempts do nothing.

It also maps transport failures onto the client's error taxonomy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import IntEnum, auto

import aiohttp
from aiohttp import WSCloseCode

from poweb.errors import ServerConnectionError
from poweb.streaming_mode import StreamingMode
from poweb.transport import Connection, ConnectionClosed

logger = logging.getLogger(__name__)

ConnectionOpener = Callable[[dict[str, str]], Awaitable[Connection]]
"""Opens the transport, given the headers for the upgrade request."""


class ConnectionState(IntEnum):
    """States of a collection session. Ordered: transitions only go up."""

    CONNECTING = auto()
    """Upgrade request in progress."""

    HANDSHAKING = auto()
    """Connected; waiting for or answering the challenge."""

    STREAMING = auto()
    """Handshake done; parcels may be delivered and acknowledged."""

    CLOSING = auto()
    """Outbound close in progress."""

    CLOSED = auto()
    """Nothing more will be sent or received."""


@dataclass(slots=True)
class ConnectionLifecycle:
    """
    Drives one connection from opening to closing.

    Usage:
        lifecycle = ConnectionLifecycle(StreamingMode.KEEP_ALIVE)
        await lifecycle.connect(opener)
        try:
            ...  # handshake, then streaming
        finally:
            await lifecycle.close()
    """

    streaming_mode: StreamingMode = StreamingMode.KEEP_ALIVE
    """Streaming mode requested when connecting."""

    _connection: Connection | None = field(default=None, init=False)
    """The transport, once open."""

    _state: ConnectionState = field(default=ConnectionState.CONNECTING, init=False)
    """Current state."""

    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    """Serializes sends with the outbound close."""

    @property
    def state(self) -> ConnectionState:
        """Current state."""
        return self._state

    @property
    def connection(self) -> Connection:
        """
        The open transport.

        Raises:
            RuntimeError: If the connection has not been opened.
        """
        if self._connection is None:
            raise RuntimeError("Connection has not been opened")
        return self._connection

    @property
    def is_closing(self) -> bool:
        """Whether the client has started closing the connection."""
        return self._state >= ConnectionState.CLOSING

    def advance(self, state: ConnectionState) -> None:
        """
        Move forward to the given state.

        Raises:
            RuntimeError: If the transition would not move forward.
        """
        if state <= self._state:
            raise RuntimeError(f"Invalid transition from {self._state.name} to {state.name}")
        logger.debug("Connection state %s -> %s", self._state.name, state.name)
        self._state = state

    async def connect(self, opener: ConnectionOpener) -> Connection:
        """
        Open the connection, sending the streaming mode header.

        Args:
            opener: Callable opening the transport with the given headers.

        Returns:
            The open connection.

        Raises:
            ServerConnectionError: If the server could not be reached or
                refused the WebSocket upgrade.
        """
        if self._state is not ConnectionState.CONNECTING:
            raise RuntimeError(f"Cannot connect in state {self._state.name}")

        try:
            connection = await opener(self.streaming_mode.to_headers())
        except aiohttp.WSServerHandshakeError as e:
            self._state = ConnectionState.CLOSED
            raise ServerConnectionError(
                f"Server refused the connection (status: {e.status})"
            ) from e
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            self._state = ConnectionState.CLOSED
            raise ServerConnectionError("Server is unreachable") from e

        self._connection = connection
        self.advance(ConnectionState.HANDSHAKING)
        return connection

    async def receive(self) -> bytes:
        """
        Receive the next message.

        Raises:
            ConnectionClosed: If the connection is closed.
        """
        return await self.connection.receive()

    async def send_bytes(self, data: bytes) -> None:
        """
        Send a binary message unless the client is closing.

        Raises:
            ConnectionClosed: If the connection is closed or closing.
        """
        async with self._send_lock:
            self._ensure_open()
            await self.connection.send_bytes(data)

    async def send_text(self, text: str) -> None:
        """
        Send a text message unless the client is closing.

        Raises:
            ConnectionClosed: If the connection is closed or closing.
        """
        async with self._send_lock:
            self._ensure_open()
            await self.connection.send_text(text)

    def _ensure_open(self) -> None:
        if self.is_closing or self.connection.closed:
            raise ConnectionClosed(None, "Connection already closed")

    async def close(self, code: int = WSCloseCode.OK, reason: str = "") -> None:
        """
        Close the connection, at most once, and wait until it is closed.

        Does nothing if the client already closed it or the transport already
        completed a server-initiated close.

        Args:
            code: WebSocket close code.
            reason: Human-readable close reason.
        """
        async with self._send_lock:
            if self.is_closing:
                return

            connection = self._connection
            if connection is None:
                self._state = ConnectionState.CLOSED
                return

            self.advance(ConnectionState.CLOSING)
            try:
                if not connection.closed:
                    logger.info(f"Closing connection (code: {code}, reason: {reason!r})")
                    await connection.close(code, reason)
            finally:
                self._state = ConnectionState.CLOSED

    async def close_for_policy_violation(self, reason: str) -> None:
        """Close the connection because the server broke the protocol."""
        logger.warning(f"Server violated the protocol: {reason}")
        await self.close(WSCloseCode.POLICY_VIOLATION, reason)

    def closure_error(self, closed: ConnectionClosed) -> ServerConnectionError:
        """
        Translate a closure reported by the transport into a client error.

        Args:
            closed: Closure reported by the transport.

        Returns:
            The error to raise, chained by the caller to `closed`.
        """
        if not closed.by_peer:
            message = (
                f"Client closed the connection after rejecting a message from the server "
                f"(code: {closed.code}, reason: {closed.reason})"
            )
        elif self._state is ConnectionState.HANDSHAKING:
            message = "Server closed the connection during the handshake"
        else:
            message = (
                f"Server closed the connection unexpectedly "
                f"(code: {closed.code}, reason: {closed.reason})"
            )
        return ServerConnectionError(message, close_code=closed.code, close_reason=closed.reason)
