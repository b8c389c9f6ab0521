"""
Message-oriented transport consumed by the parcel collection core.

The core only needs four things from a WebSocket: receive the next message,
send binary or text messages, close with a code and reason, and know whether
it is already closed. `Connection` captures exactly that, and
`AiohttpConnection` provides it on top of an aiohttp client WebSocket.

Closure is reported as a `ConnectionClosed` exception from `receive()` rather
than as a sentinel message, so callers cannot forget to handle it.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import aiohttp
from aiohttp import WSCloseCode, WSMsgType

logger = logging.getLogger(__name__)

NORMAL_CLOSE_CODES: frozenset[int | None] = frozenset({None, WSCloseCode.OK})
"""Codes meaning the peer finished normally. None means no status code was sent."""


class ConnectionClosed(Exception):
    """
    Raised when the connection is closed while receiving or sending.

    Attributes:
        code: Close code sent by the peer, or None if it sent none.
        reason: Close reason sent by the peer (empty if none).
        by_peer: False when the client itself failed the connection, for
            example after refusing an oversized or malformed frame.
    """

    def __init__(self, code: int | None, reason: str = "", *, by_peer: bool = True) -> None:
        self.code = code
        self.reason = reason
        self.by_peer = by_peer
        super().__init__(f"Connection closed (code: {code}, reason: {reason})")

    @property
    def is_normal(self) -> bool:
        """Whether the peer closed the connection without signalling an error."""
        return self.by_peer and self.code in NORMAL_CLOSE_CODES


@runtime_checkable
class Connection(Protocol):
    """A full-duplex, message-oriented connection."""

    @property
    def closed(self) -> bool:
        """Whether the closing handshake has completed in either direction."""
        ...

    async def receive(self) -> bytes:
        """
        Wait for the next message.

        Text messages are returned as their UTF-8 encoding.

        Raises:
            ConnectionClosed: If the connection is or becomes closed.
        """
        ...

    async def send_bytes(self, data: bytes) -> None:
        """
        Send a binary message.

        Raises:
            ConnectionClosed: If the connection is closed.
        """
        ...

    async def send_text(self, text: str) -> None:
        """
        Send a text message.

        Raises:
            ConnectionClosed: If the connection is closed.
        """
        ...

    async def close(self, code: int, reason: str) -> None:
        """Start the closing handshake and wait for it to complete."""
        ...


class AiohttpConnection:
    """`Connection` backed by an aiohttp client WebSocket."""

    def __init__(self, websocket: aiohttp.ClientWebSocketResponse) -> None:
        self._websocket = websocket
        self._peer_closure: ConnectionClosed | None = None
        self._closing = False

    @property
    def closed(self) -> bool:
        return self._websocket.closed

    async def receive(self) -> bytes:
        message = await self._websocket.receive()

        if message.type is WSMsgType.BINARY:
            return message.data
        if message.type is WSMsgType.TEXT:
            return message.data.encode("utf-8")

        if message.type is WSMsgType.CLOSE:
            # aiohttp has already answered the close frame at this point.
            code = _normalize_code(message.data)
            self._peer_closure = ConnectionClosed(code, message.extra or "")
            raise self._peer_closure

        if message.type is WSMsgType.ERROR:
            logger.debug("WebSocket error: %s", message.data)
            if isinstance(message.data, aiohttp.WebSocketError):
                # The client refused a frame and has already closed with its code.
                raise ConnectionClosed(
                    message.data.code, str(message.data), by_peer=False
                ) from message.data
            cause = message.data if isinstance(message.data, BaseException) else None
            raise ConnectionClosed(
                WSCloseCode.ABNORMAL_CLOSURE, str(message.data) or "Connection lost"
            ) from cause

        # CLOSING or CLOSED. aiohttp reports a dropped TCP connection this way
        # too, with code 1000, although no close frame was received.
        raise self._closure()

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except ConnectionError as e:
            raise self._closure() from e

    async def send_text(self, text: str) -> None:
        try:
            await self._websocket.send_str(text)
        except ConnectionError as e:
            raise self._closure() from e

    async def close(self, code: int, reason: str) -> None:
        self._closing = True
        await self._websocket.close(code=code, message=reason.encode("utf-8"))

    def _closure(self) -> ConnectionClosed:
        """Describe a connection found closed outside of a close frame."""
        if self._peer_closure is not None:
            return ConnectionClosed(self._peer_closure.code, self._peer_closure.reason)
        if self._closing:
            return ConnectionClosed(None, "Connection closed by the client", by_peer=False)
        return ConnectionClosed(WSCloseCode.ABNORMAL_CLOSURE, "Connection lost")


def _normalize_code(code: int | None) -> int | None:
    """Map aiohttp's placeholder for a status-less close frame to None."""
    return code or None


async def open_connection(
    session: aiohttp.ClientSession,
    url: str,
    headers: dict[str, str],
    close_timeout: float,
    max_message_size: int,
) -> AiohttpConnection:
    """
    Open a WebSocket connection.

    Args:
        session: aiohttp session to connect with.
        url: Absolute ``ws://`` or ``wss://`` URL.
        headers: Extra headers for the upgrade request.
        close_timeout: Seconds to wait for the peer to confirm a close.
        max_message_size: Largest inbound message accepted, in bytes. Larger
            messages make the client close the connection with code 1009.

    Returns:
        The open connection.

    Raises:
        aiohttp.ClientError: If the connection could not be established.
    """
    websocket = await session.ws_connect(
        url,
        headers=headers,
        timeout=aiohttp.ClientWSTimeout(ws_close=close_timeout),
        max_msg_size=max_message_size,
    )
    logger.info(f"Connected to {url}")
    return AiohttpConnection(websocket)
