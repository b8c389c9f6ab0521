"""
Client configuration and protocol constants for PoWebSockets.

A client talks either to a private gateway on the same host (plain WebSocket
on the loopback interface) or to a public gateway over TLS.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing_extensions import Final, Self

PARCEL_COLLECTION_ENDPOINT_PATH: Final[str] = "/v1/parcel-collection"
"""Path of the WebSocket endpoint serving parcel collections."""

STREAMING_MODE_HEADER_NAME: Final[str] = "X-Relaynet-Streaming-Mode"
"""Request header carrying the streaming mode for the collection."""

DEFAULT_LOCAL_PORT: Final[int] = 276
"""Port used by private gateways listening on the loopback interface."""

DEFAULT_REMOTE_PORT: Final[int] = 443
"""Port used by public gateways."""

LOCAL_HOST_NAME: Final[str] = "127.0.0.1"
"""Host name used to reach a private gateway."""

DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0
"""Seconds allowed for the WebSocket upgrade to complete."""

DEFAULT_CLOSE_TIMEOUT: Final[float] = 5.0
"""Seconds to wait for the server to confirm a client-initiated close."""

DEFAULT_MAX_MESSAGE_SIZE: Final[int] = 10 * 1024 * 1024
"""Largest inbound message accepted, in bytes: a 9 MiB parcel plus its delivery framing."""


@dataclass(frozen=True, slots=True)
class PoWebClientConfig:
    """Where and how to reach a PoWeb server."""

    host_name: str
    """Host name or IP address of the server."""

    port: int
    """TCP port of the server."""

    use_tls: bool = True
    """Whether to connect with ``wss://`` rather than ``ws://``."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    """Timeout for establishing the WebSocket connection."""

    close_timeout: float = DEFAULT_CLOSE_TIMEOUT
    """Timeout for the closing handshake."""

    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    """Largest message the client accepts from the server, in bytes."""

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")
        if self.max_message_size <= 0:
            raise ValueError(f"Invalid maximum message size: {self.max_message_size}")

    @classmethod
    def local(cls, port: int = DEFAULT_LOCAL_PORT) -> Self:
        """Configuration for a private gateway on this host, without TLS."""
        return cls(host_name=LOCAL_HOST_NAME, port=port, use_tls=False)

    @classmethod
    def remote(cls, host_name: str, port: int = DEFAULT_REMOTE_PORT) -> Self:
        """Configuration for a public gateway, always over TLS."""
        return cls(host_name=host_name, port=port, use_tls=True)

    @property
    def ws_base_url(self) -> str:
        """Scheme, host and port of the WebSocket endpoints."""
        scheme = "wss" if self.use_tls else "ws"
        return f"{scheme}://{self.host_name}:{self.port}"

    def endpoint_url(self, path: str) -> str:
        """Absolute WebSocket URL for the given endpoint path."""
        return f"{self.ws_base_url}{path}"
