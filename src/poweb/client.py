"""
PoWebSockets client.

Usage::

    async with PoWebClient.init_local() as client:
        collections = client.collect_parcels([signer], StreamingMode.CLOSE_UPON_COMPLETION)
        async with aclosing(collections):
            async for collection in collections:
                store(collection.parcel_serialized)
                await collection.ack()

Closing the generator (here via `contextlib.aclosing`) as soon as the caller
is no longer interested makes the client close the connection straight away.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import AsyncGenerator, Iterable
from contextlib import aclosing
from types import TracebackType

import aiohttp
from typing_extensions import Self

from poweb.config import (
    DEFAULT_LOCAL_PORT,
    DEFAULT_REMOTE_PORT,
    PARCEL_COLLECTION_ENDPOINT_PATH,
    PoWebClientConfig,
)
from poweb.handshake import HandshakeCoordinator, Signer, SignerSet
from poweb.lifecycle import ConnectionLifecycle
from poweb.session import ParcelCollection, StreamingSession
from poweb.streaming_mode import StreamingMode
from poweb.transport import AiohttpConnection, open_connection

logger = logging.getLogger(__name__)


class PoWebClient:
    """
    Client for a PoWeb server (typically a private or public gateway).

    The client owns an aiohttp session, created on first use. Close the
    client when done, or use it as an async context manager.
    """

    def __init__(
        self,
        config: PoWebClientConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Args:
            config: Where and how to reach the server.
            session: aiohttp session to use. The client does not close
                sessions it did not create.
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

    @classmethod
    def init_local(cls, port: int = DEFAULT_LOCAL_PORT) -> Self:
        """Client for a private gateway on this host, without TLS."""
        return cls(PoWebClientConfig.local(port))

    @classmethod
    def init_remote(cls, host_name: str, port: int = DEFAULT_REMOTE_PORT) -> Self:
        """Client for a public gateway, over TLS."""
        return cls(PoWebClientConfig.remote(host_name, port))

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the aiohttp session, if the client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def collect_parcels(
        self,
        nonce_signers: Iterable[Signer],
        streaming_mode: StreamingMode = StreamingMode.KEEP_ALIVE,
    ) -> AsyncGenerator[ParcelCollection, None]:
        """
        Collect parcels for the endpoints behind the nonce signers.

        The signer check happens immediately; nothing touches the network
        until the returned generator is iterated.

        Args:
            nonce_signers: Signers answering the handshake challenge, in order.
            streaming_mode: Whether the server should keep the connection open
                once it runs out of parcels.

        Returns:
            Async generator of parcel collections, in delivery order.

        Raises:
            NonceSignerError: If no signer was given.
        """
        signer_set = SignerSet.of(nonce_signers)
        return self._collect(signer_set, streaming_mode)

    async def _collect(
        self,
        signer_set: SignerSet,
        streaming_mode: StreamingMode,
    ) -> AsyncGenerator[ParcelCollection, None]:
        url = self.config.endpoint_url(PARCEL_COLLECTION_ENDPOINT_PATH)
        logger.info(f"Collecting parcels from {url} ({streaming_mode.header_value})")

        lifecycle = ConnectionLifecycle(streaming_mode)
        await lifecycle.connect(functools.partial(self._open_connection, url))
        try:
            await HandshakeCoordinator(signer_set).perform(lifecycle)
            async with aclosing(StreamingSession(lifecycle).stream()) as collections:
                async for collection in collections:
                    yield collection
        finally:
            await lifecycle.close()

    async def _open_connection(self, url: str, headers: dict[str, str]) -> AiohttpConnection:
        return await open_connection(
            self._get_session(),
            url,
            headers,
            self.config.close_timeout,
            self.config.max_message_size,
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=None, connect=self.config.connect_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session
