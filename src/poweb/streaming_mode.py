"""Streaming modes for parcel collection."""

from __future__ import annotations

from enum import Enum

from poweb.config import STREAMING_MODE_HEADER_NAME


class StreamingMode(Enum):
    """
    Whether the server keeps the connection open once it runs out of parcels.

    The value is the header value sent when opening the connection.
    """

    KEEP_ALIVE = "keep-alive"
    """Keep the connection open and push parcels as they arrive."""

    CLOSE_UPON_COMPLETION = "close-upon-completion"
    """Close the connection once every queued parcel has been delivered."""

    @property
    def header_value(self) -> str:
        """Value of the streaming mode header."""
        return self.value

    def to_headers(self) -> dict[str, str]:
        """Headers to send when opening the collection connection."""
        return {STREAMING_MODE_HEADER_NAME: self.header_value}
