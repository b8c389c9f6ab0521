"""Exception hierarchy for parcel collection."""

from __future__ import annotations


class PoWebError(Exception):
    """
    Base exception for all client-side PoWeb errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class NonceSignerError(PoWebError):
    """
    Raised when no nonce signer was supplied.

    Raised before any network activity takes place.
    """


class ServerConnectionError(PoWebError):
    """
    Raised when the connection to the server failed or ended unexpectedly.

    The underlying transport error is available via ``__cause__``.

    Attributes:
        close_code: WebSocket close code sent by the server, if known.
        close_reason: Close reason sent by the server, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        close_code: int | None = None,
        close_reason: str | None = None,
    ) -> None:
        self.close_code = close_code
        self.close_reason = close_reason
        super().__init__(message)


class InvalidServerMessageError(PoWebError):
    """
    Raised when the server sent a message that could not be decoded.

    The client closes the connection with a policy-violation code before
    raising. The decoding error is available via ``__cause__``.
    """
