"""Ordered, non-empty collection of nonce signers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from typing_extensions import Self

from poweb.codec import NonceSignature
from poweb.errors import NonceSignerError

from .signer import Signer


@dataclass(frozen=True, slots=True)
class SignerSet:
    """
    The signers answering one handshake, in the order given by the caller.

    The set is immutable so it cannot change while a session borrows it.
    """

    signers: tuple[Signer, ...]
    """Signers, in the order their signatures will appear in the response."""

    def __post_init__(self) -> None:
        if not self.signers:
            raise NonceSignerError("At least one nonce signer must be specified")

    @classmethod
    def of(cls, signers: Iterable[Signer]) -> Self:
        """
        Build a signer set from any iterable of signers.

        Raises:
            NonceSignerError: If there are no signers.
        """
        return cls(signers=tuple(signers))

    def __len__(self) -> int:
        return len(self.signers)

    def __iter__(self) -> Iterator[Signer]:
        return iter(self.signers)

    def sign(self, nonce: bytes) -> tuple[NonceSignature, ...]:
        """
        Sign the nonce with every signer.

        Args:
            nonce: Challenge nonce sent by the server.

        Returns:
            One signature per signer, in signer order.
        """
        return tuple(
            NonceSignature(
                nonce=nonce,
                signer_certificate=signer.certificate,
                signature=signer.sign(nonce),
            )
            for signer in self.signers
        )
