"""
Shared pytest fixtures for poweb tests.

Provides nonce signers and an in-memory connection.
"""

from __future__ import annotations

import pytest

from poweb.handshake import NonceSigner
from tests.poweb.helpers import MockConnection, make_signer


@pytest.fixture(scope="session")
def signer() -> NonceSigner:
    """Primary nonce signer (EC P-256)."""
    return make_signer(common_name="endpoint-1")


@pytest.fixture(scope="session")
def signer_2() -> NonceSigner:
    """Secondary nonce signer (EC P-256)."""
    return make_signer(common_name="endpoint-2")


@pytest.fixture
def connection() -> MockConnection:
    """Fresh in-memory connection."""
    return MockConnection()
