"""Test helpers for poweb unit and end-to-end tests."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TypeVar

from .builders import issue_certificate, make_private_key, make_signer
from .mocks import MockConnection
from .server import (
    AbortConnectionAction,
    ActionSequence,
    ChallengeAction,
    CloseConnectionAction,
    MockPoWebServer,
    ParcelDeliveryAction,
    SendStatuslessCloseAction,
    SendTextMessageAction,
    ServerAction,
    running_server,
)

_T = TypeVar("_T")


def run_async(coro: Coroutine[object, object, _T]) -> _T:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


__all__ = [
    # Builders
    "issue_certificate",
    "make_private_key",
    "make_signer",
    # Mocks
    "MockConnection",
    # Scripted server
    "MockPoWebServer",
    "running_server",
    "ServerAction",
    "AbortConnectionAction",
    "ActionSequence",
    "ChallengeAction",
    "CloseConnectionAction",
    "ParcelDeliveryAction",
    "SendStatuslessCloseAction",
    "SendTextMessageAction",
    # Async utilities
    "run_async",
]
