"""Pytest fixtures shared across the suite.

All tests are network-isolated - socket connections are blocked by default.
Ledger traffic goes through `FakeLedgerNode`, an in-process httpx transport.
"""

from __future__ import annotations

import socket
from collections.abc import Iterator

import pytest

from ledger_rpc.infrastructure.admission import AdmissionGate
from tests.fakes import FakeClock, FakeLedgerNode
from tests.support.errors import NetworkIsolationError

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self: socket.socket, *args: object, **kwargs: object) -> None:
    """Raise an error if any test tries to make a real network connection."""
    raise NetworkIsolationError(str(args))


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Block all network access in tests.

    This fixture runs automatically for all tests and prevents any real
    network connections. Tests that need HTTP should use FakeLedgerNode.
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)
    yield


@pytest.fixture(autouse=True)
def isolate_ledger_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer LEDGER_* variables and .env files out of tests."""
    for name in (
        "LEDGER_PROFILE",
        "LEDGER_BASE_URL",
        "LEDGER_NETWORK",
        "LEDGER_PROGRAM_ID",
        "LEDGER_TIMEOUT_SECONDS",
        "LEDGER_MAX_RETRIES",
        "LEDGER_BASE_DELAY_SECONDS",
        "LEDGER_MAX_DELAY_SECONDS",
        "LEDGER_BACKOFF_MULTIPLIER",
        "LEDGER_HEIGHT_TTL_SECONDS",
        "LEDGER_PROGRAM_TTL_SECONDS",
        "LEDGER_MAPPING_TTL_SECONDS",
        "LEDGER_MAPPING_ABSENT_TTL_SECONDS",
        "LEDGER_VERBOSE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("ledger_rpc.config.load_dotenv", lambda *_args, **_kwargs: False)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def gate(clock: FakeClock) -> AdmissionGate:
    """Provide a private admission gate driven by the fake clock."""
    return AdmissionGate(clock=clock, sleep=clock.sleep)


@pytest.fixture
def node() -> FakeLedgerNode:
    """Provide an in-process ledger node with no routes."""
    return FakeLedgerNode()
