"""Exports for test fakes."""

from .clock import FakeClock
from .node import FakeLedgerNode, build_test_client
from .reader import FakeLedgerReader

__all__ = [
    "FakeClock",
    "FakeLedgerNode",
    "FakeLedgerReader",
    "build_test_client",
]
