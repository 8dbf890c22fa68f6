"""Operation layer: ledger read operations and polling."""

from .ledger_client import LedgerClient
from .polling import WaitOutcome, wait_for_transaction

__all__ = ["LedgerClient", "WaitOutcome", "wait_for_transaction"]
