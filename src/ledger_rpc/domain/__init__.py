"""Domain logic for ledger reads (pure functions and value types)."""

from .lookup import Lookup, LookupStatus
from .transactions import (
    TransactionChainStatus,
    TransactionPhase,
    classify_transaction,
    transaction_block_height,
    transaction_phase,
)
from .values import (
    parse_bool,
    parse_field,
    parse_literal,
    parse_u8,
    parse_u16,
    parse_u32,
    parse_u64,
)

__all__ = [
    "Lookup",
    "LookupStatus",
    "TransactionChainStatus",
    "TransactionPhase",
    "classify_transaction",
    "parse_bool",
    "parse_field",
    "parse_literal",
    "parse_u16",
    "parse_u32",
    "parse_u64",
    "parse_u8",
    "transaction_block_height",
    "transaction_phase",
]
