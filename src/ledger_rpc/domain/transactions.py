"""Transaction status classification.

Maps the raw transaction payload returned by the node onto a small set of
coarse states used by status displays and polling.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class TransactionChainStatus(StrEnum):
    """On-chain status of a transaction as far as the node reports it."""

    QUEUED = "Queued"
    PROCESSING = "Processing"
    FINALIZED = "Finalized"
    REJECTED = "Rejected"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class TransactionPhase(StrEnum):
    """Coarse phase shown to users."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


_PHASE_BY_STATUS: dict[TransactionChainStatus, TransactionPhase] = {
    TransactionChainStatus.QUEUED: TransactionPhase.PENDING,
    TransactionChainStatus.PROCESSING: TransactionPhase.PENDING,
    TransactionChainStatus.FINALIZED: TransactionPhase.CONFIRMED,
    TransactionChainStatus.REJECTED: TransactionPhase.FAILED,
    TransactionChainStatus.FAILED: TransactionPhase.FAILED,
    TransactionChainStatus.UNKNOWN: TransactionPhase.PENDING,
}


def classify_transaction(tx: Mapping[str, object] | None) -> TransactionChainStatus:
    """Classify a raw transaction payload.

    Rules, in order:
    1. No payload: Unknown
    2. `type` or `status` is "accepted": Finalized
    3. `type` or `status` is "rejected": Rejected
    4. Carries a block height: Finalized
    5. Otherwise the node knows it but has not confirmed it: Processing
    """
    if tx is None:
        return TransactionChainStatus.UNKNOWN

    kind = tx.get("type")
    status = tx.get("status")
    if kind == "accepted" or status == "accepted":
        return TransactionChainStatus.FINALIZED
    if kind == "rejected" or status == "rejected":
        return TransactionChainStatus.REJECTED
    if transaction_block_height(tx) is not None:
        return TransactionChainStatus.FINALIZED
    return TransactionChainStatus.PROCESSING


def transaction_block_height(tx: Mapping[str, object]) -> int | None:
    """Return the block height recorded on a transaction, if any."""
    for field_name in ("block_height", "blockHeight"):
        value = tx.get(field_name)
        if isinstance(value, bool):
            continue
        if isinstance(value, int) and value > 0:
            return value
        if isinstance(value, str) and value.strip().isdigit() and int(value) > 0:
            return int(value)
    return None


def transaction_phase(status: TransactionChainStatus) -> TransactionPhase:
    """Collapse a chain status into the phase shown to users."""
    return _PHASE_BY_STATUS[status]
