"""Transaction confirmation polling."""

from __future__ import annotations

import asyncio
from typing import Literal

from ..domain.transactions import TransactionPhase, transaction_phase
from ..observability import get_logger
from ..protocols import LedgerReader, Sleep

WaitOutcome = Literal["confirmed", "failed", "timeout"]

logger = get_logger("ledger_rpc.application.polling")


async def wait_for_transaction(
    reader: LedgerReader,
    tx_id: str,
    *,
    max_attempts: int = 60,
    initial_interval_seconds: float = 2.0,
    max_interval_seconds: float = 10.0,
    growth: float = 1.5,
    sleep: Sleep = asyncio.sleep,
) -> WaitOutcome:
    """Poll a transaction until it is confirmed, fails, or attempts run out.

    The interval grows by `growth` after each unresolved poll, capped at
    `max_interval_seconds`. A transaction the node cannot report on counts as
    still pending.
    """
    interval = initial_interval_seconds
    for attempt in range(max_attempts):
        await sleep(interval)
        status = await reader.get_transaction_status(tx_id)
        phase = transaction_phase(status)
        logger.debug("Poll %s for %s: %s", attempt + 1, tx_id, status)
        if phase is TransactionPhase.CONFIRMED:
            return "confirmed"
        if phase is TransactionPhase.FAILED:
            return "failed"
        interval = min(interval * growth, max_interval_seconds)

    logger.info("Gave up waiting for %s after %s polls", tx_id, max_attempts)
    return "timeout"
