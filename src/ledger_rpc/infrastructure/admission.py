"""Process-wide admission control for outbound ledger requests.

A single gate bounds how many requests are in flight at once across every
client in the process, and holds all traffic back for a short cooldown after a
transport reports resource exhaustion.

Usage example:
    from ledger_rpc.infrastructure.admission import shared_admission_gate

    gate = shared_admission_gate()
    async with gate.slot():
        response = await session.get(url)
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import override

from ..observability import get_logger
from ..protocols import AdmissionControl

MAX_CONCURRENT_REQUESTS = 6
RESOURCE_EXHAUSTION_COOLDOWN_SECONDS = 5.0

logger = get_logger("ledger_rpc.infrastructure.admission")


class AdmissionGate(AdmissionControl):
    """Counting gate with a FIFO wait queue and a shared cooldown deadline.

    Slots are handed directly from the releasing request to the oldest waiter,
    so a newcomer can never overtake the queue and the active count never
    exceeds the ceiling. Counter and queue updates happen without awaiting in
    between, which keeps them atomic on a single event loop.
    """

    def __init__(
        self,
        *,
        ceiling: int = MAX_CONCURRENT_REQUESTS,
        cooldown_seconds: float = RESOURCE_EXHAUSTION_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if ceiling < 1:
            raise ValueError("Admission ceiling must be at least 1.")
        self.ceiling = ceiling
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._sleep = sleep
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._exhausted_until = 0.0

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def waiting_count(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def exhausted_until(self) -> float:
        return self._exhausted_until

    @property
    def in_cooldown(self) -> bool:
        return self._clock() < self._exhausted_until

    @override
    async def acquire(self) -> None:
        """Wait out any cooldown, then take a slot (queueing FIFO if full).

        A queued caller that is handed a slot re-checks the cooldown before
        returning, so no attempt starts before the deadline.
        """
        await self._wait_for_cooldown()

        if self._active < self.ceiling and not self._waiters:
            self._active += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over before the cancellation landed.
                self.release()
            else:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(waiter)
            raise

        # A cooldown may have been armed while queued; wait it out holding the slot.
        try:
            await self._wait_for_cooldown()
        except asyncio.CancelledError:
            self.release()
            raise

    @override
    def release(self) -> None:
        """Hand the slot to the oldest waiter, or free it."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        if self._active <= 0:
            raise RuntimeError("release() called without a matching acquire().")
        self._active -= 1

    @override
    def trigger_exhaustion_backoff(self) -> None:
        """Hold all traffic for the cooldown period, overwriting any deadline."""
        self._exhausted_until = self._clock() + self.cooldown_seconds
        logger.warning(
            "Resource exhaustion detected, holding requests for %.1fs", self.cooldown_seconds
        )

    @override
    @contextlib.asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one slot for the duration of the block, releasing on any exit."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    async def _wait_for_cooldown(self) -> None:
        remaining = self._exhausted_until - self._clock()
        while remaining > 0:
            logger.debug("Resource exhaustion cooldown: waiting %.2fs", remaining)
            await self._sleep(remaining)
            remaining = self._exhausted_until - self._clock()


_shared_gate: AdmissionGate | None = None


def shared_admission_gate() -> AdmissionGate:
    """Return the process-wide gate, creating it on first use."""
    global _shared_gate
    if _shared_gate is None:
        _shared_gate = AdmissionGate()
    return _shared_gate
