"""Retry policy and failure classification for ledger requests.

Usage example:
    from ledger_rpc.infrastructure.resilience import RetryPolicy

    policy = RetryPolicy().with_overrides(max_retries=4)
    delay = policy.compute_backoff(attempt=0)
"""

from __future__ import annotations

import errno
import random
from dataclasses import dataclass, replace
from typing import Self, override

import httpx

from ..exceptions import InvalidRetryPolicyError, ServerResponseError
from ..protocols import RetryPolicy as RetryPolicyProtocol

JITTER_LOW = 0.75
JITTER_HIGH = 1.25

# Socket-level conditions caused by too many simultaneous connections.
_EXHAUSTION_ERRNOS = frozenset(
    {errno.EMFILE, errno.ENFILE, errno.ENOBUFS, errno.ENOMEM, errno.EADDRNOTAVAIL}
)
_EXHAUSTION_MARKERS = (
    "err_insufficient_resources",
    "insufficient resources",
    "too many open files",
    "failed to fetch",
    "network error",
    "networkerror",
    "load failed",
)


@dataclass(frozen=True)
class RetryPolicy(RetryPolicyProtocol):
    """Bounded exponential backoff with jitter.

    `max_retries` counts retries, so a call makes at most `max_retries + 1`
    attempts. Every delay is drawn with fresh jitter in [0.75, 1.25] and never
    falls below `min_retry_delay_seconds`.
    """

    max_retries: int = 2
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    backoff_multiplier: float = 2.0
    min_retry_delay_seconds: float = 1.0
    retry_exceptions: tuple[type[Exception], ...] = (httpx.RequestError,)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise InvalidRetryPolicyError("max_retries must be >= 0")
        if self.backoff_multiplier <= 1:
            raise InvalidRetryPolicyError("backoff_multiplier must be > 1")
        if self.base_delay_seconds <= 0 or self.max_delay_seconds <= 0:
            raise InvalidRetryPolicyError("delays must be positive")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise InvalidRetryPolicyError("max_delay_seconds must be >= base_delay_seconds")
        if self.min_retry_delay_seconds < 0:
            raise InvalidRetryPolicyError("min_retry_delay_seconds must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def capped_delay(self, attempt: int) -> float:
        """Exponential delay for `attempt`, capped at `max_delay_seconds`, before jitter."""
        exponential = self.base_delay_seconds * (self.backoff_multiplier**attempt)
        return min(exponential, self.max_delay_seconds)

    @override
    def compute_backoff(self, attempt: int) -> float:
        """Return the jittered delay to wait after failed attempt `attempt`."""
        jittered = self.capped_delay(attempt) * random.uniform(JITTER_LOW, JITTER_HIGH)
        return max(self.min_retry_delay_seconds, jittered)

    @override
    def is_retryable(self, error: Exception) -> bool:
        return isinstance(error, ServerResponseError) or isinstance(error, self.retry_exceptions)

    def with_overrides(
        self,
        *,
        max_retries: int | None = None,
        base_delay_seconds: float | None = None,
        max_delay_seconds: float | None = None,
        backoff_multiplier: float | None = None,
    ) -> Self:
        """Return a policy with a partial override applied."""
        return replace(
            self,
            max_retries=self.max_retries if max_retries is None else max_retries,
            base_delay_seconds=self.base_delay_seconds
            if base_delay_seconds is None
            else base_delay_seconds,
            max_delay_seconds=self.max_delay_seconds
            if max_delay_seconds is None
            else max_delay_seconds,
            backoff_multiplier=self.backoff_multiplier
            if backoff_multiplier is None
            else backoff_multiplier,
        )


def _error_chain(error: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def is_resource_exhaustion_error(error: BaseException) -> bool:
    """Check if an error means the local transport ran out of connections.

    Typed conditions are checked first: connection failures, pool timeouts and
    socket errnos anywhere in the cause chain. Message markers are only a
    fallback for errors that carry no type information.
    """
    for link in _error_chain(error):
        if isinstance(link, (httpx.ConnectError, httpx.PoolTimeout)):
            return True
        if isinstance(link, OSError) and link.errno in _EXHAUSTION_ERRNOS:
            return True
    message = str(error).lower()
    return any(marker in message for marker in _EXHAUSTION_MARKERS)
