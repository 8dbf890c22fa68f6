"""Protocol definitions for dependency injection.

These protocols define the seams between the operation layer and the
infrastructure it runs on, enabling isolated unit testing with fakes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import httpx

    from .domain.lookup import Lookup
    from .domain.transactions import TransactionChainStatus
    from .infrastructure.cache import CacheLookup

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
CacheKey = tuple[str, ...]


@runtime_checkable
class AdmissionControl(Protocol):
    """Abstract bound on concurrent outbound requests."""

    async def acquire(self) -> None:
        """Wait until a request slot is available and take it."""
        ...

    def release(self) -> None:
        """Give back a slot taken by `acquire()`."""
        ...

    def trigger_exhaustion_backoff(self) -> None:
        """Hold all traffic for the cooldown period."""
        ...

    def slot(self) -> AbstractAsyncContextManager[None]:
        """Hold one slot for the duration of an `async with` block."""
        ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Abstract retry policy for transient failures."""

    max_retries: int
    retry_exceptions: tuple[type[Exception], ...]

    def compute_backoff(self, attempt: int) -> float:
        """Return a delay for the next retry attempt."""
        ...

    def is_retryable(self, error: Exception) -> bool:
        """Return True if the failure is worth another attempt."""
        ...


@runtime_checkable
class ResponseCache(Protocol):
    """Abstract expiring cache that can hold `None` as a real value."""

    def get(self, key: CacheKey) -> CacheLookup:
        """Return a hit with the cached value, or a miss."""
        ...

    def set(self, key: CacheKey, value: object, ttl_seconds: float) -> None:
        """Store a value for `ttl_seconds`."""
        ...

    def clear(self) -> None:
        """Drop every entry."""
        ...


@runtime_checkable
class HttpFetcher(Protocol):
    """Abstract retrying, admission-controlled HTTP GET."""

    verbose: bool

    async def get(
        self, url: str, *, headers: Mapping[str, str] | None = None
    ) -> httpx.Response:
        """Fetch a URL, returning the final response or raising the last error."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


@runtime_checkable
class LedgerReader(Protocol):
    """Read operations against a ledger node, as consumed by the CLI and polling."""

    async def get_height(self) -> int:
        """Return the latest block height."""
        ...

    async def get_program(self, program_id: str) -> str:
        """Return program source."""
        ...

    async def program_exists(self, program_id: str) -> bool:
        """Return True if the program is deployed."""
        ...

    async def get_mapping_value(self, program_id: str, mapping_name: str, key: str) -> str | None:
        """Return a mapping value, or None when the key does not exist."""
        ...

    async def lookup_mapping_values(
        self, program_id: str, mapping_name: str, keys: Sequence[str]
    ) -> dict[str, Lookup[str]]:
        """Look up several keys concurrently."""
        ...

    async def lookup_transaction(self, tx_id: str) -> Lookup[dict[str, object]]:
        """Look up a transaction."""
        ...

    async def get_transaction_status(self, tx_id: str) -> TransactionChainStatus:
        """Classify a transaction's chain status."""
        ...

    async def lookup_block(self, height: int) -> Lookup[dict[str, object]]:
        """Look up a block by height."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
