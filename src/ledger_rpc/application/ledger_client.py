"""Read operations against a ledger node's HTTP surface.

Each operation checks the client's own cache, then runs a retrying,
admission-controlled request, classifies the outcome and caches it.

Usage example:
    from ledger_rpc.application.ledger_client import LedgerClient

    async with LedgerClient("https://api.explorer.provable.com/v1", "testnet") as client:
        height = await client.get_height()
        status = await client.get_mapping_value("token.aleo", "balances", "aleo1...")
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from types import TracebackType
from typing import Self, cast, override
from urllib.parse import quote

import httpx

from ..config import DEFAULT_BASE_URL, DEFAULT_NETWORK
from ..domain.lookup import Lookup
from ..domain.transactions import TransactionChainStatus, classify_transaction
from ..exceptions import (
    LedgerRpcError,
    MalformedResponseError,
    ProgramNotFoundError,
    RequestFailedError,
)
from ..infrastructure.cache import CacheTtls, TtlCache, cache_key
from ..infrastructure.http import DEFAULT_TIMEOUT_SECONDS, GatedHttpClient
from ..infrastructure.validation import parse_height, parse_json_object
from ..observability import get_logger, verbose_level
from ..protocols import HttpFetcher, LedgerReader, ResponseCache, RetryPolicy

logger = get_logger("ledger_rpc.application.ledger_client")

# Failures a lookup reports as "unavailable" instead of raising.
_LOOKUP_FAILURES = (LedgerRpcError, httpx.HTTPError)


class LedgerClient(LedgerReader):
    """Cached read client for one ledger node and network.

    The cache belongs to this client alone. The admission gate behind the
    HTTP fetcher is shared by every client in the process unless a different
    one is injected.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        network: str = DEFAULT_NETWORK,
        *,
        http: HttpFetcher | None = None,
        cache: ResponseCache | None = None,
        ttls: CacheTtls | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        verbose: bool = False,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._network = network
        self._http = http or GatedHttpClient(
            session=httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True),
            retry_policy=retry_policy,
            verbose=verbose,
        )
        self._cache = cache if cache is not None else TtlCache()
        self._ttls = ttls or CacheTtls()
        self._verbose = verbose
        self._http.verbose = verbose

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def network(self) -> str:
        return self._network

    @property
    def verbose(self) -> bool:
        return self._verbose

    def set_verbose(self, enabled: bool) -> None:
        """Enable or disable per-request diagnostics."""
        self._verbose = enabled
        self._http.verbose = enabled

    def clear_cache(self) -> None:
        """Drop every cached response held by this client."""
        self._cache.clear()

    def _url(self, *segments: str) -> str:
        path = "/".join(quote(segment, safe="") for segment in (self._network, *segments))
        return f"{self._base_url}/{path}"

    @override
    async def get_height(self) -> int:
        """Return the latest block height (cached briefly).

        Raises:
            RequestFailedError: If the node rejects the request (4xx)
            MalformedResponseError: If the body is not an integer
            ServerResponseError | httpx.RequestError: If retries run out
        """
        key = cache_key("height", self._network)
        cached = self._cache.get(key)
        if cached.hit:
            return cast(int, cached.value)

        url = self._url("latest", "height")
        response = await self._http.get(url)
        if not response.is_success:
            raise RequestFailedError(response.status_code, url)

        height = parse_height(response.text)
        self._cache.set(key, height, self._ttls.height)
        return height

    @override
    async def get_program(self, program_id: str) -> str:
        """Return a program's source.

        Raises:
            ProgramNotFoundError: If the node has no such program (404)
            RequestFailedError: For any other 4xx
            ServerResponseError | httpx.RequestError: If retries run out
        """
        key = cache_key("program", self._network, program_id)
        cached = self._cache.get(key)
        if cached.hit:
            return cast(str, cached.value)

        url = self._url("program", program_id)
        response = await self._http.get(url)
        if response.status_code == 404:
            raise ProgramNotFoundError(program_id, url)
        if not response.is_success:
            raise RequestFailedError(response.status_code, url)

        program = response.text
        self._cache.set(key, program, self._ttls.program)
        return program

    @override
    async def program_exists(self, program_id: str) -> bool:
        try:
            await self.get_program(program_id)
        except _LOOKUP_FAILURES as exc:
            logger.log(verbose_level(self._verbose), "program_exists(%s): %s", program_id, exc)
            return False
        return True

    @override
    async def get_mapping_value(self, program_id: str, mapping_name: str, key: str) -> str | None:
        """Return a mapping value, or None if the key does not exist.

        A missing key is cached like any other value. Network failures are
        raised, never turned into None, so "no such key" and "could not ask"
        stay distinguishable.
        """
        entry_key = cache_key("mapping", self._network, program_id, mapping_name, key)
        cached = self._cache.get(entry_key)
        if cached.hit:
            return cast(str | None, cached.value)

        url = self._url("program", program_id, "mapping", mapping_name, key)
        try:
            response = await self._http.get(url)
        except _LOOKUP_FAILURES as exc:
            logger.log(verbose_level(self._verbose), "get_mapping_value error: %s", exc)
            raise

        if response.status_code == 404:
            self._cache.set(entry_key, None, self._ttls.mapping_absent)
            return None
        if not response.is_success:
            raise RequestFailedError(response.status_code, url)

        value = response.text
        self._cache.set(entry_key, value, self._ttls.mapping)
        return value

    async def lookup_mapping_value(
        self, program_id: str, mapping_name: str, key: str
    ) -> Lookup[str]:
        """Tri-state form of `get_mapping_value`; never raises for network failures."""
        try:
            value = await self.get_mapping_value(program_id, mapping_name, key)
        except _LOOKUP_FAILURES as exc:
            return Lookup.unavailable(exc)
        if value is None:
            return Lookup.absent()
        return Lookup.found(value)

    @override
    async def lookup_mapping_values(
        self, program_id: str, mapping_name: str, keys: Sequence[str]
    ) -> dict[str, Lookup[str]]:
        """Look up every key concurrently; one failing key never fails the batch."""
        unique_keys = list(dict.fromkeys(keys))
        results = await asyncio.gather(
            *(self.lookup_mapping_value(program_id, mapping_name, key) for key in unique_keys)
        )
        return dict(zip(unique_keys, results, strict=True))

    async def get_mapping_values(
        self, program_id: str, mapping_name: str, keys: Sequence[str]
    ) -> dict[str, str | None]:
        """Batched lookup collapsed to key -> value-or-None."""
        lookups = await self.lookup_mapping_values(program_id, mapping_name, keys)
        return {key: lookup.value_or_none() for key, lookup in lookups.items()}

    @override
    async def lookup_transaction(self, tx_id: str) -> Lookup[dict[str, object]]:
        return await self._lookup_structured(self._url("transaction", tx_id), what="transaction")

    async def get_transaction(self, tx_id: str) -> dict[str, object] | None:
        """Return the transaction, or None if it is missing or could not be read."""
        return (await self.lookup_transaction(tx_id)).value_or_none()

    @override
    async def get_transaction_status(self, tx_id: str) -> TransactionChainStatus:
        lookup = await self.lookup_transaction(tx_id)
        return classify_transaction(lookup.value_or_none())

    @override
    async def lookup_block(self, height: int) -> Lookup[dict[str, object]]:
        return await self._lookup_structured(self._url("block", str(height)), what="block")

    async def get_block(self, height: int) -> dict[str, object] | None:
        """Return the block, or None if it is missing or could not be read."""
        return (await self.lookup_block(height)).value_or_none()

    async def _lookup_structured(self, url: str, *, what: str) -> Lookup[dict[str, object]]:
        try:
            response = await self._http.get(url)
        except _LOOKUP_FAILURES as exc:
            logger.log(verbose_level(self._verbose), "%s lookup failed: %s", what, exc)
            return Lookup.unavailable(exc)

        if response.status_code == 404:
            return Lookup.absent()
        if not response.is_success:
            return Lookup.unavailable(RequestFailedError(response.status_code, url))

        try:
            payload = parse_json_object(response.text, what=what)
        except MalformedResponseError as exc:
            logger.log(verbose_level(self._verbose), "%s", exc)
            return Lookup.unavailable(exc)
        return Lookup.found(payload)

    @override
    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()
