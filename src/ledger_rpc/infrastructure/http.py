"""Retrying, admission-controlled HTTP client for ledger nodes.

Usage example:
    import httpx

    from ledger_rpc.infrastructure.admission import shared_admission_gate
    from ledger_rpc.infrastructure.http import GatedHttpClient
    from ledger_rpc.infrastructure.resilience import RetryPolicy

    client = GatedHttpClient(
        session=httpx.AsyncClient(timeout=15.0),
        gate=shared_admission_gate(),
        retry_policy=RetryPolicy(max_retries=2),
    )
    response = await client.get("https://node.example/v1/testnet/latest/height")
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import override

import httpx

from .. import __version__
from ..exceptions import ServerResponseError
from ..observability import get_logger, verbose_level
from ..protocols import AdmissionControl, HttpFetcher, RetryPolicy, Sleep
from .admission import shared_admission_gate
from .resilience import RetryPolicy as RetryPolicyImpl
from .resilience import is_resource_exhaustion_error

CLIENT_VERSION_HEADER = "X-Ledger-Client-Version"
DEFAULT_TIMEOUT_SECONDS = 15.0

logger = get_logger("ledger_rpc.infrastructure.http")


def fixed_headers() -> dict[str, str]:
    """Headers sent with every request."""
    return {
        "Content-Type": "application/json",
        CLIENT_VERSION_HEADER: __version__,
    }


def merge_headers(
    extra: Mapping[str, str] | None, *, allow_override: bool = False
) -> httpx.Headers:
    """Merge caller headers with the fixed pair, case-insensitively.

    Caller values win only when `allow_override` is set.
    """
    if allow_override:
        merged = httpx.Headers(fixed_headers())
        merged.update(extra or {})
    else:
        merged = httpx.Headers(extra or {})
        merged.update(fixed_headers())
    return merged


def is_client_error(status_code: int) -> bool:
    return 400 <= status_code < 500


class GatedHttpClient(HttpFetcher):
    """HTTP GET with per-attempt admission control and bounded retries.

    Classification per attempt:
    - 2xx: returned
    - 4xx: returned at once, never retried
    - any other status: ServerResponseError, retried
    - transport errors listed by the retry policy: retried; those that look
      like resource exhaustion also arm the gate's global cooldown
    - anything else: raised immediately

    When retries run out the last error is raised.
    """

    def __init__(
        self,
        *,
        session: httpx.AsyncClient,
        gate: AdmissionControl | None = None,
        retry_policy: RetryPolicy | None = None,
        headers: Mapping[str, str] | None = None,
        allow_header_override: bool = False,
        verbose: bool = False,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.session = session
        self.gate = gate or shared_admission_gate()
        self.retry_policy = retry_policy or RetryPolicyImpl()
        self.default_headers = dict(headers or {})
        self.allow_header_override = allow_header_override
        self.verbose = verbose
        self._sleep = sleep

    @override
    async def get(
        self, url: str, *, headers: Mapping[str, str] | None = None
    ) -> httpx.Response:
        """Fetch `url`, retrying transient failures.

        Raises:
            ServerResponseError: If every attempt got a retryable non-OK status
            httpx.RequestError: If every attempt failed at the transport level
        """
        request_headers = merge_headers(
            {**self.default_headers, **(headers or {})},
            allow_override=self.allow_header_override,
        )
        attempt = 0
        while True:
            # Failures are classified before the slot is released so a cooldown
            # is armed before the next waiter is admitted.
            async with self.gate.slot():
                try:
                    response = await self.session.get(url, headers=request_headers)
                    if is_client_error(response.status_code) or response.is_success:
                        return response
                    raise ServerResponseError(response.status_code, response.reason_phrase, url)
                except Exception as exc:
                    if not self.retry_policy.is_retryable(exc):
                        raise
                    self._note_failure(exc, url=url, attempt=attempt)
                    if attempt >= self.retry_policy.max_retries:
                        raise

            # Backoff happens outside the slot so waiting callers can proceed.
            delay = self.retry_policy.compute_backoff(attempt)
            attempt += 1
            logger.log(
                verbose_level(self.verbose),
                "Retry attempt %s for %s after %.2fs delay",
                attempt,
                url,
                delay,
            )
            await self._sleep(delay)

    def _note_failure(self, error: Exception, *, url: str, attempt: int) -> None:
        if is_resource_exhaustion_error(error):
            self.gate.trigger_exhaustion_backoff()
            # Only the first attempt is logged to avoid a flood during an outage.
            if attempt == 0:
                logger.log(verbose_level(self.verbose), "Resource exhaustion on %s: %s", url, error)
            return
        logger.log(
            verbose_level(self.verbose),
            "Request failed (attempt %s/%s) for %s: %s",
            attempt + 1,
            self.retry_policy.max_retries + 1,
            url,
            error,
        )

    @override
    async def aclose(self) -> None:
        await self.session.aclose()
