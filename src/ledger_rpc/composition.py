"""Composition root for wiring CLI dependencies."""

from __future__ import annotations

import httpx

from .application.ledger_client import LedgerClient
from .cli import CliDependencies, create_app
from .config import LedgerConfig
from .infrastructure import GatedHttpClient
from .protocols import AdmissionControl


def build_ledger_client(
    config: LedgerConfig,
    *,
    gate: AdmissionControl | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LedgerClient:
    """Build a ledger client from configuration.

    Args:
        config: Ledger client configuration.
        gate: Admission gate to use; the process-wide gate when omitted.
        transport: Optional httpx transport (used by tests to avoid real sockets).
    """
    session = httpx.AsyncClient(
        timeout=config.timeout_seconds, transport=transport, follow_redirects=True
    )
    http = GatedHttpClient(
        session=session,
        gate=gate,
        retry_policy=config.retry_policy(),
        verbose=config.verbose,
    )
    return LedgerClient(
        config.base_url,
        config.network,
        http=http,
        ttls=config.cache_ttls(),
        verbose=config.verbose,
    )


def build_cli_dependencies(*, config: LedgerConfig) -> CliDependencies:
    """Build concrete dependencies for CLI commands."""
    return CliDependencies(reader=build_ledger_client(config))


app = create_app(build_cli_dependencies)
