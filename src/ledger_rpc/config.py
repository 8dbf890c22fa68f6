"""Centralised, injectable configuration for the ledger RPC client."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from typing import Self

from dotenv import load_dotenv

from .config_file import LedgerConfigFile
from .exceptions import UnknownNetworkProfileError
from .infrastructure.cache import CacheTtls
from .infrastructure.resilience import RetryPolicy

DEFAULT_BASE_URL = "https://api.explorer.provable.com/v1"
DEFAULT_NETWORK = "testnet"
DEFAULT_PROFILE = "testnet"


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative integer.")


class PositiveNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


class BooleanEnvVarError(ValueError):
    """Raised when an environment variable must be a supported boolean."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a boolean value (true/false, 1/0, yes/no, on/off).")


@dataclass(frozen=True)
class NetworkProfile:
    """Well-known node endpoints for one network."""

    name: str
    network: str
    rpc_url: str
    explorer_url: str


NETWORK_PROFILES: dict[str, NetworkProfile] = {
    "mainnet": NetworkProfile(
        name="Mainnet",
        network="mainnet",
        rpc_url="https://api.explorer.aleo.org/v1",
        explorer_url="https://explorer.provable.com",
    ),
    "testnet": NetworkProfile(
        name="Testnet",
        network="testnet",
        rpc_url=DEFAULT_BASE_URL,
        explorer_url="https://explorer.provable.com",
    ),
    "localnet": NetworkProfile(
        name="Localnet",
        network="localnet",
        rpc_url="http://localhost:3030",
        explorer_url="http://localhost:3030",
    ),
}


def network_profile(name: str) -> NetworkProfile:
    """Return a known network profile by name (case-insensitive)."""
    key = name.strip().lower()
    if key not in NETWORK_PROFILES:
        raise UnknownNetworkProfileError(name, tuple(NETWORK_PROFILES))
    return NETWORK_PROFILES[key]


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable configuration for ledger clients.

    Load from environment with `LedgerConfig.from_env()` or construct directly for testing.
    """

    # Node
    base_url: str = DEFAULT_BASE_URL
    network: str = DEFAULT_NETWORK
    explorer_url: str = "https://explorer.provable.com"
    program_id: str = ""
    timeout_seconds: float = 15.0

    # Retries
    max_retries: int = 2
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    backoff_multiplier: float = 2.0

    # Cache lifetimes
    height_ttl_seconds: float = 5.0
    program_ttl_seconds: float = 60.0
    mapping_ttl_seconds: float = 10.0
    mapping_absent_ttl_seconds: float = 10.0

    verbose: bool = False

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        `LEDGER_PROFILE` picks the defaults for base URL, network and explorer;
        `LEDGER_BASE_URL` and `LEDGER_NETWORK` override them individually.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.
        """
        load_dotenv(dotenv_path)

        profile = network_profile(os.getenv("LEDGER_PROFILE", DEFAULT_PROFILE) or DEFAULT_PROFILE)
        return cls(
            base_url=os.getenv("LEDGER_BASE_URL", "").strip() or profile.rpc_url,
            network=os.getenv("LEDGER_NETWORK", "").strip() or profile.network,
            explorer_url=profile.explorer_url,
            program_id=os.getenv("LEDGER_PROGRAM_ID", "").strip(),
            timeout_seconds=_parse_positive_float(
                os.getenv("LEDGER_TIMEOUT_SECONDS", "15"), env_name="LEDGER_TIMEOUT_SECONDS"
            ),
            max_retries=_parse_non_negative_int(
                os.getenv("LEDGER_MAX_RETRIES", "2"), env_name="LEDGER_MAX_RETRIES"
            ),
            base_delay_seconds=_parse_positive_float(
                os.getenv("LEDGER_BASE_DELAY_SECONDS", "1"), env_name="LEDGER_BASE_DELAY_SECONDS"
            ),
            max_delay_seconds=_parse_positive_float(
                os.getenv("LEDGER_MAX_DELAY_SECONDS", "10"), env_name="LEDGER_MAX_DELAY_SECONDS"
            ),
            backoff_multiplier=_parse_positive_float(
                os.getenv("LEDGER_BACKOFF_MULTIPLIER", "2"), env_name="LEDGER_BACKOFF_MULTIPLIER"
            ),
            height_ttl_seconds=_parse_positive_float(
                os.getenv("LEDGER_HEIGHT_TTL_SECONDS", "5"), env_name="LEDGER_HEIGHT_TTL_SECONDS"
            ),
            program_ttl_seconds=_parse_positive_float(
                os.getenv("LEDGER_PROGRAM_TTL_SECONDS", "60"),
                env_name="LEDGER_PROGRAM_TTL_SECONDS",
            ),
            mapping_ttl_seconds=_parse_positive_float(
                os.getenv("LEDGER_MAPPING_TTL_SECONDS", "10"),
                env_name="LEDGER_MAPPING_TTL_SECONDS",
            ),
            mapping_absent_ttl_seconds=_parse_positive_float(
                os.getenv("LEDGER_MAPPING_ABSENT_TTL_SECONDS", "10"),
                env_name="LEDGER_MAPPING_ABSENT_TTL_SECONDS",
            ),
            verbose=_parse_optional_bool(os.getenv("LEDGER_VERBOSE", ""), env_name="LEDGER_VERBOSE")
            or False,
        )

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        network: str | None = None,
        program_id: str | None = None,
        max_retries: int | None = None,
        verbose: bool | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            base_url=self.base_url if base_url is None else base_url.strip(),
            network=self.network if network is None else network.strip(),
            program_id=self.program_id if program_id is None else program_id.strip(),
            max_retries=self.max_retries if max_retries is None else max_retries,
            verbose=self.verbose if verbose is None else verbose,
        )

    def with_file_overrides(self, file_config: LedgerConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        overrides = {
            name: value for name, value in asdict(file_config).items() if value is not None
        }
        return replace(self, **overrides)

    def with_profile(self, name: str) -> Self:
        """Return a new config pointed at a well-known network profile."""
        profile = network_profile(name)
        return replace(
            self,
            base_url=profile.rpc_url,
            network=profile.network,
            explorer_url=profile.explorer_url,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_seconds=self.base_delay_seconds,
            max_delay_seconds=self.max_delay_seconds,
            backoff_multiplier=self.backoff_multiplier,
        )

    def cache_ttls(self) -> CacheTtls:
        return CacheTtls(
            height=self.height_ttl_seconds,
            program=self.program_ttl_seconds,
            mapping=self.mapping_ttl_seconds,
            mapping_absent=self.mapping_absent_ttl_seconds,
        )

    def explorer_transaction_url(self, tx_id: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/transaction/{tx_id}"

    def explorer_program_url(self, program_id: str | None = None) -> str:
        return f"{self.explorer_url.rstrip('/')}/program/{program_id or self.program_id}"


def _parse_non_negative_int(value: str, *, env_name: str) -> int:
    """Parse a non-negative integer from an environment variable."""
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_positive_float(value: str, *, env_name: str) -> float:
    """Parse a positive number from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise PositiveNumberEnvVarError(env_name) from exc
    if parsed <= 0:
        raise PositiveNumberEnvVarError(env_name)
    return parsed


def _parse_optional_bool(value: str, *, env_name: str) -> bool | None:
    """Parse an optional boolean from an environment variable."""
    text = value.strip().lower()
    if not text:
        return None
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise BooleanEnvVarError(env_name)
