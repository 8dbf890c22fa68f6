"""Concrete infrastructure implementations and shared helpers."""

from .admission import (
    MAX_CONCURRENT_REQUESTS,
    RESOURCE_EXHAUSTION_COOLDOWN_SECONDS,
    AdmissionGate,
    shared_admission_gate,
)
from .cache import CacheLookup, CacheTtls, TtlCache, cache_key
from .http import CLIENT_VERSION_HEADER, GatedHttpClient, merge_headers
from .resilience import RetryPolicy, is_resource_exhaustion_error

__all__ = [
    "CLIENT_VERSION_HEADER",
    "MAX_CONCURRENT_REQUESTS",
    "RESOURCE_EXHAUSTION_COOLDOWN_SECONDS",
    "AdmissionGate",
    "CacheLookup",
    "CacheTtls",
    "GatedHttpClient",
    "RetryPolicy",
    "TtlCache",
    "cache_key",
    "is_resource_exhaustion_error",
    "merge_headers",
    "shared_admission_gate",
]
