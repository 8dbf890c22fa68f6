"""Tri-state lookup results.

A read against the ledger can end three ways: the value exists, the node
confirmed it does not exist, or the node could not be asked. `Lookup` keeps
those apart so callers never confuse "no such key" with "network down".

Usage example:
    from ledger_rpc.domain.lookup import Lookup

    result = Lookup.found("1u8")
    if result.is_found:
        print(result.value)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class LookupStatus(StrEnum):
    """Outcome of a single ledger read."""

    FOUND = "found"
    ABSENT = "absent"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Lookup[ValueT]:
    """Result of a ledger read: a value, a confirmed absence, or an unknown."""

    status: LookupStatus
    value: ValueT | None = None
    error: Exception | None = None

    @classmethod
    def found(cls, value: ValueT) -> Lookup[ValueT]:
        return cls(status=LookupStatus.FOUND, value=value)

    @classmethod
    def absent(cls) -> Lookup[ValueT]:
        return cls(status=LookupStatus.ABSENT)

    @classmethod
    def unavailable(cls, error: Exception) -> Lookup[ValueT]:
        return cls(status=LookupStatus.UNAVAILABLE, error=error)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def is_absent(self) -> bool:
        return self.status is LookupStatus.ABSENT

    @property
    def is_unavailable(self) -> bool:
        return self.status is LookupStatus.UNAVAILABLE

    def value_or_none(self) -> ValueT | None:
        """Collapse to the display-oriented nullable shape."""
        return self.value if self.is_found else None
