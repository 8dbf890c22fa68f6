"""Literal parsing for mapping values.

Mapping values come back as typed literals such as ``1u8``, ``1000000u64``,
``12345field`` or ``true``. Only the suffix is recognised here; what a value
means is left to the caller.

Usage example:
    from ledger_rpc.domain.values import parse_u64

    locked = parse_u64("1000000u64")  # 1000000
"""

from __future__ import annotations

import re

_UINT_PATTERNS = {
    bits: re.compile(rf"(\d+)u{bits}(?!\d)") for bits in (8, 16, 32, 64)
}
_LITERAL_PATTERN = re.compile(r"^(\d+)(u8|u16|u32|u64|field)$")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().strip('"').strip()
    if not cleaned or cleaned == "null":
        return None
    return cleaned


def _parse_uint(value: str | None, bits: int) -> int | None:
    cleaned = _clean(value)
    if cleaned is None:
        return None
    match = _UINT_PATTERNS[bits].search(cleaned)
    if match is None:
        return None
    return int(match.group(1))


def parse_u8(value: str | None) -> int | None:
    return _parse_uint(value, 8)


def parse_u16(value: str | None) -> int | None:
    return _parse_uint(value, 16)


def parse_u32(value: str | None) -> int | None:
    return _parse_uint(value, 32)


def parse_u64(value: str | None) -> int | None:
    return _parse_uint(value, 64)


def parse_field(value: str | None) -> int | None:
    cleaned = _clean(value)
    if cleaned is None:
        return None
    match = re.fullmatch(r"(\d+)field", cleaned)
    return int(match.group(1)) if match else None


def parse_bool(value: str | None) -> bool | None:
    cleaned = _clean(value)
    if cleaned == "true":
        return True
    if cleaned == "false":
        return False
    return None


def parse_literal(value: str | None) -> int | bool | None:
    """Parse any supported literal; unsupported text yields None."""
    cleaned = _clean(value)
    if cleaned is None:
        return None
    boolean = parse_bool(cleaned)
    if boolean is not None:
        return boolean
    match = _LITERAL_PATTERN.match(cleaned)
    if match is None:
        return None
    return int(match.group(1))
