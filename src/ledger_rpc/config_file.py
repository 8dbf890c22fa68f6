"""Typed parsing and validation for ledger client config files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class LedgerConfigFile:
    """Validated ledger client values loaded from a TOML file.

    Field names match `LedgerConfig`; `None` means "not set in the file".
    """

    base_url: str | None = None
    network: str | None = None
    program_id: str | None = None
    timeout_seconds: float | None = None
    max_retries: int | None = None
    base_delay_seconds: float | None = None
    max_delay_seconds: float | None = None
    backoff_multiplier: float | None = None
    height_ttl_seconds: float | None = None
    program_ttl_seconds: float | None = None
    mapping_ttl_seconds: float | None = None
    mapping_absent_ttl_seconds: float | None = None
    verbose: bool | None = None


class _LedgerSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str | None = None
    network: str | None = None
    program_id: str | None = None
    timeout_seconds: float | None = None
    max_retries: int | None = None
    base_delay_seconds: float | None = None
    max_delay_seconds: float | None = None
    backoff_multiplier: float | None = None
    height_ttl_seconds: float | None = None
    program_ttl_seconds: float | None = None
    mapping_ttl_seconds: float | None = None
    mapping_absent_ttl_seconds: float | None = None
    verbose: bool | None = None

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip().rstrip("/")
        if not text.startswith(("http://", "https://")):
            raise ValueError
        return text

    @field_validator("network", "program_id")
    @classmethod
    def _validate_non_empty_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            raise ValueError
        return text

    @field_validator("max_retries")
    @classmethod
    def _validate_non_negative_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value

    @field_validator(
        "timeout_seconds",
        "base_delay_seconds",
        "max_delay_seconds",
        "height_ttl_seconds",
        "program_ttl_seconds",
        "mapping_ttl_seconds",
        "mapping_absent_ttl_seconds",
    )
    @classmethod
    def _validate_positive_seconds(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0:
            raise ValueError
        return value

    @field_validator("backoff_multiplier")
    @classmethod
    def _validate_multiplier(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 1.0:
            raise ValueError
        return value


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    ledger: _LedgerSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_ledger_config_file(path: Path) -> LedgerConfigFile:
    """Load and validate a ledger client TOML config file."""
    if not path.is_file():
        raise ConfigFileNotFoundError(str(path))

    raw_payload = path.read_text(encoding="utf-8")
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    section = model.ledger
    return LedgerConfigFile(
        base_url=section.base_url,
        network=section.network,
        program_id=section.program_id,
        timeout_seconds=section.timeout_seconds,
        max_retries=section.max_retries,
        base_delay_seconds=section.base_delay_seconds,
        max_delay_seconds=section.max_delay_seconds,
        backoff_multiplier=section.backoff_multiplier,
        height_ttl_seconds=section.height_ttl_seconds,
        program_ttl_seconds=section.program_ttl_seconds,
        mapping_ttl_seconds=section.mapping_ttl_seconds,
        mapping_absent_ttl_seconds=section.mapping_absent_ttl_seconds,
        verbose=section.verbose,
    )
