"""Custom exceptions for the ledger RPC client.

These exceptions separate terminal client errors from retryable server and
transport failures so that callers can decide how to surface each one.
"""

from __future__ import annotations

_BODY_PREVIEW_LIMIT = 200


class LedgerRpcError(Exception):
    """Base exception for all ledger RPC errors."""

    pass


class RequestFailedError(LedgerRpcError):
    """Raised when the node answers with a terminal 4xx status.

    Retrying cannot help; the status code is preserved for the caller.
    """

    def __init__(self, status_code: int, url: str, message: str | None = None) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message or f"Request failed with HTTP {status_code}: {url}")


class ProgramNotFoundError(RequestFailedError):
    """Raised when a program lookup returns 404."""

    def __init__(self, program_id: str, url: str) -> None:
        self.program_id = program_id
        super().__init__(404, url, f"Program not found: {program_id}")


class ServerResponseError(LedgerRpcError):
    """Raised for a non-OK response that is worth retrying (5xx and friends)."""

    def __init__(self, status_code: int, reason: str, url: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.url = url
        super().__init__(f"HTTP {status_code}: {reason} ({url})")


class MalformedResponseError(LedgerRpcError):
    """Raised when a reachable node returns a body that cannot be parsed."""

    def __init__(self, what: str, body: str) -> None:
        preview = " ".join(body.split())
        if len(preview) > _BODY_PREVIEW_LIMIT:
            preview = preview[:_BODY_PREVIEW_LIMIT] + "..."
        self.what = what
        self.body_preview = preview
        super().__init__(f"Malformed {what} response: {preview!r}")


class JsonObjectExpectedError(MalformedResponseError):
    """Raised when a structured response is not a JSON object."""

    @classmethod
    def for_response(cls, what: str, body: str) -> JsonObjectExpectedError:
        return cls(f"{what} (expected a JSON object)", body)


class InvalidRetryPolicyError(LedgerRpcError, ValueError):
    """Raised when a retry policy is configured with impossible values."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid retry policy: {detail}")


class UnknownNetworkProfileError(LedgerRpcError, ValueError):
    """Raised when a network profile name is not recognised."""

    def __init__(self, name: str, known: tuple[str, ...]) -> None:
        super().__init__(f"Unknown network profile {name!r}. Expected one of: {', '.join(known)}.")


class ConfigFileNotFoundError(LedgerRpcError):
    """Raised when a config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(LedgerRpcError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} is not valid TOML: {detail}")


class ConfigFileValidationError(LedgerRpcError):
    """Raised when a config file fails schema validation."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Config file {path} is invalid: {detail}")
