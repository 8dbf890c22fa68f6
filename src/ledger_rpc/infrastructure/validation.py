"""Pydantic-based validation helpers for inbound response bodies."""

from __future__ import annotations

from pydantic import TypeAdapter, ValidationError

from ..exceptions import JsonObjectExpectedError, MalformedResponseError

_JSON_OBJECT = TypeAdapter(dict[str, object])


def parse_json_object(body: str, *, what: str) -> dict[str, object]:
    """Parse a response body that must be a JSON object."""
    try:
        return _JSON_OBJECT.validate_json(body)
    except ValidationError as exc:
        raise JsonObjectExpectedError.for_response(what, body) from exc


def parse_height(body: str) -> int:
    """Parse the plain-text integer returned by the height endpoint."""
    text = body.strip().strip('"')
    try:
        height = int(text)
    except ValueError as exc:
        raise MalformedResponseError("height", body) from exc
    if height < 0:
        raise MalformedResponseError("height", body)
    return height
