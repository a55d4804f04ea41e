"""JSON Schema validation for inbound chat events."""

from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator, ValidationError

from .exceptions import InvalidRequest

_CHAT_BODY = {
    "type": {"type": ["string", "null"]},
    "text": {"type": ["string", "null"]},
    "data": {"type": ["string", "null"]},
}

SCHEMAS: dict[str, dict[str, Any]] = {
    "set nickname": {"type": "string", "minLength": 1},
    "chat public": {
        "anyOf": [
            {"type": "string"},
            {"type": "object", "properties": _CHAT_BODY},
        ],
    },
    "chat private": {
        "type": "object",
        "required": ["target"],
        "properties": {**_CHAT_BODY, "target": {"type": "string"}},
    },
    "chat group": {
        "type": "object",
        "required": ["groupName"],
        "properties": {**_CHAT_BODY, "groupName": {"type": "string"}},
    },
    "create group": {
        "type": "object",
        "required": ["groupName", "members"],
        "properties": {
            "groupName": {"type": "string"},
            "members": {"type": "array", "items": {"type": "string"}},
        },
    },
    "typing": {
        "type": "object",
        "required": ["type"],
        "properties": {
            "type": {"enum": ["public", "private", "group"]},
            "target": {"type": ["string", "null"]},
        },
    },
}

_VALIDATORS = {name: Draft7Validator(schema) for name, schema in SCHEMAS.items()}


def validate_event_payload(event: str, payload: Any) -> None:
    """Validate an inbound payload against the schema of its event name.

    Raises:
        InvalidRequest: the payload does not match.
        KeyError: ``event`` is not a known inbound event.
    """

    validator = _VALIDATORS[event]
    try:
        validator.validate(payload)
    except ValidationError as exc:
        raise InvalidRequest(f'Invalid payload for "{event}": {exc.message}', cause=exc) from exc


__all__ = ["SCHEMAS", "validate_event_payload"]
