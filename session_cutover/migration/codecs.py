"""
Payload codecs for cached sessions.

A codec knows which kind of value to ask the source for and how to
turn that raw payload into a field mapping.

Formats:
- json: the key holds a UTF-8 JSON object (GET)
- hash: the key holds a Redis hash (HGETALL); each field value is
  parsed as JSON when it is valid JSON and kept as a string otherwise

NaN and Infinity are not JSON and are never decoded to floats.
"""

from __future__ import annotations

import json
from typing import Any

from ..exceptions import ConfigurationError, SessionDecodeError
from ..models import RawSessionValue
from ..stores.base import SourcePayload


def _to_text(key: str, value: Any) -> str:
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SessionDecodeError(key, f"payload is not valid UTF-8: {e}") from e
    if isinstance(value, str):
        return value
    raise SessionDecodeError(key, f"unexpected payload type {type(value).__name__}")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


class JsonPayloadCodec:
    """Decodes string values holding a JSON object."""

    name = "json"
    value_kind = "string"

    def decode(self, key: str, payload: SourcePayload) -> RawSessionValue:
        if isinstance(payload, dict):
            # Already structured (e.g. captured fixtures)
            return dict(payload)

        text = _to_text(key, payload)
        try:
            value = json.loads(text, parse_constant=_reject_constant)
        except ValueError as e:
            raise SessionDecodeError(key, f"invalid JSON: {e}") from e

        if not isinstance(value, dict):
            raise SessionDecodeError(key, f"expected a JSON object, got {type(value).__name__}")
        return value


class HashPayloadCodec:
    """Decodes Redis hash values into a field mapping."""

    name = "hash"
    value_kind = "hash"

    def decode(self, key: str, payload: SourcePayload) -> RawSessionValue:
        if not isinstance(payload, dict):
            raise SessionDecodeError(key, f"expected a hash, got {type(payload).__name__}")

        fields: RawSessionValue = {}
        for raw_name, raw_value in payload.items():
            name = _to_text(key, raw_name)
            if not isinstance(raw_value, (bytes, str)):
                fields[name] = raw_value
                continue
            text = _to_text(key, raw_value)
            try:
                fields[name] = json.loads(text, parse_constant=_reject_constant)
            except ValueError:
                fields[name] = text
        return fields


PayloadCodec = JsonPayloadCodec | HashPayloadCodec

_CODECS: dict[str, type[JsonPayloadCodec] | type[HashPayloadCodec]] = {
    JsonPayloadCodec.name: JsonPayloadCodec,
    HashPayloadCodec.name: HashPayloadCodec,
}

PAYLOAD_FORMATS = tuple(_CODECS)


def get_codec(payload_format: str) -> PayloadCodec:
    """Look up the codec for a payload format name."""
    try:
        return _CODECS[payload_format]()
    except KeyError:
        raise ConfigurationError(
            "payload_format",
            f"must be one of {', '.join(PAYLOAD_FORMATS)}",
            payload_format,
        ) from None
