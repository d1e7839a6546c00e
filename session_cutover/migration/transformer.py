"""
Conversion of cached sessions into canonical records.

The transform is pure: no I/O, inputs are left untouched, and the same
(key, value) pair always produces an equal record. Re-runs rely on this
to land on the same session_id every time.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from ..exceptions import SessionValidationError
from ..models import CanonicalSessionRecord, RawSessionValue

DEFAULT_IDENTITY_FIELDS = ("session_id",)

# Epoch values above this are taken to be milliseconds
_EPOCH_MS_THRESHOLD = 100_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 string or epoch number into an aware datetime.

    Returns None for anything that is not a recognizable timestamp.
    Naive values are taken to be UTC.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed

    return None


class Transformer:
    """
    Builds CanonicalSessionRecords from (key, fields) pairs.

    Args:
        prefix: Namespace prefix stripped from keys to form session_id
        identity_fields: Fields that repeat the key's identity inside the
            payload; they are dropped from data
        created_at_field: Source field holding the creation time, if any
        updated_at_field: Source field holding the last update time, if any
    """

    def __init__(
        self,
        prefix: str,
        identity_fields: Iterable[str] = DEFAULT_IDENTITY_FIELDS,
        created_at_field: str | None = None,
        updated_at_field: str | None = None,
    ):
        if not prefix:
            raise SessionValidationError("namespace prefix must not be empty", field="prefix")
        self.prefix = prefix
        self.identity_fields = tuple(identity_fields)
        self.created_at_field = created_at_field
        self.updated_at_field = updated_at_field

    def session_id_for(self, key: str) -> str:
        """Strip the namespace prefix from key."""
        if not key.startswith(self.prefix):
            raise SessionValidationError(
                f"Key {key!r} is outside namespace {self.prefix!r}", field="session_id"
            )
        session_id = key[len(self.prefix):]
        if not session_id:
            raise SessionValidationError(f"Key {key!r} has an empty session id", field="session_id")
        if session_id.startswith(self.prefix):
            raise SessionValidationError(
                f"Key {key!r} repeats namespace {self.prefix!r} in its session id",
                field="session_id",
            )
        return session_id

    def transform(self, key: str, value: RawSessionValue) -> CanonicalSessionRecord:
        session_id = self.session_id_for(key)

        for name in self.identity_fields:
            if name in value and not self._matches_identity(value[name], key, session_id):
                raise SessionValidationError(
                    f"Field {name!r} ({value[name]!r}) does not match key {key!r}",
                    field=name,
                )

        data = {
            name: copy.deepcopy(field_value)
            for name, field_value in value.items()
            if name not in self.identity_fields
        }

        created_at = self._timestamp(value, self.created_at_field)
        updated_at = self._timestamp(value, self.updated_at_field) or created_at

        return CanonicalSessionRecord(
            session_id=session_id,
            data=data,
            created_at=created_at,
            updated_at=updated_at,
        )

    @staticmethod
    def _matches_identity(embedded: Any, key: str, session_id: str) -> bool:
        # Hash fields and JSON numbers may carry the id as an int
        if isinstance(embedded, bool) or not isinstance(embedded, (str, int)):
            return False
        return str(embedded) in (session_id, key)

    @staticmethod
    def _timestamp(value: RawSessionValue, field_name: str | None) -> datetime | None:
        if not field_name or field_name not in value:
            return None
        return parse_timestamp(value[field_name])
