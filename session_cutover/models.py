"""
Session data shapes shared by the stores and the migration.

A session lives in the source cache as a raw field mapping under a
namespaced key and lands in the destination as a CanonicalSessionRecord.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from .exceptions import SessionValidationError

# Field mapping decoded from a cached session payload
RawSessionValue = dict[str, Any]


class _Absent(Enum):
    ABSENT = "absent"

    def __repr__(self) -> str:
        return "ABSENT"


# Returned by readers when a key expired between listing and reading
ABSENT = _Absent.ABSENT
AbsentType = Literal[_Absent.ABSENT]


class UpsertResult(Enum):
    """Outcome of an insert-if-absent write."""

    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"


def canonical_json(data: Any) -> str:
    """Serialize to JSON with a stable key order and no whitespace."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=str,
    )


@dataclass(frozen=True)
class CanonicalSessionRecord:
    """A session in its destination shape.

    created_at/updated_at are None when the source carried no usable
    timestamp; destinations stamp those with the insert time.
    """

    session_id: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.session_id, str) or not self.session_id:
            raise SessionValidationError("session_id must be a non-empty string", field="session_id")

    def data_json(self) -> str:
        """Serialize data canonically (equal records give equal strings)."""
        return canonical_json(self.data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "session_id": self.session_id,
            "data": self.data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
