"""
Migration types and data structures.

Defines the per-key results and the run report produced while
moving cached sessions into the relational store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class MigrationOutcome(Enum):
    """Outcome of migrating a single key."""

    MIGRATED = "migrated"
    SKIPPED_MISSING = "skipped_missing"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    FAILED = "failed"


@dataclass
class KeyResult:
    """Result of migrating a single source key.

    reason and error_type are only set for FAILED results.
    """

    key: str
    outcome: MigrationOutcome
    session_id: str | None = None
    reason: str | None = None
    error_type: str | None = None

    # Timing
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Calculate processing duration."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "key": self.key,
            "outcome": self.outcome.value,
            "session_id": self.session_id,
            "reason": self.reason,
            "error_type": self.error_type,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class MigrationReport:
    """Aggregate result of one migration run.

    Each key contributes exactly one KeyResult via add_result.
    The report lives only as long as the run that produced it.
    """

    prefix: str
    dry_run: bool = False
    total_keys: int = 0
    migrated: int = 0
    skipped_missing: int = 0
    skipped_duplicate: int = 0
    failed: int = 0
    results: list[KeyResult] = field(default_factory=list)

    # Timing
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def failures(self) -> list[tuple[str, str]]:
        """(key, reason) for every failed key."""
        return [
            (result.key, result.reason or "")
            for result in self.results
            if result.outcome == MigrationOutcome.FAILED
        ]

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def success_rate(self) -> float:
        """Share of keys that did not fail, as a percentage."""
        if self.total_keys == 0:
            return 100.0
        return ((self.total_keys - self.failed) / self.total_keys) * 100

    def count(self, outcome: MigrationOutcome) -> int:
        """Number of keys with the given outcome."""
        return {
            MigrationOutcome.MIGRATED: self.migrated,
            MigrationOutcome.SKIPPED_MISSING: self.skipped_missing,
            MigrationOutcome.SKIPPED_DUPLICATE: self.skipped_duplicate,
            MigrationOutcome.FAILED: self.failed,
        }[outcome]

    def add_result(self, result: KeyResult) -> None:
        """Add a key result to the report."""
        self.results.append(result)
        if result.outcome == MigrationOutcome.MIGRATED:
            self.migrated += 1
        elif result.outcome == MigrationOutcome.SKIPPED_MISSING:
            self.skipped_missing += 1
        elif result.outcome == MigrationOutcome.SKIPPED_DUPLICATE:
            self.skipped_duplicate += 1
        elif result.outcome == MigrationOutcome.FAILED:
            self.failed += 1

    def summary(self) -> dict[str, int]:
        """Counts per outcome."""
        return {
            "total_keys": self.total_keys,
            MigrationOutcome.MIGRATED.value: self.migrated,
            MigrationOutcome.SKIPPED_MISSING.value: self.skipped_missing,
            MigrationOutcome.SKIPPED_DUPLICATE.value: self.skipped_duplicate,
            MigrationOutcome.FAILED.value: self.failed,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "prefix": self.prefix,
            "dry_run": self.dry_run,
            **self.summary(),
            "success_rate": self.success_rate,
            "failures": [{"key": key, "reason": reason} for key, reason in self.failures],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "results": [result.to_dict() for result in self.results],
        }
