"""
Migration runner for moving cached sessions into the relational store.

Enumerates every key under the namespace prefix, then reads, transforms
and writes each key as an independent unit. Only a failure to enumerate
aborts the run; every other problem is recorded against its key.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from ..config import MigrationConfig
from ..logging_utils import MigrationLoggerAdapter
from ..models import ABSENT, UpsertResult
from ..stores.base import DestinationStore, SourceStore
from ..stores.redis_source import RedisSourceStore
from ..stores.sqlite import SQLiteDestinationStore
from .codecs import get_codec
from .enumerator import KeyEnumerator
from .reader import RecordReader
from .transformer import Transformer
from .types import KeyResult, MigrationOutcome, MigrationReport

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[KeyResult, int, int], None]


class MigrationRunner:
    """Runs the cut-over from a source store into a destination store.

    Re-running after a partial or complete run is safe: sessions already
    present at the destination are reported as SKIPPED_DUPLICATE and never
    overwritten, so writes made by live traffic since then survive.
    """

    def __init__(
        self,
        source: SourceStore,
        destination: DestinationStore,
        config: MigrationConfig | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            source: Store holding the cached sessions
            destination: Store receiving canonical records
            config: Migration settings (defaults to MigrationConfig())
        """
        self.source = source
        self.destination = destination
        self.config = (config or MigrationConfig()).validate()
        self.enumerator = KeyEnumerator(source)
        self.reader = RecordReader(source, get_codec(self.config.payload_format))

    def transformer_for(self, prefix: str) -> Transformer:
        return Transformer(
            prefix,
            identity_fields=self.config.identity_fields,
            created_at_field=self.config.created_at_field,
            updated_at_field=self.config.updated_at_field,
        )

    async def run(
        self,
        prefix: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> MigrationReport:
        """Migrate every session under prefix.

        Args:
            prefix: Namespace prefix (defaults to config.prefix)
            on_progress: Optional callback(result, index, total)

        Returns:
            Report with one result per enumerated key

        Raises:
            StoreUnavailableError: The source could not be enumerated.
                Nothing has been written when this is raised.
        """
        prefix = prefix or self.config.prefix
        transformer = self.transformer_for(prefix)
        log = MigrationLoggerAdapter(logger, {"prefix": prefix, "dry_run": self.config.dry_run})

        # The whole key list is known before the first write
        keys = await self.enumerator.collect(prefix)

        report = MigrationReport(
            prefix=prefix,
            dry_run=self.config.dry_run,
            total_keys=len(keys),
            started_at=datetime.now(UTC),
        )
        log.info(f"Migrating {len(keys)} sessions (concurrency {self.config.concurrency})")

        if self.config.concurrency == 1:
            for index, key in enumerate(keys, start=1):
                result = await self.migrate_key(key, transformer)
                self._record(report, result, index, on_progress, log)
        else:
            await self._run_concurrently(keys, transformer, report, on_progress, log)

        report.completed_at = datetime.now(UTC)
        log.info(
            f"Migration finished: {report.migrated} migrated, "
            f"{report.skipped_duplicate} already present, "
            f"{report.skipped_missing} expired, {report.failed} failed",
            extra={"summary": report.summary()},
        )
        return report

    async def migrate_key(self, key: str, transformer: Transformer | None = None) -> KeyResult:
        """Read, transform and persist a single key.

        Never raises: any failure is captured in the returned result.
        """
        transformer = transformer or self.transformer_for(self.config.prefix)
        result = KeyResult(key=key, outcome=MigrationOutcome.FAILED)
        result.started_at = datetime.now(UTC)

        try:
            value = await self.reader.read(key)
            if value is ABSENT:
                result.outcome = MigrationOutcome.SKIPPED_MISSING
            else:
                record = transformer.transform(key, value)
                result.session_id = record.session_id

                if self.config.dry_run:
                    present = await self.destination.exists(record.session_id)
                else:
                    present = (
                        await self.destination.upsert_if_absent(record)
                    ) == UpsertResult.ALREADY_EXISTS

                if present:
                    result.outcome = MigrationOutcome.SKIPPED_DUPLICATE
                else:
                    result.outcome = MigrationOutcome.MIGRATED

        except Exception as e:
            result.outcome = MigrationOutcome.FAILED
            result.reason = str(e)
            result.error_type = type(e).__name__

        result.completed_at = datetime.now(UTC)
        return result

    async def _run_concurrently(
        self,
        keys: list[str],
        transformer: Transformer,
        report: MigrationReport,
        on_progress: ProgressCallback | None,
        log: MigrationLoggerAdapter,
    ) -> None:
        semaphore = asyncio.Semaphore(self.config.concurrency)
        completed = 0

        async def worker(key: str) -> None:
            nonlocal completed
            async with semaphore:
                result = await self.migrate_key(key, transformer)
            # Single event loop: each result is appended exactly once
            completed += 1
            self._record(report, result, completed, on_progress, log)

        await asyncio.gather(*(worker(key) for key in keys))

    @staticmethod
    def _record(
        report: MigrationReport,
        result: KeyResult,
        index: int,
        on_progress: ProgressCallback | None,
        log: MigrationLoggerAdapter,
    ) -> None:
        report.add_result(result)
        log.key_result(result)

        if on_progress:
            on_progress(result, index, report.total_keys)


async def migrate_sessions(
    source: SourceStore,
    destination: DestinationStore,
    prefix: str = "session:",
    on_progress: ProgressCallback | None = None,
    **options: object,
) -> MigrationReport:
    """Single entry point for callers such as schema-migration tools.

    Args:
        source: Store holding the cached sessions
        destination: Store receiving canonical records
        prefix: Namespace prefix of the session keys
        on_progress: Optional callback(result, index, total)
        **options: Any other MigrationConfig field

    Returns:
        The run's report. Deciding whether failures should abort a
        surrounding deployment step is up to the caller.
    """
    config = MigrationConfig(prefix=prefix, **options)  # type: ignore[arg-type]
    runner = MigrationRunner(source, destination, config)
    return await runner.run(on_progress=on_progress)


async def migrate_from_config(
    config: MigrationConfig,
    on_progress: ProgressCallback | None = None,
) -> MigrationReport:
    """Connect to Redis and SQLite as configured and run the migration."""
    config.validate()
    source = await RedisSourceStore.create(config.redis_config())
    try:
        destination = await SQLiteDestinationStore.create(config.sqlite_config())
        try:
            runner = MigrationRunner(source, destination, config)
            return await runner.run(on_progress=on_progress)
        finally:
            await destination.close()
    finally:
        await source.close()
