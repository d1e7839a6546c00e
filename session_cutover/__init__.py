"""
Session Cut-over

One-time migration of live sessions from a Redis cache namespace into
a relational session table.

Usage:

    >>> from session_cutover import migrate_sessions
    >>> from session_cutover.stores import RedisSourceStore, SQLiteDestinationStore
    >>> source = await RedisSourceStore.create()
    >>> async with await SQLiteDestinationStore.create() as destination:
    ...     report = await migrate_sessions(source, destination, prefix="session:")
    ...     print(report.summary())
    ...     for key, reason in report.failures:
    ...         print(key, reason)

Re-running is safe: sessions already present at the destination are
reported as skipped duplicates and left untouched.
"""

from .config import MigrationConfig
from .exceptions import (
    ConfigurationError,
    PersistenceError,
    SessionDecodeError,
    SessionStorageError,
    SessionValidationError,
    StoreUnavailableError,
)
from .migration import (
    KeyEnumerator,
    KeyResult,
    MigrationOutcome,
    MigrationReport,
    MigrationRunner,
    RecordReader,
    Transformer,
    migrate_from_config,
    migrate_sessions,
)
from .models import ABSENT, CanonicalSessionRecord, RawSessionValue, UpsertResult
from .stores import (
    DestinationStore,
    InMemoryDestinationStore,
    InMemorySourceStore,
    RedisSourceConfig,
    RedisSourceStore,
    SourceStore,
    SQLiteDestinationConfig,
    SQLiteDestinationStore,
)

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "migrate_sessions",
    "migrate_from_config",
    "MigrationConfig",
    # Pipeline
    "KeyEnumerator",
    "RecordReader",
    "Transformer",
    "MigrationRunner",
    # Results
    "MigrationOutcome",
    "KeyResult",
    "MigrationReport",
    # Data
    "ABSENT",
    "CanonicalSessionRecord",
    "RawSessionValue",
    "UpsertResult",
    # Stores
    "SourceStore",
    "DestinationStore",
    "RedisSourceStore",
    "RedisSourceConfig",
    "SQLiteDestinationStore",
    "SQLiteDestinationConfig",
    "InMemorySourceStore",
    "InMemoryDestinationStore",
    # Exceptions
    "SessionStorageError",
    "StoreUnavailableError",
    "SessionDecodeError",
    "SessionValidationError",
    "PersistenceError",
    "ConfigurationError",
]
