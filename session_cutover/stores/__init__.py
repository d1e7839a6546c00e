"""
Store abstraction layer.

Source stores expose the cached sessions being migrated; destination
stores receive the canonical records. Each implementation follows the
same interface so the migration can run against any pair.
"""

from .base import DestinationStore, SourcePayload, SourceStore
from .memory import InMemoryDestinationStore, InMemorySourceStore
from .redis_source import RedisSourceConfig, RedisSourceStore
from .sqlite import SQLiteDestinationConfig, SQLiteDestinationStore

__all__ = [
    # Interfaces
    "SourceStore",
    "DestinationStore",
    "SourcePayload",
    # Redis source
    "RedisSourceStore",
    "RedisSourceConfig",
    # SQLite destination
    "SQLiteDestinationStore",
    "SQLiteDestinationConfig",
    # In-memory
    "InMemorySourceStore",
    "InMemoryDestinationStore",
]
