"""
Session cut-over migration.

Moves live sessions from a namespaced key-value cache into the
relational session table, once, and safely re-runnable.
"""

from .codecs import HashPayloadCodec, JsonPayloadCodec, get_codec
from .enumerator import KeyEnumerator
from .reader import RecordReader
from .runner import MigrationRunner, migrate_from_config, migrate_sessions
from .transformer import Transformer, parse_timestamp
from .types import KeyResult, MigrationOutcome, MigrationReport

__all__ = [
    "KeyEnumerator",
    "RecordReader",
    "Transformer",
    "MigrationRunner",
    "migrate_sessions",
    "migrate_from_config",
    "MigrationOutcome",
    "KeyResult",
    "MigrationReport",
    "JsonPayloadCodec",
    "HashPayloadCodec",
    "get_codec",
    "parse_timestamp",
]
