"""
Migration configuration.

Values come from keyword arguments, SESSION_CUTOVER_* environment
variables, or a YAML file such as:

    ```yaml
    migration:
      prefix: "session:"
      redis_url: "redis://cache.internal:6379/0"
      sqlite_path: "/var/lib/app/sessions.db"
      payload_format: json
      identity_fields: [session_id]
      created_at_field: created
      concurrency: 4
    ```
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .stores.redis_source import RedisSourceConfig
from .stores.sqlite import SQLiteDestinationConfig, validate_table_name

ENV_PREFIX = "SESSION_CUTOVER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in {"0", "false", "no", "off", ""}:
        return False
    raise ConfigurationError(name, "expected a boolean", value)


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(name, "expected an integer", value) from None


@dataclass
class MigrationConfig:
    """Configuration for a session cut-over run."""

    prefix: str = "session:"
    redis_url: str = "redis://localhost:6379/0"
    sqlite_path: str = "sessions.db"
    table: str = "sessions"
    payload_format: str = "json"
    identity_fields: tuple[str, ...] = field(default_factory=lambda: ("session_id",))
    created_at_field: str | None = None
    updated_at_field: str | None = None
    scan_count: int = 500
    socket_timeout: float | None = 10.0
    concurrency: int = 1
    dry_run: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.identity_fields, str):
            self.identity_fields = tuple(
                name.strip() for name in self.identity_fields.split(",") if name.strip()
            )
        else:
            self.identity_fields = tuple(self.identity_fields)

    @classmethod
    def from_env(cls) -> MigrationConfig:
        """Create config from environment variables."""
        env = os.environ
        kwargs: dict[str, Any] = {}

        for name in ("prefix", "redis_url", "sqlite_path", "table", "payload_format"):
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                kwargs[name] = value

        for name in ("created_at_field", "updated_at_field"):
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            if value:
                kwargs[name] = value

        identity = env.get(f"{ENV_PREFIX}IDENTITY_FIELDS")
        if identity is not None:
            kwargs["identity_fields"] = identity

        for name in ("scan_count", "concurrency"):
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                kwargs[name] = _parse_int(name, value)

        dry_run = env.get(f"{ENV_PREFIX}DRY_RUN")
        if dry_run is not None:
            kwargs["dry_run"] = _parse_bool("dry_run", dry_run)

        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> MigrationConfig:
        """Load config from a YAML file.

        Settings may sit at the top level or under a `migration:` key.
        """
        config_path = Path(path)
        try:
            content = yaml.safe_load(config_path.read_text()) or {}
        except FileNotFoundError:
            raise ConfigurationError("config_file", "file not found", str(config_path)) from None
        except yaml.YAMLError as e:
            raise ConfigurationError("config_file", f"invalid YAML: {e}", str(config_path)) from e

        if not isinstance(content, dict):
            raise ConfigurationError("config_file", "expected a mapping", str(config_path))

        section = content.get("migration", content)
        if not isinstance(section, dict):
            raise ConfigurationError("migration", "expected a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ConfigurationError("config_file", f"unknown settings: {', '.join(unknown)}")

        return cls(**section)

    def with_overrides(self, **overrides: Any) -> MigrationConfig:
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> MigrationConfig:
        """Check settings, raising ConfigurationError on the first bad one."""
        if not self.prefix:
            raise ConfigurationError("prefix", "must not be empty")
        # The migration package imports this module, so resolve codecs lazily
        from .migration.codecs import get_codec

        get_codec(self.payload_format)
        if self.concurrency < 1:
            raise ConfigurationError("concurrency", "must be at least 1", str(self.concurrency))
        if self.scan_count < 1:
            raise ConfigurationError("scan_count", "must be at least 1", str(self.scan_count))
        validate_table_name(self.table)
        return self

    def redis_config(self) -> RedisSourceConfig:
        return RedisSourceConfig(
            url=self.redis_url,
            scan_count=self.scan_count,
            socket_timeout=self.socket_timeout,
        )

    def sqlite_config(self) -> SQLiteDestinationConfig:
        return SQLiteDestinationConfig(db_path=self.sqlite_path, table=self.table)
