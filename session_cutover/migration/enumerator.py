"""Key enumeration over the source namespace."""

from __future__ import annotations

from collections.abc import AsyncIterator

from ..exceptions import StoreUnavailableError
from ..stores.base import SourceStore


class KeyEnumerator:
    """Lists every source key under a namespace prefix.

    Each call to list() queries the live store again, so sessions
    created since the previous pass are picked up.
    """

    def __init__(self, source: SourceStore):
        self.source = source

    async def list(self, prefix: str) -> AsyncIterator[str]:
        """Yield each key starting with prefix once.

        Raises:
            StoreUnavailableError: The source cannot be reached
        """
        seen: set[str] = set()
        try:
            async for key in self.source.scan_prefix(prefix):
                # SCAN may repeat keys while the keyspace is rehashing
                if key in seen or not key.startswith(prefix):
                    continue
                seen.add(key)
                yield key
        except StoreUnavailableError:
            raise
        except (ConnectionError, TimeoutError, OSError) as e:
            raise StoreUnavailableError(type(self.source).__name__, e) from e

    async def collect(self, prefix: str) -> list[str]:
        """Materialize a complete pass of list()."""
        return [key async for key in self.list(prefix)]
