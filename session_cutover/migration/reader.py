"""Reading and decoding cached session values."""

from __future__ import annotations

from ..models import ABSENT, AbsentType, RawSessionValue
from ..stores.base import SourceStore
from .codecs import JsonPayloadCodec, PayloadCodec


class RecordReader:
    """Fetches a key's value from the source and decodes it.

    A key that vanished since enumeration is reported as ABSENT, not as
    an error. Undecodable payloads raise SessionDecodeError.
    """

    def __init__(self, source: SourceStore, codec: PayloadCodec | None = None):
        self.source = source
        self.codec = codec or JsonPayloadCodec()

    async def read(self, key: str) -> RawSessionValue | AbsentType:
        payload = await self.source.fetch(key, self.codec.value_kind)
        if payload is None:
            return ABSENT
        return self.codec.decode(key, payload)
