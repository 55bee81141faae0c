"""In-memory digest cache mirrored to the storage collaborator.

Lookups and writes are synchronous against the in-memory dict. Persistence is
coalesced: ``set`` only marks the cache dirty and ``flush_if_dirty`` (driven
by the flush scheduler) writes the whole mapping as one JSON blob.

Eviction keeps the most recently *written* entries. Reads do not refresh an
entry's position.
"""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING

import structlog
from pydantic import TypeAdapter, ValidationError

from webdigest import keys
from webdigest.models.cache import CacheEntry

if TYPE_CHECKING:
    from collections.abc import Callable

    from webdigest.models.content import DigestMode
    from webdigest.protocols import StorageProtocol

log = structlog.get_logger()

CACHE_LIMIT = 50
CACHE_TRIM_TO = 30

_ENTRIES = TypeAdapter(dict[str, CacheEntry])


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def cache_key(text: str, mode: DigestMode) -> str:
    return f"{mode}:{text}"


class DigestCache:
    def __init__(
        self,
        storage: StorageProtocol,
        *,
        limit: int = CACHE_LIMIT,
        trim_to: int = CACHE_TRIM_TO,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._storage = storage
        self._limit = limit
        self._trim_to = trim_to
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._dirty = False

    async def load(self) -> None:
        """Populate the in-memory mirror. A corrupt blob starts an empty cache."""
        raw = await self._storage.get(keys.CACHE, "{}")
        try:
            self._entries = _ENTRIES.validate_json(raw or "{}")
        except ValidationError:
            log.warning("cache_load_invalid", exc_info=True)
            self._entries = {}
        self._dirty = False
        log.debug("cache_loaded", entries=len(self._entries))

    def get(self, text: str, mode: DigestMode) -> CacheEntry | None:
        return self._entries.get(cache_key(text, mode))

    def set(self, text: str, mode: DigestMode, result: str) -> None:
        key = cache_key(text, mode)
        # Re-insert so dict order tracks write order for tie-breaking on trim.
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(result=result, timestamp=self._clock())
        self._dirty = True
        if len(self._entries) > self._limit:
            self._trim()

    def _trim(self) -> None:
        # Newest first; on equal timestamps the later write wins.
        newest_first = sorted(
            reversed(self._entries.items()),
            key=lambda item: item[1].timestamp,
            reverse=True,
        )
        kept = newest_first[: self._trim_to]
        self._entries = dict(reversed(kept))
        log.debug("cache_trimmed", kept=len(self._entries))

    async def clear(self) -> None:
        self._entries = {}
        self._dirty = False
        await self._storage.delete(keys.CACHE)
        log.info("cache_cleared")

    async def flush_if_dirty(self) -> bool:
        """Persist the mapping if anything changed. Returns True if it wrote."""
        if not self._dirty:
            return False
        self._dirty = False
        blob = json.dumps({key: entry.model_dump() for key, entry in self._entries.items()})
        if not await self._storage.set(keys.CACHE, blob):
            self._dirty = True
            return False
        log.debug("cache_flushed", entries=len(self._entries))
        return True

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __len__(self) -> int:
        return len(self._entries)
