from __future__ import annotations

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """One digest result held in the in-memory cache mirror."""

    result: str
    timestamp: int = 0  # epoch milliseconds of the last write
