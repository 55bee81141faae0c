"""Background scheduler coroutines."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from webdigest.state import AppState

log = structlog.get_logger()


async def run_cache_flush_scheduler(state: AppState) -> None:
    """Persist the digest cache on a fixed period. A no-op when nothing changed."""
    interval = state.settings.cache.flush_interval_seconds
    while True:
        await asyncio.sleep(interval)
        try:
            await state.cache.flush_if_dirty()
        except Exception:
            log.warning("cache_flush_scheduler_error", exc_info=True)
