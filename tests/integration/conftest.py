"""Integration test fixtures.

Provides a fully wired AppState over in-memory SQLite with a real httpx
client. Tests mock the network with respx.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import aiosqlite
import httpx
import pytest

from webdigest.backend import Backend
from webdigest.cache import DigestCache
from webdigest.config import Settings
from webdigest.fetcher import PageFetcher
from webdigest.state import AppState
from webdigest.storage import SqliteStorage
from webdigest.usage import UsageTracker

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Baseline env for subprocess-based MCP tests, isolated to a tmp database."""
    env = os.environ.copy()
    env["WEBDIGEST__STORAGE__DB_PATH"] = str(tmp_path / "storage.db")
    env["WEBDIGEST__BACKEND__URL"] = "http://127.0.0.1:1/v1/responses"
    return env


@pytest.fixture()
async def app_state() -> AsyncGenerator[AppState, None]:
    """Full AppState wired the way the server lifespan wires it."""
    async with aiosqlite.connect(":memory:") as db:
        storage = SqliteStorage(db)
        await storage.init_db()
        settings = Settings()

        cache = DigestCache(storage)
        await cache.load()
        usage = UsageTracker(storage, debounce_seconds=0.01)
        await usage.load()

        async with httpx.AsyncClient() as client:
            state = AppState(
                settings=settings,
                storage=storage,
                cache=cache,
                usage=usage,
                backend=Backend(client, settings.backend),
                fetcher=PageFetcher(client),
                http_client=client,
            )
            yield state
            await usage.flush()
