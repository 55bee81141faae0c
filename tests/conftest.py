"""Shared test fixtures for the webdigest test suite."""

from __future__ import annotations

import itertools
from typing import Any

import pytest

from webdigest import keys
from webdigest.cache import DigestCache
from webdigest.config import Settings
from webdigest.storage import MemoryStorage
from webdigest.usage import UsageTracker

LONG_PARAGRAPH_1 = (
    "The city council approved the new transit budget on Tuesday after a long debate."
)
LONG_PARAGRAPH_2 = (
    "Officials said the plan adds twelve bus routes and extends service hours on weekends."
)

ARTICLE_HTML = f"""
<html>
  <body>
    <nav><p>Home | World | Politics | Business | Technology | Science | Sports</p></nav>
    <article>
      <h1>Council approves transit budget after debate</h1>
      <p>{LONG_PARAGRAPH_1}</p>
      <p>Short line under forty chars.</p>
      <p>{LONG_PARAGRAPH_2}</p>
      <aside><p>Related: five other stories you might enjoy reading this week.</p></aside>
    </article>
  </body>
</html>
"""


@pytest.fixture()
def article_html() -> str:
    return ARTICLE_HTML


@pytest.fixture()
def article_paragraphs() -> tuple[str, str]:
    return LONG_PARAGRAPH_1, LONG_PARAGRAPH_2


class FakeBackend:
    """Records calls and replays queued payloads or exceptions."""

    def __init__(self, *responses: dict[str, Any] | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def create_response(self, api_key: str, body: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((api_key, body))
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def keyed_storage() -> MemoryStorage:
    """Storage with an API key already configured."""
    return MemoryStorage({keys.API_KEY: "sk-test"})


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def cache(keyed_storage: MemoryStorage) -> DigestCache:
    # Strictly increasing clock so eviction order is deterministic.
    ticks = itertools.count(1_000)
    return DigestCache(keyed_storage, clock=lambda: next(ticks))


@pytest.fixture()
def usage(keyed_storage: MemoryStorage) -> UsageTracker:
    return UsageTracker(keyed_storage, debounce_seconds=0.01)


@pytest.fixture()
def make_backend() -> type[FakeBackend]:
    """Factory for a fake backend: ``make_backend(payload_or_exc, ...)``."""
    return FakeBackend
