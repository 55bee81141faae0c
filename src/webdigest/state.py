"""Application state container.

AppState is created once at server startup (inside the FastMCP lifespan
context manager) and injected into every tool handler via the MCP Context
object. ``session`` holds the controller for the page currently open.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from webdigest.backend import Backend
    from webdigest.cache import DigestCache
    from webdigest.config import Settings
    from webdigest.controller import DigestController
    from webdigest.fetcher import PageFetcher
    from webdigest.protocols import StorageProtocol
    from webdigest.surface import RecordingSurface
    from webdigest.usage import UsageTracker


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings
    storage: StorageProtocol
    cache: DigestCache
    usage: UsageTracker
    backend: Backend | None = None
    fetcher: PageFetcher | None = None
    http_client: httpx.AsyncClient | None = None

    # Page session
    session: DigestController | None = None
    surface: RecordingSurface | None = None
