"""Wiring for one page load."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from webdigest.config import load_digest_config
from webdigest.controller import DigestController
from webdigest.summarizer import Summarizer

if TYPE_CHECKING:
    from webdigest.protocols import BackendProtocol, DocumentProtocol, UISurfaceProtocol
    from webdigest.state import AppState

log = structlog.get_logger()


async def open_page_session(
    state: AppState,
    *,
    host: str,
    document: DocumentProtocol,
    surface: UISurfaceProtocol,
    backend: BackendProtocol | None = None,
) -> DigestController:
    """Read the user's config and build a controller for ``host``."""
    backend = backend or state.backend
    if backend is None:
        raise RuntimeError("backend not initialized")

    config = await load_digest_config(state.storage)
    summarizer = Summarizer(
        config=config,
        backend_settings=state.settings.backend,
        backend=backend,
        cache=state.cache,
        usage=state.usage,
        storage=state.storage,
        request_credential=surface.request_credential,
    )
    controller = DigestController(
        host=host,
        config=config,
        document=document,
        summarizer=summarizer,
        cache=state.cache,
        usage=state.usage,
        storage=state.storage,
        surface=surface,
        extraction=state.settings.extraction,
    )
    log.info("page_session_opened", host=host, disabled=controller.disabled)
    return controller
