"""Tool handlers for the open page: open, digest, restore.

Receives AppState and returns plain dicts. No MCP or FastMCP imports;
server.py handles the MCP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from webdigest.document import HtmlDocument
from webdigest.errors import DigestError, ErrorCode
from webdigest.fetcher import page_host
from webdigest.models.content import DigestMode
from webdigest.session import open_page_session
from webdigest.surface import RecordingSurface

if TYPE_CHECKING:
    from webdigest.controller import DigestController
    from webdigest.state import AppState


async def handle_open(url: str, selection: str, state: AppState) -> dict:
    """Fetch ``url``, start a page session for its host and run auto-digest if enabled."""
    log = structlog.get_logger().bind(tool="open_page", url=url)
    log.info("handler_called")

    if state.fetcher is None:
        raise RuntimeError("fetcher not initialized")

    host = page_host(url)
    if not host:
        raise DigestError(
            code=ErrorCode.INVALID_INPUT,
            message=f"URL has no hostname: {url!r}",
            suggestion="Provide an absolute http(s) URL.",
        )

    html = await state.fetcher.fetch(url)
    surface = RecordingSurface()
    session = await open_page_session(
        state,
        host=host,
        document=HtmlDocument(html, selection),
        surface=surface,
    )
    state.session = session
    state.surface = surface

    output: dict = {"host": host, "active": not session.disabled, "auto_run": None}
    if session.disabled:
        log.info("domain_disabled", host=host)
    else:
        outcome = await session.maybe_auto_run()
        if outcome is not None:
            output["auto_run"] = outcome.model_dump(mode="json")
    output["events"] = surface.drain()
    return output


async def handle_digest(size: str, state: AppState) -> dict:
    session, surface = _active_session(state)
    try:
        mode = DigestMode(size)
    except ValueError as exc:
        raise DigestError(
            code=ErrorCode.INVALID_INPUT,
            message=f"Unknown digest size: {size!r}",
            suggestion="Use 'large' or 'small'.",
        ) from exc
    if session.disabled:
        raise DigestError(
            code=ErrorCode.DOMAIN_DISABLED,
            message=f"Digests are disabled on {session.host}",
            suggestion="Enable the domain with toggle_domain, then open the page again.",
        )
    outcome = await session.on_digest_requested(mode)
    return {"outcome": outcome.model_dump(mode="json"), "events": surface.drain()}


async def handle_restore(state: AppState) -> dict:
    session, surface = _active_session(state)
    restored = session.on_restore_requested()
    return {"restored": restored, "events": surface.drain()}


def _active_session(state: AppState) -> tuple[DigestController, RecordingSurface]:
    if state.session is None or state.surface is None:
        raise DigestError(
            code=ErrorCode.NO_ACTIVE_PAGE,
            message="No page is open.",
            suggestion="Call open_page with a URL first.",
        )
    return state.session, state.surface
