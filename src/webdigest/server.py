"""MCP server entrypoint.

Opens the key/value store, configures structlog, builds the shared AppState
in the FastMCP lifespan and exposes the page and settings tools over stdio.
Tool handlers live in ``webdigest.tools`` and never import MCP types.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import webdigest.tools.page as t_page
import webdigest.tools.settings as t_settings
from webdigest import __version__, keys
from webdigest.backend import Backend, build_http_client
from webdigest.cache import DigestCache
from webdigest.config import Settings, ensure_first_install
from webdigest.errors import DigestError
from webdigest.fetcher import PageFetcher
from webdigest.schedulers import run_cache_flush_scheduler
from webdigest.state import AppState
from webdigest.storage import SqliteStorage
from webdigest.usage import UsageTracker

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings, *, debug: bool = False) -> None:
    """Configure structlog. Called once at startup before the tools are served."""
    level_name = "DEBUG" if debug else settings.logging.level
    log_level = logging.getLevelNamesMapping()[level_name]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr: stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()

    db_path = Path(settings.storage.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    storage = SqliteStorage(db)
    await storage.init_db()

    # Read the debug flag before anything logs so the level applies everywhere.
    _setup_logging(settings, debug=await storage.get(keys.DEBUG, "") == "true")
    await ensure_first_install(storage)

    log.info("server_starting", version=__version__, db_path=str(db_path))

    cache = DigestCache(storage, limit=settings.cache.limit, trim_to=settings.cache.trim_to)
    await cache.load()
    usage = UsageTracker(storage, debounce_seconds=settings.usage.persist_debounce_seconds)
    await usage.load()

    http_client = build_http_client(settings.backend)

    state = AppState(
        settings=settings,
        storage=storage,
        cache=cache,
        usage=usage,
        backend=Backend(http_client, settings.backend),
        fetcher=PageFetcher(http_client),
        http_client=http_client,
    )

    flush_task = asyncio.create_task(run_cache_flush_scheduler(state))

    log.info("server_started", version=__version__, cache_entries=len(cache))

    try:
        yield state
    finally:
        flush_task.cancel()
        with suppress(asyncio.CancelledError):
            await flush_task
        await cache.flush_if_dirty()
        await usage.flush()
        await http_client.aclose()
        await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP("webdigest", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg, so set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: DigestError) -> CallToolResult:
    """Convert a DigestError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


async def _run_tool(tool: str, call: Awaitable[dict]) -> object:
    try:
        return await call
    except DigestError as exc:
        log.warning(
            "tool_error",
            tool=tool,
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool=tool, exc_info=True)
        raise


def _state(ctx: Context) -> AppState:
    return ctx.request_context.lifespan_context


@mcp.tool()
async def open_page(url: str, ctx: Context, selection: str = "") -> object:
    """Open a web page for digesting.

    Pass ``selection`` to digest a specific passage instead of the detected
    article. Returns whether digests are active on the page's domain.
    """
    return await _run_tool("open_page", t_page.handle_open(url, selection, _state(ctx)))


@mcp.tool()
async def digest_page(ctx: Context, size: str = "large") -> object:
    """Summarize the open page. ``size`` is 'large' (~50%) or 'small' (~20%)."""
    return await _run_tool("digest_page", t_page.handle_digest(size, _state(ctx)))


@mcp.tool()
async def restore_page(ctx: Context) -> object:
    """Discard the current digest and return to the original text."""
    return await _run_tool("restore_page", t_page.handle_restore(_state(ctx)))


@mcp.tool()
async def set_api_key(api_key: str, ctx: Context, validate: bool = True) -> object:
    """Store the backend API key, optionally validating it first."""
    return await _run_tool(
        "set_api_key", t_settings.handle_set_api_key(api_key, validate, _state(ctx))
    )


@mcp.tool()
async def set_simplification(level: str, ctx: Context) -> object:
    """Set the simplification style: Conservative, Balanced or Aggressive. Clears the cache."""
    return await _run_tool(
        "set_simplification", t_settings.handle_set_simplification(level, _state(ctx))
    )


@mcp.tool()
async def get_settings(ctx: Context) -> object:
    """Current preferences, the model catalogue and pricing."""
    return await _run_tool("get_settings", t_settings.handle_get_settings(_state(ctx)))


@mcp.tool()
async def set_custom_prompts(ctx: Context, large: str = "", small: str = "") -> object:
    """Override the prompt for each digest size. A blank prompt restores the default.

    Clears the cache.
    """
    return await _run_tool(
        "set_custom_prompts", t_settings.handle_set_custom_prompts(large, small, _state(ctx))
    )


@mcp.tool()
async def set_model(model_id: str, ctx: Context) -> object:
    """Select a model from the catalogue and apply its pricing."""
    return await _run_tool("set_model", t_settings.handle_set_model(model_id, _state(ctx)))


@mcp.tool()
async def set_pricing(input_per_1m: float, output_per_1m: float, ctx: Context) -> object:
    """Override the USD price per million input and output tokens."""
    return await _run_tool(
        "set_pricing",
        t_settings.handle_set_pricing(input_per_1m, output_per_1m, _state(ctx)),
    )


@mcp.tool()
async def reset_pricing(ctx: Context) -> object:
    """Restore the default model pricing."""
    return await _run_tool("reset_pricing", t_settings.handle_reset_pricing(_state(ctx)))


@mcp.tool()
async def toggle_domain(ctx: Context) -> object:
    """Enable or disable digests for the open page's domain."""
    return await _run_tool("toggle_domain", t_settings.handle_toggle_domain(_state(ctx)))


@mcp.tool()
async def set_domain_mode(mode: str, ctx: Context) -> object:
    """'allow' runs only on listed domains; 'deny' runs everywhere except listed ones."""
    return await _run_tool(
        "set_domain_mode", t_settings.handle_set_domain_mode(mode, _state(ctx))
    )


@mcp.tool()
async def set_domain_list(mode: str, patterns: list[str], ctx: Context) -> object:
    """Replace the allow or deny list.

    Patterns are host suffixes ("example.com"), globs ("*.example.com") or
    regexes wrapped in slashes ("/news\\d+\\.com/").
    """
    return await _run_tool(
        "set_domain_list", t_settings.handle_set_domain_list(mode, patterns, _state(ctx))
    )


@mcp.tool()
async def set_auto_run(enabled: bool, ctx: Context) -> object:
    """Digest article pages automatically when they are opened."""
    return await _run_tool("set_auto_run", t_settings.handle_set_auto_run(enabled, _state(ctx)))


@mcp.tool()
async def set_debug(enabled: bool, ctx: Context) -> object:
    """Persist debug logging. Takes effect at the next server start."""
    return await _run_tool("set_debug", t_settings.handle_set_debug(enabled, _state(ctx)))


@mcp.tool()
async def set_selectors(selectors: list[str], ctx: Context, host: str = "") -> object:
    """Set the article container selectors, globally or as additions for one host.

    An empty global list restores the built-in selectors.
    """
    return await _run_tool(
        "set_selectors", t_settings.handle_set_selectors(selectors, host, _state(ctx))
    )


@mcp.tool()
async def set_exclusions(
    ctx: Context,
    self_selectors: list[str] | None = None,
    ancestors: list[str] | None = None,
    host: str = "",
) -> object:
    """Set the elements skipped during extraction, globally or for one host.

    ``self_selectors`` match the element itself, ``ancestors`` any enclosing
    container. Empty global rules restore the built-in exclusions.
    """
    return await _run_tool(
        "set_exclusions",
        t_settings.handle_set_exclusions(
            self_selectors or [], ancestors or [], host, _state(ctx)
        ),
    )


@mcp.tool()
async def usage_stats(ctx: Context) -> object:
    """Token usage, call count and estimated cost."""
    return await _run_tool("usage_stats", t_settings.handle_usage_stats(_state(ctx)))


@mcp.tool()
async def flush_cache(ctx: Context) -> object:
    """Delete every cached digest."""
    return await _run_tool("flush_cache", t_settings.handle_flush_cache(_state(ctx)))


@mcp.tool()
async def reset_usage(ctx: Context) -> object:
    """Reset token counters and cost tracking."""
    return await _run_tool("reset_usage", t_settings.handle_reset_usage(_state(ctx)))


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
