"""Tool handlers for settings and usage actions.

Preference writes work with or without an open page. When a page is open its
controller reloads the config so the change applies to the next digest.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from webdigest import keys, preferences
from webdigest.config import load_digest_config
from webdigest.defaults import MODEL_OPTIONS, SIMPLIFICATION_LEVELS
from webdigest.errors import DigestError, ErrorCode
from webdigest.models.content import DigestMode
from webdigest.models.policy import ExclusionRules

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from webdigest.config import DigestConfig
    from webdigest.controller import DigestController
    from webdigest.state import AppState

log = structlog.get_logger()


async def handle_set_api_key(api_key: str, validate: bool, state: AppState) -> dict:
    api_key = api_key.strip()
    if not api_key:
        raise DigestError(
            code=ErrorCode.INVALID_INPUT,
            message="API key is empty.",
            suggestion="Provide a non-empty API key.",
        )
    if validate:
        if state.backend is None:
            raise RuntimeError("backend not initialized")
        await state.backend.validate_credential(api_key)
    await state.storage.set(keys.API_KEY, api_key)
    log.info("api_key_saved", validated=validate)
    return {"saved": True, "validated": validate}


async def handle_get_settings(state: AppState) -> dict:
    if state.session is not None:
        config = state.session.config
    else:
        config = await load_digest_config(state.storage)
    return {
        **config.model_dump(mode="json"),
        "simplification_levels": list(SIMPLIFICATION_LEVELS),
        "models": {name: option.model_dump() for name, option in MODEL_OPTIONS.items()},
        "pricing": state.usage.pricing.model_dump(),
    }


async def handle_set_simplification(level: str, state: AppState) -> dict:
    write = preferences.save_simplification(state.storage, state.cache, level)
    config = await _apply(state, write)
    return {"simplification_level": config.simplification_level, "cache_entries": len(state.cache)}


async def handle_set_custom_prompts(large: str, small: str, state: AppState) -> dict:
    prompts = {DigestMode.LARGE: large, DigestMode.SMALL: small}
    write = preferences.save_custom_prompts(state.storage, state.cache, prompts)
    config = await _apply(state, write)
    return {
        "custom": sorted(str(mode) for mode in config.custom_prompts),
        "cache_entries": len(state.cache),
    }


async def handle_set_model(model_id: str, state: AppState) -> dict:
    config = await _apply(state, preferences.save_model(state.usage, model_id))
    return {"model": config.model, "pricing": state.usage.pricing.model_dump()}


async def handle_set_pricing(input_per_1m: float, output_per_1m: float, state: AppState) -> dict:
    pricing = await preferences.save_pricing(state.usage, input_per_1m, output_per_1m)
    return pricing.model_dump()


async def handle_reset_pricing(state: AppState) -> dict:
    pricing = await state.usage.reset_pricing()
    return pricing.model_dump()


async def handle_toggle_domain(state: AppState) -> dict:
    session = _require_session(state)
    config = await session.toggle_domain()
    return {
        "host": session.host,
        "mode": config.domain_policy.mode,
        "active": not session.disabled,
    }


async def handle_set_domain_mode(mode: str, state: AppState) -> dict:
    config = await _apply(state, preferences.save_domain_mode(state.storage, mode))
    return _domain_view(config, state)


async def handle_set_domain_list(mode: str, patterns: list[str], state: AppState) -> dict:
    """Replace the allow list or deny list wholesale."""
    config = await _apply(state, preferences.save_domain_list(state.storage, mode, patterns))
    return _domain_view(config, state)


async def handle_set_auto_run(enabled: bool, state: AppState) -> dict:
    config = await _apply(state, preferences.save_flag(state.storage, keys.AUTO_RUN, enabled))
    return {"auto_run": config.auto_run}


async def handle_set_debug(enabled: bool, state: AppState) -> dict:
    """Persist the debug flag. The log level follows it from the next start."""
    config = await _apply(state, preferences.save_flag(state.storage, keys.DEBUG, enabled))
    return {"debug": config.debug}


async def handle_set_selectors(selectors: list[str], host: str, state: AppState) -> dict:
    config = await _apply(state, preferences.save_selectors(state.storage, selectors, host))
    if host:
        return {"host": host, "selectors": list(config.selectors_domain.get(host.lower(), ()))}
    return {"selectors": list(config.selectors_global)}


async def handle_set_exclusions(
    self_selectors: list[str], ancestors: list[str], host: str, state: AppState
) -> dict:
    rules = ExclusionRules(
        self_selectors=tuple(s.strip() for s in self_selectors if s.strip()),
        ancestors=tuple(s.strip() for s in ancestors if s.strip()),
    )
    config = await _apply(state, preferences.save_exclusions(state.storage, rules, host))
    if host:
        stored = config.excludes_domain.get(host.lower(), ExclusionRules())
        return {"host": host, **stored.model_dump(mode="json", by_alias=True)}
    return config.excludes_global.model_dump(mode="json", by_alias=True)


async def handle_usage_stats(state: AppState) -> dict:
    if state.session is not None:
        return state.session.usage_stats()
    return {**state.usage.stats(), "cache_entries": len(state.cache)}


async def handle_flush_cache(state: AppState) -> dict:
    if state.session is not None:
        await state.session.flush_cache()
    else:
        await state.cache.clear()
    return {"cache_entries": len(state.cache)}


async def handle_reset_usage(state: AppState) -> dict:
    if state.session is not None:
        await state.session.reset_usage()
    else:
        await state.usage.reset()
    return state.usage.stats()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _apply(state: AppState, write: Awaitable[object]) -> DigestConfig:
    """Run a preference write, then return the config it produced."""
    await write
    if state.session is not None:
        return await state.session.reload()
    return await load_digest_config(state.storage)


def _domain_view(config: DigestConfig, state: AppState) -> dict:
    policy = config.domain_policy
    view: dict = {
        "mode": policy.mode,
        "allow_list": list(policy.allow_list),
        "deny_list": list(policy.deny_list),
    }
    if state.session is not None:
        view["host"] = state.session.host
        view["active"] = not state.session.disabled
    return view


def _require_session(state: AppState) -> DigestController:
    if state.session is None:
        raise DigestError(
            code=ErrorCode.NO_ACTIVE_PAGE,
            message="No page is open.",
            suggestion="Call open_page with a URL first.",
        )
    return state.session
