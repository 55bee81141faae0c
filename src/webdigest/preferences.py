"""Writers for the user's digest preferences.

Each function validates its input, persists the new value under its storage
key and clears the digest cache when cached digests would no longer match.
Callers rebuild ``DigestConfig`` with ``load_digest_config`` afterwards.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import structlog

from webdigest import keys
from webdigest.config import EXCLUDE_MAP, SELECTOR_MAP, read_json_setting
from webdigest.defaults import SIMPLIFICATION_LEVELS
from webdigest.errors import DigestError, ErrorCode
from webdigest.models.policy import DomainMode

if TYPE_CHECKING:
    from collections.abc import Iterable

    from webdigest.cache import DigestCache
    from webdigest.models.content import DigestMode
    from webdigest.models.policy import ExclusionRules
    from webdigest.models.usage import Pricing
    from webdigest.protocols import StorageProtocol
    from webdigest.usage import UsageTracker

log = structlog.get_logger()


def _clean(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(item.strip() for item in items if item.strip()))


async def save_simplification(
    storage: StorageProtocol, cache: DigestCache, level: str
) -> None:
    if level not in SIMPLIFICATION_LEVELS:
        raise DigestError(
            code=ErrorCode.INVALID_INPUT,
            message=f"Unknown simplification level: {level!r}",
            suggestion=f"Use one of: {', '.join(SIMPLIFICATION_LEVELS)}.",
        )
    await storage.set(keys.SIMPLIFICATION_LEVEL, level)
    # Cached digests reflect the old strength.
    await cache.clear()
    log.info("preference_saved", key=keys.SIMPLIFICATION_LEVEL, value=level)


async def save_custom_prompts(
    storage: StorageProtocol, cache: DigestCache, prompts: dict[DigestMode, str]
) -> None:
    """Store per-mode prompt overrides. A blank prompt falls back to the default."""
    blob = json.dumps({str(mode): text for mode, text in prompts.items() if text.strip()})
    await storage.set(keys.CUSTOM_PROMPTS, blob)
    await cache.clear()
    log.info("preference_saved", key=keys.CUSTOM_PROMPTS, modes=sorted(map(str, prompts)))


async def save_model(usage: UsageTracker, model_id: str) -> Pricing:
    try:
        return await usage.select_model(model_id)
    except ValueError as exc:
        raise DigestError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Pick a model from the catalogue.",
        ) from exc


async def save_pricing(
    usage: UsageTracker, input_per_1m: float, output_per_1m: float
) -> Pricing:
    if input_per_1m < 0 or output_per_1m < 0:
        raise DigestError(
            code=ErrorCode.INVALID_INPUT,
            message="Prices must not be negative.",
            suggestion="Pass USD per million tokens, e.g. 0.05 and 0.4.",
        )
    return await usage.update_pricing(input_per_1m, output_per_1m)


def _domain_mode(mode: DomainMode | str) -> DomainMode:
    try:
        return DomainMode(mode)
    except ValueError as exc:
        raise DigestError(
            code=ErrorCode.INVALID_INPUT,
            message=f"Unknown domain mode: {mode!r}",
            suggestion="Use 'allow' or 'deny'.",
        ) from exc


async def save_domain_mode(storage: StorageProtocol, mode: DomainMode | str) -> DomainMode:
    domain_mode = _domain_mode(mode)
    await storage.set(keys.DOMAINS_MODE, domain_mode.value)
    log.info("preference_saved", key=keys.DOMAINS_MODE, value=domain_mode.value)
    return domain_mode


async def save_domain_list(
    storage: StorageProtocol, mode: DomainMode | str, patterns: Iterable[str]
) -> list[str]:
    """Replace the allow list or the deny list, whichever ``mode`` names."""
    key = keys.DOMAINS_DENY if _domain_mode(mode) == DomainMode.DENY else keys.DOMAINS_ALLOW
    cleaned = _clean(patterns)
    await storage.set(key, json.dumps(cleaned))
    log.info("preference_saved", key=key, count=len(cleaned))
    return cleaned


async def save_flag(storage: StorageProtocol, key: str, enabled: bool) -> None:
    await storage.set(key, "true" if enabled else "false")
    log.info("preference_saved", key=key, value=enabled)


async def save_selectors(
    storage: StorageProtocol, selectors: Iterable[str], host: str = ""
) -> list[str]:
    """Set the global container selectors, or one host's additions.

    An empty global list restores the built-in selectors; an empty host list
    removes the host's entry.
    """
    cleaned = _clean(selectors)
    if not host:
        if cleaned:
            await storage.set(keys.SELECTORS_GLOBAL, json.dumps(cleaned))
        else:
            await storage.delete(keys.SELECTORS_GLOBAL)
        log.info("preference_saved", key=keys.SELECTORS_GLOBAL, count=len(cleaned))
        return cleaned

    host = host.strip().lower()
    by_host = await read_json_setting(storage, keys.DOMAIN_SELECTORS, SELECTOR_MAP, {})
    if cleaned:
        by_host[host] = cleaned
    else:
        by_host.pop(host, None)
    await storage.set(keys.DOMAIN_SELECTORS, json.dumps(by_host))
    log.info("preference_saved", key=keys.DOMAIN_SELECTORS, host=host, count=len(cleaned))
    return cleaned


async def save_exclusions(
    storage: StorageProtocol, rules: ExclusionRules, host: str = ""
) -> None:
    """Set the global exclusion rules, or one host's additions.

    Empty global rules restore the built-in exclusions; empty host rules
    remove the host's entry.
    """
    empty = not rules.self_selectors and not rules.ancestors
    if not host:
        if empty:
            await storage.delete(keys.EXCLUDES_GLOBAL)
        else:
            await storage.set(keys.EXCLUDES_GLOBAL, rules.model_dump_json(by_alias=True))
        log.info("preference_saved", key=keys.EXCLUDES_GLOBAL, cleared=empty)
        return

    host = host.strip().lower()
    by_host = await read_json_setting(storage, keys.DOMAIN_EXCLUDES, EXCLUDE_MAP, {})
    if empty:
        by_host.pop(host, None)
    else:
        by_host[host] = rules
    blob = {name: entry.model_dump(mode="json", by_alias=True) for name, entry in by_host.items()}
    await storage.set(keys.DOMAIN_EXCLUDES, json.dumps(blob))
    log.info("preference_saved", key=keys.DOMAIN_EXCLUDES, host=host, cleared=empty)
