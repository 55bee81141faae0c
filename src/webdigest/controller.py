"""Page-level digest controller.

One controller per page load. It owns the status machine and the live
``ArticleState``, turns UI events into pipeline runs, and is the single place
where ``DigestError`` is caught and rendered. After a preference write
``reload`` swaps in a freshly loaded ``DigestConfig``; nothing is mutated in
place.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel

from webdigest.config import load_digest_config
from webdigest.domains import is_disabled, toggle_host
from webdigest.errors import DigestError, MessageCategory
from webdigest.extractor import extract
from webdigest.models.content import ArticleState, DigestMode, SourceKind
from webdigest.models.policy import DomainMode
from webdigest.preferences import save_domain_list
from webdigest.status import StatusMachine

if TYPE_CHECKING:
    from webdigest.cache import DigestCache
    from webdigest.config import DigestConfig, ExtractionSettings
    from webdigest.models.content import ExtractedContent
    from webdigest.protocols import DocumentProtocol, StorageProtocol, UISurfaceProtocol
    from webdigest.summarizer import Summarizer
    from webdigest.usage import UsageTracker

log = structlog.get_logger()

NOTHING_TO_DIGEST_MESSAGE = (
    "No text found to summarize. Try selecting text or visit an article page."
)


class OutcomeKind(StrEnum):
    SUCCESS = "success"
    CACHE_HIT = "cache_hit"
    NOTHING_TO_DIGEST = "nothing_to_digest"
    BUSY = "busy"
    ERROR = "error"


class DigestOutcome(BaseModel):
    kind: OutcomeKind
    mode: DigestMode
    text: str | None = None
    source: SourceKind | None = None
    category: MessageCategory | None = None
    error: dict[str, Any] | None = None


class DigestController:
    def __init__(
        self,
        *,
        host: str,
        config: DigestConfig,
        document: DocumentProtocol,
        summarizer: Summarizer,
        cache: DigestCache,
        usage: UsageTracker,
        storage: StorageProtocol,
        surface: UISurfaceProtocol,
        extraction: ExtractionSettings,
    ) -> None:
        self.host = host
        self.config = config
        self._document = document
        self._summarizer = summarizer
        self._cache = cache
        self._usage = usage
        self._storage = storage
        self._surface = surface
        self._extraction = extraction
        self.status = StatusMachine(surface)
        self.article = ArticleState()
        self._log = log.bind(host=host)

    @property
    def disabled(self) -> bool:
        return is_disabled(self.config.domain_policy, self.host)

    def extract(self) -> ExtractedContent | None:
        return extract(
            self._document,
            self.config.selectors_for(self.host),
            self.config.excludes_for(self.host),
            min_selection_length=self._extraction.min_selection_length,
            min_element_length=self._extraction.min_element_length,
        )

    # ------------------------------------------------------------------
    # UI events
    # ------------------------------------------------------------------

    async def on_digest_requested(self, size: DigestMode | str) -> DigestOutcome:
        mode = DigestMode(size)
        if self.status.busy:
            self._log.info("digest_ignored_busy", mode=str(mode))
            return DigestOutcome(kind=OutcomeKind.BUSY, mode=mode)

        content = self.extract()
        if content is None:
            self._surface.render_info(NOTHING_TO_DIGEST_MESSAGE)
            return DigestOutcome(kind=OutcomeKind.NOTHING_TO_DIGEST, mode=mode)

        self._log.info("digest_requested", mode=str(mode), source=str(content.source_kind))
        self.status.start(mode, from_cache=self._summarizer.is_cached(content.text, mode))
        try:
            result = await self._summarizer.run(content.text, mode)
        except DigestError as exc:
            self._log.warning(
                "digest_failed",
                code=exc.code,
                status=exc.status,
                message=exc.message,
                recoverable=exc.recoverable,
            )
            self.status.fail()
            self._surface.render_error(exc.category, exc.message)
            return DigestOutcome(
                kind=OutcomeKind.ERROR,
                mode=mode,
                source=content.source_kind,
                category=exc.category,
                error=exc.to_dict()["error"],
            )
        except Exception:
            self.status.fail()
            self._log.error("digest_unexpected_error", exc_info=True)
            raise

        # A new digest replaces whatever was displayed before.
        self.article = ArticleState(
            original=content.text,
            digested=result.text,
            mode=mode,
            elements=content.elements,
            source=content.source_kind,
            container=content.container,
            title=content.title,
        )
        self.status.succeed(mode)
        self._surface.render_result(result.text, mode, content.container is not None)
        return DigestOutcome(
            kind=OutcomeKind.CACHE_HIT if result.from_cache else OutcomeKind.SUCCESS,
            mode=mode,
            text=result.text,
            source=content.source_kind,
        )

    def on_restore_requested(self) -> bool:
        if not self.status.restore():
            return False
        self.article = ArticleState()
        self._surface.clear_result()
        self._log.info("digest_restored")
        return True

    async def maybe_auto_run(self) -> DigestOutcome | None:
        """Digest in large mode on load when auto-run is on and the page has an article."""
        if not self.config.auto_run or self.disabled:
            return None
        content = self.extract()
        if content is None or content.source_kind != SourceKind.ARTICLE:
            return None
        self._log.info("auto_run_triggered")
        return await self.on_digest_requested(DigestMode.LARGE)

    # ------------------------------------------------------------------
    # Settings actions
    # ------------------------------------------------------------------

    async def toggle_domain(self) -> DigestConfig:
        """Flip this host on the active list and reload."""
        policy = toggle_host(self.config.domain_policy, self.host)
        if policy.mode == DomainMode.ALLOW:
            await save_domain_list(self._storage, policy.mode, policy.allow_list)
        else:
            await save_domain_list(self._storage, policy.mode, policy.deny_list)
        return await self.reload()

    async def flush_cache(self) -> None:
        await self._cache.clear()

    async def reset_usage(self) -> None:
        await self._usage.reset()
        self._surface.render_info(
            "API usage stats reset. Token counters and cost tracking cleared."
        )

    def usage_stats(self) -> dict[str, Any]:
        return {**self._usage.stats(), "cache_entries": len(self._cache)}

    async def reload(self) -> DigestConfig:
        """Rebuild the config from storage after a preference write."""
        self.config = await load_digest_config(self._storage)
        self._summarizer = self._summarizer.with_config(self.config)
        self._log.info("config_reloaded", disabled=self.disabled)
        return self.config
