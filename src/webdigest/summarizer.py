"""Digest orchestration: credential check, cache, backend call, accounting.

``Summarizer.digest`` is an explicit pipeline of awaited steps. Failures are
raised as ``DigestError`` and handled in one place by the controller.
Concurrent calls for the same ``(text, mode)`` are not de-duplicated; the
status machine's disabled buttons are what serialise user requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from webdigest import keys
from webdigest.errors import DigestError, ErrorCode
from webdigest.models.content import DigestMode
from webdigest.output import clean_output, extract_output_text

if TYPE_CHECKING:
    from collections.abc import Callable

    from webdigest.cache import DigestCache
    from webdigest.config import BackendSettings, DigestConfig
    from webdigest.protocols import BackendProtocol, StorageProtocol
    from webdigest.usage import UsageTracker

log = structlog.get_logger()

_LINE_SEPARATORS = str.maketrans({"\u2028": " ", "\u2029": " "})


@dataclass(frozen=True)
class DigestResult:
    text: str
    from_cache: bool


class Summarizer:
    def __init__(
        self,
        *,
        config: DigestConfig,
        backend_settings: BackendSettings,
        backend: BackendProtocol,
        cache: DigestCache,
        usage: UsageTracker,
        storage: StorageProtocol,
        request_credential: Callable[[str], None] | None = None,
    ) -> None:
        self._config = config
        self._backend_settings = backend_settings
        self._backend = backend
        self._cache = cache
        self._usage = usage
        self._storage = storage
        self._request_credential = request_credential

    def with_config(self, config: DigestConfig) -> Summarizer:
        """A summarizer sharing every collaborator but reading ``config``."""
        return Summarizer(
            config=config,
            backend_settings=self._backend_settings,
            backend=self._backend,
            cache=self._cache,
            usage=self._usage,
            storage=self._storage,
            request_credential=self._request_credential,
        )

    def is_cached(self, text: str, mode: DigestMode) -> bool:
        return self._cache.get(text, mode) is not None

    async def digest(self, text: str, mode: DigestMode) -> str:
        return (await self.run(text, mode)).text

    async def run(self, text: str, mode: DigestMode) -> DigestResult:
        bound = log.bind(mode=str(mode), length=len(text))

        api_key = await self._storage.get(keys.API_KEY, "")
        if not api_key:
            if self._request_credential is not None:
                self._request_credential("API key missing.")
            raise DigestError(
                code=ErrorCode.CREDENTIAL_MISSING,
                message="API key missing.",
                suggestion="Set an API key before requesting a digest.",
            )

        cached = self._cache.get(text, mode)
        if cached is not None:
            bound.info("cache_hit")
            return DigestResult(text=cached.result, from_cache=True)

        bound.info("cache_miss_calling_backend", model=self._config.api_model)
        payload = await self._backend.create_response(api_key, self.build_request(text, mode))

        usage = payload.get("usage")
        if isinstance(usage, dict):
            self._usage.record(usage)

        if payload.get("status") == "incomplete":
            raise _incomplete_error(payload)

        raw = extract_output_text(payload)
        if not raw.strip():
            raise DigestError(
                code=ErrorCode.NO_OUTPUT,
                message="No output from API. The model returned an empty response.",
                suggestion="Try again or pick a different model.",
            )

        result = clean_output(raw)
        # Keyed by the input text so the next identical request is a hit.
        self._cache.set(text, mode, result)
        bound.info("digest_complete", result_length=len(result))
        return DigestResult(text=result, from_cache=False)

    def build_request(self, text: str, mode: DigestMode) -> dict[str, Any]:
        max_tokens = (
            self._backend_settings.max_output_tokens_small
            if mode == DigestMode.SMALL
            else self._backend_settings.max_output_tokens_large
        )
        body: dict[str, Any] = {
            "model": self._config.api_model,
            "temperature": self._config.strength,
            "max_output_tokens": max_tokens,
            "instructions": self._config.prompt_for(mode),
            "input": text.translate(_LINE_SEPARATORS),
        }
        if self._config.is_priority:
            body["service_tier"] = "priority"
        return body


def _incomplete_error(payload: dict[str, Any]) -> DigestError:
    details = payload.get("incomplete_details") or {}
    reason = details.get("reason", "unknown") if isinstance(details, dict) else "unknown"
    message = "API response incomplete"
    if reason == "max_output_tokens":
        usage = payload.get("usage") or {}
        reasoning = (usage.get("output_tokens_details") or {}).get("reasoning_tokens", 0)
        if reasoning:
            message = f"Model used all tokens on reasoning ({reasoning} tokens)."
        else:
            message = "Response exceeded the max_output_tokens limit."
    return DigestError(
        code=ErrorCode.INCOMPLETE_RESPONSE,
        message=message,
        suggestion="Try selecting less text or a different model.",
        status=400,
    )
