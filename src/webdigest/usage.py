"""Token usage accounting and cost estimation.

Totals are accrued in memory after every successful backend call and
persisted with a debounce so a burst of calls produces one storage write.
Pricing is plain configuration data, never fetched live.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from webdigest import keys
from webdigest.defaults import DEFAULT_PRICING, MODEL_OPTIONS
from webdigest.models.usage import Pricing, UsageCounters, UsageTotals

if TYPE_CHECKING:
    from webdigest.protocols import StorageProtocol

log = structlog.get_logger()


def read_token_counts(usage: dict[str, Any]) -> tuple[int, int]:
    """Pull (input, output) counts from either usage vocabulary."""
    input_tokens = usage.get("input_tokens") or usage.get("prompt_tokens") or 0
    output_tokens = usage.get("output_tokens") or usage.get("completion_tokens") or 0
    return int(input_tokens), int(output_tokens)


class UsageTracker:
    def __init__(self, storage: StorageProtocol, *, debounce_seconds: float = 1.0) -> None:
        self._storage = storage
        self._debounce_seconds = debounce_seconds
        self._persist_task: asyncio.Task[None] | None = None
        self.totals = UsageTotals()
        self.pricing = DEFAULT_PRICING.model_copy()

    async def load(self) -> None:
        raw = await self._storage.get(keys.USAGE, "")
        if raw:
            try:
                self.totals = UsageTotals.model_validate_json(raw)
            except ValidationError:
                log.warning("usage_load_invalid", exc_info=True)

        raw = await self._storage.get(keys.PRICING, "")
        if raw:
            try:
                self.pricing = Pricing.model_validate_json(raw)
            except ValidationError:
                log.warning("pricing_load_invalid", exc_info=True)

        model = await self._storage.get(keys.MODEL, "")
        option = MODEL_OPTIONS.get(model)
        if option is not None:
            self.pricing = self.pricing.model_copy(
                update={
                    "model": model,
                    "input_per_1m": option.input_per_1m,
                    "output_per_1m": option.output_per_1m,
                }
            )

    def record(self, usage: dict[str, Any] | None, bucket: str = "digest") -> bool:
        """Accrue one response's usage. Returns False if nothing was counted."""
        if not usage:
            return False
        input_tokens, output_tokens = read_token_counts(usage)
        if input_tokens == 0 and output_tokens == 0:
            log.warning("usage_missing_token_counts", bucket=bucket, usage=usage)
            return False

        counters: UsageCounters = getattr(self.totals, bucket)
        counters.input += input_tokens
        counters.output += output_tokens
        counters.calls += 1
        log.debug(
            "usage_recorded",
            bucket=bucket,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total=counters.input + counters.output,
        )
        self._schedule_persist()
        return True

    def cost(self) -> float:
        digest = self.totals.digest
        input_cost = digest.input * self.pricing.input_per_1m / 1_000_000
        output_cost = digest.output * self.pricing.output_per_1m / 1_000_000
        return input_cost + output_cost

    async def reset(self) -> None:
        self._cancel_pending()
        self.totals = UsageTotals()
        await self._storage.set(keys.USAGE, self.totals.model_dump_json())
        log.info("usage_reset")

    async def update_pricing(self, input_per_1m: float, output_per_1m: float) -> Pricing:
        self.pricing = self.pricing.model_copy(
            update={
                "input_per_1m": input_per_1m,
                "output_per_1m": output_per_1m,
                "last_updated": datetime.now(UTC).date().isoformat(),
            }
        )
        await self._storage.set(keys.PRICING, self.pricing.model_dump_json())
        return self.pricing

    async def reset_pricing(self) -> Pricing:
        self.pricing = DEFAULT_PRICING.model_copy()
        await self._storage.set(keys.PRICING, self.pricing.model_dump_json())
        return self.pricing

    async def select_model(self, model_id: str) -> Pricing:
        option = MODEL_OPTIONS.get(model_id)
        if option is None:
            raise ValueError(f"Unknown model: {model_id!r}")
        self.pricing = self.pricing.model_copy(
            update={
                "model": model_id,
                "input_per_1m": option.input_per_1m,
                "output_per_1m": option.output_per_1m,
            }
        )
        await self._storage.set(keys.MODEL, model_id)
        await self._storage.set(keys.PRICING, self.pricing.model_dump_json())
        return self.pricing

    async def flush(self) -> None:
        """Persist immediately, superseding any pending debounced write."""
        self._cancel_pending()
        await self._persist()

    def stats(self) -> dict[str, Any]:
        digest = self.totals.digest
        return {
            "input_tokens": digest.input,
            "output_tokens": digest.output,
            "total_tokens": digest.input + digest.output,
            "calls": digest.calls,
            "estimated_cost": round(self.cost(), 6),
            "pricing": self.pricing.model_dump(),
        }

    # ------------------------------------------------------------------
    # Debounced persistence
    # ------------------------------------------------------------------

    def _schedule_persist(self) -> None:
        self._cancel_pending()
        self._persist_task = asyncio.create_task(self._persist_later())

    def _cancel_pending(self) -> None:
        if self._persist_task is not None and not self._persist_task.done():
            self._persist_task.cancel()
        self._persist_task = None

    async def _persist_later(self) -> None:
        with suppress(asyncio.CancelledError):
            await asyncio.sleep(self._debounce_seconds)
            await self._persist()

    async def _persist(self) -> None:
        await self._storage.set(keys.USAGE, self.totals.model_dump_json())
        log.debug("usage_persisted", totals=self.totals.model_dump())
