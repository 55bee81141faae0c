"""Unit tests for webdigest.usage."""

from __future__ import annotations

import asyncio

import pytest

from webdigest import keys
from webdigest.defaults import DEFAULT_PRICING
from webdigest.models.usage import UsageTotals
from webdigest.storage import MemoryStorage
from webdigest.usage import UsageTracker, read_token_counts


class TestReadTokenCounts:
    def test_responses_vocabulary(self) -> None:
        assert read_token_counts({"input_tokens": 10, "output_tokens": 4}) == (10, 4)

    def test_chat_vocabulary(self) -> None:
        assert read_token_counts({"prompt_tokens": 7, "completion_tokens": 3}) == (7, 3)

    def test_missing_counts_are_zero(self) -> None:
        assert read_token_counts({}) == (0, 0)


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class TestRecord:
    async def test_accrues_counts(self, usage: UsageTracker) -> None:
        assert usage.record({"input_tokens": 100, "output_tokens": 40}) is True
        assert usage.record({"input_tokens": 50, "output_tokens": 10}) is True
        digest = usage.totals.digest
        assert (digest.input, digest.output, digest.calls) == (150, 50, 2)

    async def test_zero_usage_is_not_counted(self, usage: UsageTracker) -> None:
        assert usage.record({"input_tokens": 0, "output_tokens": 0}) is False
        assert usage.record({}) is False
        assert usage.record(None) is False
        assert usage.totals.digest.calls == 0

    async def test_persist_is_debounced(self, usage: UsageTracker) -> None:
        usage.record({"input_tokens": 1, "output_tokens": 1})
        usage.record({"input_tokens": 1, "output_tokens": 1})
        assert await usage._storage.get(keys.USAGE, None) is None

        await asyncio.sleep(0.05)
        stored = UsageTotals.model_validate_json(await usage._storage.get(keys.USAGE))
        assert stored.digest.calls == 2

    async def test_flush_writes_immediately(self, usage: UsageTracker) -> None:
        usage.record({"input_tokens": 3, "output_tokens": 2})
        await usage.flush()
        stored = UsageTotals.model_validate_json(await usage._storage.get(keys.USAGE))
        assert stored.digest.input == 3


# ---------------------------------------------------------------------------
# Cost and stats
# ---------------------------------------------------------------------------


class TestCost:
    async def test_cost_uses_default_pricing(self, usage: UsageTracker) -> None:
        usage.record({"input_tokens": 1_000_000, "output_tokens": 1_000_000})
        assert usage.cost() == pytest.approx(0.05 + 0.40)

    async def test_stats_shape(self, usage: UsageTracker) -> None:
        usage.record({"input_tokens": 10, "output_tokens": 5})
        stats = usage.stats()
        assert stats["input_tokens"] == 10
        assert stats["output_tokens"] == 5
        assert stats["total_tokens"] == 15
        assert stats["calls"] == 1
        assert stats["pricing"]["model"] == "gpt-5-nano"

    async def test_reset_clears_and_persists(self, usage: UsageTracker) -> None:
        usage.record({"input_tokens": 10, "output_tokens": 5})
        await usage.reset()
        assert usage.totals.digest.calls == 0
        stored = UsageTotals.model_validate_json(await usage._storage.get(keys.USAGE))
        assert stored.digest.input == 0


# ---------------------------------------------------------------------------
# Pricing and model selection
# ---------------------------------------------------------------------------


class TestPricing:
    async def test_update_pricing_stamps_date(self, usage: UsageTracker) -> None:
        pricing = await usage.update_pricing(1.0, 2.0)
        assert pricing.input_per_1m == 1.0
        assert pricing.output_per_1m == 2.0
        assert pricing.last_updated != DEFAULT_PRICING.last_updated

    async def test_reset_pricing(self, usage: UsageTracker) -> None:
        await usage.update_pricing(1.0, 2.0)
        pricing = await usage.reset_pricing()
        assert pricing == DEFAULT_PRICING

    async def test_select_model_updates_rates(self, usage: UsageTracker) -> None:
        pricing = await usage.select_model("gpt-5-mini")
        assert pricing.model == "gpt-5-mini"
        assert pricing.input_per_1m == 0.25
        assert await usage._storage.get(keys.MODEL) == "gpt-5-mini"

    async def test_select_unknown_model_raises(self, usage: UsageTracker) -> None:
        with pytest.raises(ValueError, match="Unknown model"):
            await usage.select_model("gpt-0")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    async def test_load_restores_totals_and_model_rates(self) -> None:
        totals = UsageTotals()
        totals.digest.input = 42
        storage = MemoryStorage(
            {keys.USAGE: totals.model_dump_json(), keys.MODEL: "gpt-5-mini-priority"}
        )
        tracker = UsageTracker(storage)
        await tracker.load()
        assert tracker.totals.digest.input == 42
        assert tracker.pricing.model == "gpt-5-mini-priority"
        assert tracker.pricing.output_per_1m == 3.60

    async def test_load_invalid_blob_keeps_defaults(self) -> None:
        storage = MemoryStorage({keys.USAGE: "oops", keys.PRICING: "[]"})
        tracker = UsageTracker(storage)
        await tracker.load()
        assert tracker.totals.digest.calls == 0
        assert tracker.pricing == DEFAULT_PRICING
